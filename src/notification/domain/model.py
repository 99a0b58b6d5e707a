"""Notification aggregate."""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from shared.domain.commands import new_id

MAX_RETRIES = 3
ERROR_MESSAGE_MAX_LENGTH = 500


class NotificationType(str, enum.Enum):
    BOOK_CREATED = "BOOK_CREATED"
    BOOK_UPDATED = "BOOK_UPDATED"
    BOOK_DELETED = "BOOK_DELETED"


class NotificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


@dataclass(eq=False)
class Notification:
    """
    A message about a book change, addressed to one recipient.

    ``source_event_id`` is the id of the event the notification was built
    from; at most one notification exists per event.
    """
    recipient_email: str
    subject: str
    content: str
    notification_type: NotificationType
    source_event_id: str
    recipient_name: Optional[str] = None
    template_name: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    correlation_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = 0
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sent_at: Optional[datetime] = None

    def mark_as_sent(self) -> None:
        self.status = NotificationStatus.SENT
        self.sent_at = datetime.now(timezone.utc)
        self.error_message = None

    def mark_as_failed(self, error_message: str) -> None:
        self.status = NotificationStatus.FAILED
        self.error_message = (error_message or "")[:ERROR_MESSAGE_MAX_LENGTH]
        self.retry_count += 1

    def reset_for_retry(self) -> None:
        self.status = NotificationStatus.PENDING
        self.error_message = None

    def can_retry(self) -> bool:
        return self.retry_count < MAX_RETRIES and self.status in (
            NotificationStatus.FAILED,
            NotificationStatus.PENDING,
        )

    @property
    def recipient_display(self) -> str:
        if self.recipient_name and self.recipient_name.strip():
            return f"{self.recipient_name} <{self.recipient_email}>"
        return self.recipient_email
