"""Turns book events read off the stream into notifications."""
# pylint: disable=broad-except

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from notification.domain import templates
from notification.domain.model import Notification
from shared.adapters import messaging
from shared.adapters.serialization import deserialize_event
from shared.domain.events import BookEvent
from shared.domain.exceptions import DeserializationError

logger = logging.getLogger(__name__)

REFERENCE_TYPE = "BOOK"


class ConsumerState(enum.Enum):
    RECEIVED = "RECEIVED"
    DESERIALIZED = "DESERIALIZED"
    NOTIFICATION_BUILT = "NOTIFICATION_BUILT"
    DISPATCHED = "DISPATCHED"
    FAILED = "FAILED"


@dataclass
class ConsumptionOutcome:
    """
    Result of processing one message.

    ``failed_at`` is the last state reached before a failure, so callers can
    tell a bad payload (RECEIVED) from a dispatch failure (NOTIFICATION_BUILT).
    """
    state: ConsumerState
    message_id: Optional[str] = None
    event_id: Optional[str] = None
    error: Optional[BaseException] = None
    failed_at: Optional[ConsumerState] = None
    notification: Optional[Notification] = None

    @property
    def bad_message(self) -> bool:
        return self.state == ConsumerState.FAILED and self.failed_at == ConsumerState.RECEIVED


class BookEventConsumer:
    """Deserializes, renders and dispatches; never raises for a single message."""

    def __init__(
        self,
        dispatch: Callable[[Notification], Notification],
        recipient_email: str,
        recipient_name: Optional[str] = None,
    ):
        self.dispatch = dispatch
        self.recipient_email = recipient_email
        self.recipient_name = recipient_name

    def build_notification(self, event: BookEvent) -> Notification:
        rendered = templates.render(event)
        return Notification(
            recipient_email=self.recipient_email,
            recipient_name=self.recipient_name,
            subject=rendered.subject,
            content=rendered.content,
            notification_type=rendered.notification_type,
            template_name=rendered.template_name,
            reference_id=event.aggregate_id,
            reference_type=REFERENCE_TYPE,
            source_event_id=event.event_id,
            correlation_id=event.correlation_id,
        )

    def process(self, fields: Dict[str, str]) -> ConsumptionOutcome:
        message_id = fields.get(messaging.MESSAGE_ID_HEADER)
        correlation_id = fields.get(messaging.CORRELATION_ID_HEADER)
        logger.info(
            f"Received {fields.get(messaging.EVENT_TYPE_HEADER)} message {message_id} "
            f"[correlation_id={correlation_id}]"
        )

        try:
            event = deserialize_event(fields.get(messaging.BODY_FIELD))
        except DeserializationError as e:
            logger.error(f"Cannot deserialize message {message_id} [correlation_id={correlation_id}]: {e}")
            return ConsumptionOutcome(
                ConsumerState.FAILED, message_id=message_id, error=e, failed_at=ConsumerState.RECEIVED
            )
        except Exception as e:
            logger.error(f"Unreadable message {message_id} [correlation_id={correlation_id}]: {e}", exc_info=True)
            return ConsumptionOutcome(
                ConsumerState.FAILED,
                message_id=message_id,
                error=DeserializationError(str(e)),
                failed_at=ConsumerState.RECEIVED,
            )

        try:
            notification = self.build_notification(event)
        except Exception as e:
            logger.error(f"Cannot build notification for {event.event_type} {event.event_id}: {e}")
            return ConsumptionOutcome(
                ConsumerState.FAILED, message_id, event.event_id, error=e, failed_at=ConsumerState.DESERIALIZED
            )

        try:
            notification = self.dispatch(notification)
        except Exception as e:
            logger.error(
                f"Dispatch failed for {event.event_type} {event.event_id} "
                f"[correlation_id={event.correlation_id}]: {e}",
                exc_info=True,
            )
            return ConsumptionOutcome(
                ConsumerState.FAILED, message_id, event.event_id, error=e, failed_at=ConsumerState.NOTIFICATION_BUILT
            )

        logger.info(
            f"Processed {event.event_type} for book {event.aggregate_id} "
            f"[correlation_id={event.correlation_id}]"
        )
        return ConsumptionOutcome(
            ConsumerState.DISPATCHED, message_id, event.event_id, notification=notification
        )
