"""Base command and event interfaces shared across services."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Optional


MAX_CORRELATION_ID_LENGTH = 100


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Command:
    """Base class for all commands."""
    pass


@dataclass(frozen=True, kw_only=True)
class Event:
    """
    Base class for all domain events.

    Events are immutable value snapshots. ``event_id`` is assigned once, at
    construction. A missing or overlong ``correlation_id`` is replaced with a
    fresh one. Routing metadata is fixed per event class and computed,
    never stored.
    """
    aggregate_id: str
    correlation_id: Optional[str] = None
    event_id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0"

    event_type: ClassVar[str] = "Event"
    aggregate_type: ClassVar[str] = ""
    source_service: ClassVar[str] = ""
    action: ClassVar[str] = ""

    def __post_init__(self):
        if not self.correlation_id or len(self.correlation_id) > MAX_CORRELATION_ID_LENGTH:
            object.__setattr__(self, "correlation_id", new_id())

    @classmethod
    def topic(cls) -> str:
        return f"{cls.source_service}.{cls.aggregate_type.lower()}.{cls.action}"

    @property
    def routing_key(self) -> str:
        return self.topic()

    @property
    def exchange(self) -> str:
        return f"{self.aggregate_type.lower()}.exchange"
