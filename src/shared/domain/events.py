"""Book domain events, shared between the catalog publisher and its consumers."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from shared.domain.commands import Event

BOOK_SERVICE = "book-service"


@dataclass(frozen=True, kw_only=True)
class BookEvent(Event):
    """Common payload of every book event."""
    title: str
    author: str
    isbn: Optional[str] = None

    aggregate_type = "Book"
    source_service = BOOK_SERVICE


@dataclass(frozen=True, kw_only=True)
class BookCreated(BookEvent):
    """Event raised when a book has been added to the catalog."""
    published_date: Optional[date] = None
    price: Optional[Decimal] = None
    genre: Optional[str] = None
    publisher: Optional[str] = None
    created_by: Optional[str] = None

    event_type = "BookCreated"
    action = "created"


@dataclass(frozen=True, kw_only=True)
class BookUpdated(BookEvent):
    """Event raised when a book's fields have been replaced."""
    published_date: Optional[date] = None
    price: Optional[Decimal] = None
    genre: Optional[str] = None
    publisher: Optional[str] = None
    updated_by: Optional[str] = None
    previous_values: Dict[str, Any] = field(default_factory=dict)

    event_type = "BookUpdated"
    action = "updated"


@dataclass(frozen=True, kw_only=True)
class BookDeleted(BookEvent):
    """Event raised when a book has been soft or hard deleted."""
    deleted_by: Optional[str] = None
    deletion_type: str = "SOFT"

    event_type = "BookDeleted"
    action = "deleted"


EVENT_TYPES = {
    BookCreated.event_type: BookCreated,
    BookUpdated.event_type: BookUpdated,
    BookDeleted.event_type: BookDeleted,
}
