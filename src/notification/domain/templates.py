"""Subject and body templates, one pure function per book event type."""

import json
from dataclasses import dataclass
from typing import Callable, Dict, Type

from notification.domain.model import NotificationType
from shared.domain.events import BookCreated, BookDeleted, BookEvent, BookUpdated

SIGNATURE = "Best regards,\nBook Management System"


@dataclass(frozen=True)
class Rendered:
    subject: str
    content: str
    template_name: str
    notification_type: NotificationType


def _or_na(value) -> str:
    return "N/A" if value is None else str(value)


def _price(value) -> str:
    return "N/A" if value is None else f"${value:.2f}"


def render_book_created(event: BookCreated) -> Rendered:
    content = (
        "A new book has been added to the system:\n\n"
        f"Title: {event.title}\n"
        f"Author: {event.author}\n"
        f"ISBN: {_or_na(event.isbn)}\n"
        f"Genre: {_or_na(event.genre)}\n"
        f"Publisher: {_or_na(event.publisher)}\n"
        f"Published Date: {_or_na(event.published_date)}\n"
        f"Price: {_price(event.price)}\n"
        f"Created By: {event.created_by or 'System'}\n"
        f"Created At: {event.timestamp.isoformat()}\n\n"
        "Please review the new addition to ensure it meets our quality standards.\n\n"
        f"{SIGNATURE}\n"
    )
    return Rendered(
        subject=f"New Book Added: {event.title}",
        content=content,
        template_name="book-created",
        notification_type=NotificationType.BOOK_CREATED,
    )


def render_book_updated(event: BookUpdated) -> Rendered:
    previous = json.dumps(event.previous_values, default=str, sort_keys=True) if event.previous_values else "N/A"
    content = (
        "A book has been updated in the system:\n\n"
        f"Title: {event.title}\n"
        f"Author: {event.author}\n"
        f"ISBN: {_or_na(event.isbn)}\n"
        f"Genre: {_or_na(event.genre)}\n"
        f"Publisher: {_or_na(event.publisher)}\n"
        f"Published Date: {_or_na(event.published_date)}\n"
        f"Price: {_price(event.price)}\n"
        f"Updated By: {event.updated_by or 'System'}\n"
        f"Updated At: {event.timestamp.isoformat()}\n\n"
        f"Previous Values: {previous}\n\n"
        "Please review the changes to ensure accuracy.\n\n"
        f"{SIGNATURE}\n"
    )
    return Rendered(
        subject=f"Book Updated: {event.title}",
        content=content,
        template_name="book-updated",
        notification_type=NotificationType.BOOK_UPDATED,
    )


def render_book_deleted(event: BookDeleted) -> Rendered:
    content = (
        "A book has been deleted from the system:\n\n"
        f"Title: {event.title}\n"
        f"Author: {event.author}\n"
        f"ISBN: {_or_na(event.isbn)}\n"
        f"Deletion Type: {event.deletion_type}\n"
        f"Deleted By: {event.deleted_by or 'System'}\n"
        f"Deleted At: {event.timestamp.isoformat()}\n\n"
        "This action has been logged for audit purposes.\n\n"
        f"{SIGNATURE}\n"
    )
    return Rendered(
        subject=f"Book Deleted: {event.title}",
        content=content,
        template_name="book-deleted",
        notification_type=NotificationType.BOOK_DELETED,
    )


TEMPLATES = {
    BookCreated: render_book_created,
    BookUpdated: render_book_updated,
    BookDeleted: render_book_deleted,
}  # type: Dict[Type[BookEvent], Callable[..., Rendered]]


def render(event: BookEvent) -> Rendered:
    """Render the template registered for the event's type."""
    return TEMPLATES[type(event)](event)
