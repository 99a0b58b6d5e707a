"""Book aggregate."""

from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from catalog.domain.isbn import normalize_isbn
from catalog.domain.validation import validate_book_details
from shared.domain.commands import new_id
from shared.domain.events import BookCreated, BookDeleted, BookUpdated
from shared.domain.exceptions import BookValidationError


@dataclass(frozen=True)
class BookDetails:
    """The replaceable fields of a book, validated as a whole."""
    title: str
    author: str
    published_date: date
    isbn: Optional[str] = None
    price: Optional[Decimal] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    publisher: Optional[str] = None
    language: Optional[str] = None

    def normalized(self) -> "BookDetails":
        isbn = normalize_isbn(self.isbn) if self.isbn and self.isbn.strip() else None
        price = Decimal(self.price).quantize(Decimal("0.01")) if self.price is not None else None
        return BookDetails(
            title=self.title.strip(),
            author=self.author.strip(),
            published_date=self.published_date,
            isbn=isbn,
            price=price,
            page_count=self.page_count,
            description=self.description,
            genre=self.genre,
            publisher=self.publisher,
            language=self.language,
        )


DETAIL_FIELDS = [f.name for f in fields(BookDetails)]


def validated(details: BookDetails, today: Optional[date] = None) -> BookDetails:
    """Return normalized details or raise with every field error found."""
    errors = validate_book_details(details, today)
    if errors:
        raise BookValidationError(errors)
    return details.normalized()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Book:
    """
    A catalog entry.

    Fields change only through ``replace`` (whole replacement, no partial
    patch). Every state change appends the matching event to ``events``; the
    unit of work hands them to the message bus after commit.
    """

    def __init__(self, book_id: str, details: BookDetails, is_active: bool = True):
        self.book_id = book_id
        self._apply(details)
        self.is_active = is_active
        self.created_at: Optional[datetime] = None
        self.updated_at: Optional[datetime] = None
        self.created_by: Optional[str] = None
        self.updated_by: Optional[str] = None
        self.events: List = []

    @classmethod
    def new(cls, details: BookDetails, today: Optional[date] = None) -> "Book":
        return cls(book_id=new_id(), details=validated(details, today))

    def __repr__(self):
        return f"<Book {self.book_id} {self.title!r}>"

    def __eq__(self, other):
        if not isinstance(other, Book):
            return False
        return other.book_id == self.book_id

    def __hash__(self):
        return hash(self.book_id)

    @property
    def details(self) -> BookDetails:
        return BookDetails(**{name: getattr(self, name) for name in DETAIL_FIELDS})

    def _apply(self, details: BookDetails) -> None:
        for name in DETAIL_FIELDS:
            setattr(self, name, getattr(details, name))

    def _changed_values(self, details: BookDetails) -> Dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in DETAIL_FIELDS
            if getattr(self, name) != getattr(details, name)
        }

    def register(self, created_by: str, correlation_id: Optional[str] = None) -> None:
        now = _utcnow()
        self.created_at = self.updated_at = now
        self.created_by = self.updated_by = created_by
        self.events.append(
            BookCreated(
                aggregate_id=self.book_id,
                correlation_id=correlation_id,
                title=self.title,
                author=self.author,
                isbn=self.isbn,
                published_date=self.published_date,
                price=self.price,
                genre=self.genre,
                publisher=self.publisher,
                created_by=created_by,
            )
        )

    def replace(
        self,
        details: BookDetails,
        updated_by: str,
        correlation_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> None:
        """Replace every detail field at once; the previous values travel with the event."""
        details = validated(details, today)
        previous_values = self._changed_values(details)
        self._apply(details)
        self._touch(updated_by)
        self.events.append(self._updated_event(updated_by, correlation_id, previous_values))

    def deactivate(self, deleted_by: str, correlation_id: Optional[str] = None) -> bool:
        """Soft delete. Returns False when the book was already inactive."""
        if not self.is_active:
            return False
        self.is_active = False
        self._touch(deleted_by)
        self.events.append(self._deleted_event(deleted_by, correlation_id, "SOFT"))
        return True

    def restore(self, restored_by: str, correlation_id: Optional[str] = None) -> bool:
        """Undo a soft delete. Returns False when the book was already active."""
        if self.is_active:
            return False
        self.is_active = True
        self._touch(restored_by)
        self.events.append(self._updated_event(restored_by, correlation_id, {"is_active": False}))
        return True

    def mark_hard_deleted(self, deleted_by: str, correlation_id: Optional[str] = None) -> None:
        self.events.append(self._deleted_event(deleted_by, correlation_id, "HARD"))

    def _touch(self, username: str) -> None:
        self.updated_at = _utcnow()
        self.updated_by = username

    def _updated_event(self, updated_by, correlation_id, previous_values) -> BookUpdated:
        return BookUpdated(
            aggregate_id=self.book_id,
            correlation_id=correlation_id,
            title=self.title,
            author=self.author,
            isbn=self.isbn,
            published_date=self.published_date,
            price=self.price,
            genre=self.genre,
            publisher=self.publisher,
            updated_by=updated_by,
            previous_values=previous_values,
        )

    def _deleted_event(self, deleted_by, correlation_id, deletion_type) -> BookDeleted:
        return BookDeleted(
            aggregate_id=self.book_id,
            correlation_id=correlation_id,
            title=self.title,
            author=self.author,
            isbn=self.isbn,
            deleted_by=deleted_by,
            deletion_type=deletion_type,
        )
