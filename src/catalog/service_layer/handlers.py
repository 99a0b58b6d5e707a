import logging
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError

from catalog import views
from catalog.domain import model
from catalog.domain.commands import CreateBook, DeleteBook, RestoreBook, UpdateBook
from catalog.service_layer.unit_of_work import AbstractUnitOfWork
from shared.adapters.event_publisher import EventPublisher
from shared.domain.events import BookEvent
from shared.domain.exceptions import BookNotFound, DuplicateIsbnError

logger = logging.getLogger(__name__)


def _ensure_isbn_free(uow: AbstractUnitOfWork, isbn, exclude_id=None):
    if isbn and uow.books.get_active_by_isbn(isbn, exclude_id=exclude_id) is not None:
        raise DuplicateIsbnError(isbn)


def _commit(uow: AbstractUnitOfWork, book: model.Book):
    """Commit, turning a lost race on the active-ISBN index into a 409."""
    try:
        uow.commit()
    except IntegrityError as e:
        uow.rollback()
        book.events.clear()
        raise DuplicateIsbnError(book.isbn) from e


def create_book(command: CreateBook, uow: AbstractUnitOfWork) -> Dict[str, Any]:
    """
    Validate and store a new book.

    Raises:
        BookValidationError: If any field is invalid
        DuplicateIsbnError: If an active book already carries the ISBN
    """
    book = model.Book.new(command.details)
    with uow:
        _ensure_isbn_free(uow, book.isbn)
        book.register(command.username, command.correlation_id)
        uow.books.add(book)
        _commit(uow, book)
        logger.info(f"Created book {book.book_id} [correlation_id={command.correlation_id}]")
        return views.book_to_dict(book)


def update_book(command: UpdateBook, uow: AbstractUnitOfWork) -> Dict[str, Any]:
    with uow:
        book = uow.books.get(command.book_id)
        if book is None or not book.is_active:
            raise BookNotFound(command.book_id)
        details = model.validated(command.details)
        _ensure_isbn_free(uow, details.isbn, exclude_id=book.book_id)
        book.replace(details, command.username, command.correlation_id)
        _commit(uow, book)
        logger.info(f"Updated book {book.book_id} [correlation_id={command.correlation_id}]")
        return views.book_to_dict(book)


def delete_book(command: DeleteBook, uow: AbstractUnitOfWork) -> None:
    with uow:
        book = uow.books.get(command.book_id)
        if book is None:
            raise BookNotFound(command.book_id)
        if command.hard:
            book.mark_hard_deleted(command.username, command.correlation_id)
            uow.books.delete(book)
        elif not book.deactivate(command.username, command.correlation_id):
            raise BookNotFound(command.book_id)
        uow.commit()
        logger.info(
            f"{'Hard' if command.hard else 'Soft'} deleted book {command.book_id} "
            f"[correlation_id={command.correlation_id}]"
        )


def restore_book(command: RestoreBook, uow: AbstractUnitOfWork) -> Dict[str, Any]:
    with uow:
        book = uow.books.get(command.book_id)
        if book is None:
            raise BookNotFound(command.book_id)
        if not book.is_active:
            _ensure_isbn_free(uow, book.isbn, exclude_id=book.book_id)
            book.restore(command.username, command.correlation_id)
            _commit(uow, book)
            logger.info(f"Restored book {book.book_id} [correlation_id={command.correlation_id}]")
        return views.book_to_dict(book)


def publish_book_event(event: BookEvent, publisher: EventPublisher, max_attempts: int = 3) -> None:
    """
    Publish a committed change. Failures are logged and dropped: the write
    already happened and the caller's response must not depend on the broker.
    """
    error = publisher.publish_with_retry(event, max_attempts=max_attempts)
    if error is not None:
        logger.error(
            f"Could not publish {event.event_type} {event.event_id} for book {event.aggregate_id} "
            f"[correlation_id={event.correlation_id}]: {error}"
        )
