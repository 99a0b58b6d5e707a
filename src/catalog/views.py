"""
Read side of the catalog. Queries only ever see active books; soft-deleted
rows are reachable through the restore and hard-delete commands alone.
"""
import logging
from typing import Any, Dict, List

from catalog.domain import model
from catalog.domain.isbn import normalize_isbn
from catalog.service_layer.unit_of_work import AbstractUnitOfWork
from shared.domain.exceptions import BookNotFound, NotFoundError

logger = logging.getLogger(__name__)


def book_to_dict(book: model.Book) -> Dict[str, Any]:
    return {
        "id": book.book_id,
        "title": book.title,
        "author": book.author,
        "isbn": book.isbn,
        "published_date": book.published_date.isoformat() if book.published_date else None,
        "price": str(book.price) if book.price is not None else None,
        "page_count": book.page_count,
        "description": book.description,
        "genre": book.genre,
        "publisher": book.publisher,
        "language": book.language,
        "is_active": book.is_active,
        "created_at": book.created_at.isoformat() if book.created_at else None,
        "updated_at": book.updated_at.isoformat() if book.updated_at else None,
        "created_by": book.created_by,
        "updated_by": book.updated_by,
    }


def list_books(uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    with uow:
        return [book_to_dict(book) for book in uow.books.list_active()]


def get_book(book_id: str, uow: AbstractUnitOfWork) -> Dict[str, Any]:
    with uow:
        book = uow.books.get(book_id)
        if book is None or not book.is_active:
            raise BookNotFound(book_id)
        return book_to_dict(book)


def search_books(query: str, uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    """Substring match over title, author, ISBN, genre and publisher."""
    term = query.strip()
    if not term:
        return []
    with uow:
        return [book_to_dict(book) for book in uow.books.search(term)]


def find_books(field: str, value: str, uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    """Case-insensitive exact match on a single column."""
    with uow:
        return [book_to_dict(book) for book in uow.books.find_by(field, value.strip())]


def find_by_isbn(isbn: str, uow: AbstractUnitOfWork) -> Dict[str, Any]:
    with uow:
        book = uow.books.get_active_by_isbn(normalize_isbn(isbn))
        if book is None:
            raise NotFoundError(f"No active book with ISBN {isbn}")
        return book_to_dict(book)
