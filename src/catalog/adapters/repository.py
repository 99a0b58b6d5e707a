import abc
from typing import List, Optional, Set

from sqlalchemy import func, or_

from catalog.domain import model

# Columns that support exact, case-insensitive lookups.
LOOKUP_FIELDS = ("title", "author", "genre", "publisher")


class AbstractRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.Book]

    def add(self, book: model.Book) -> str:
        self._add(book)
        self.seen.add(book)
        return book.book_id

    def get(self, book_id: str) -> Optional[model.Book]:
        book = self._get(book_id)
        if book:
            self.seen.add(book)
        return book

    def delete(self, book: model.Book) -> None:
        self._delete(book)
        self.seen.add(book)

    @abc.abstractmethod
    def _add(self, book: model.Book):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, book_id: str) -> Optional[model.Book]:
        raise NotImplementedError

    @abc.abstractmethod
    def _delete(self, book: model.Book):
        raise NotImplementedError

    @abc.abstractmethod
    def get_active_by_isbn(self, isbn: str, exclude_id: Optional[str] = None) -> Optional[model.Book]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_active(self) -> List[model.Book]:
        raise NotImplementedError

    @abc.abstractmethod
    def search(self, term: str) -> List[model.Book]:
        raise NotImplementedError

    @abc.abstractmethod
    def find_by(self, field: str, value: str) -> List[model.Book]:
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _active(self):
        return self.session.query(model.Book).filter(model.Book.is_active.is_(True))

    def _add(self, book):
        self.session.add(book)

    def _get(self, book_id):
        return self.session.query(model.Book).filter_by(book_id=book_id).first()

    def _delete(self, book):
        self.session.delete(book)

    def get_active_by_isbn(self, isbn, exclude_id=None):
        query = self._active().filter(model.Book.isbn == isbn)
        if exclude_id is not None:
            query = query.filter(model.Book.book_id != exclude_id)
        return query.first()

    def list_active(self):
        return self._active().order_by(model.Book.title).all()

    def search(self, term):
        pattern = f"%{term.lower()}%"
        columns = [model.Book.title, model.Book.author, model.Book.isbn, model.Book.genre, model.Book.publisher]
        return (
            self._active()
            .filter(or_(*[func.lower(column).like(pattern) for column in columns]))
            .order_by(model.Book.title)
            .all()
        )

    def find_by(self, field, value):
        if field not in LOOKUP_FIELDS:
            raise ValueError(f"Cannot look books up by {field}")
        column = getattr(model.Book, field)
        return self._active().filter(func.lower(column) == value.lower()).order_by(model.Book.title).all()
