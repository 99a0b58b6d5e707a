import logging

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    event,
    inspect,
)
from sqlalchemy.orm import registry

from catalog.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

books = Table(
    "books",
    metadata,
    Column("book_id", String(36), primary_key=True),
    Column("title", String(200), nullable=False),
    Column("author", String(100), nullable=False),
    Column("isbn", String(13)),
    Column("published_date", Date, nullable=False),
    Column("price", Numeric(10, 2)),
    Column("page_count", Integer),
    Column("description", Text),
    Column("genre", String(50)),
    Column("publisher", String(100)),
    Column("language", String(30)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    Column("created_by", String(100)),
    Column("updated_by", String(100)),
)

# ISBN is unique among active rows only; soft-deleted rows keep theirs.
Index(
    "uq_books_active_isbn",
    books.c.isbn,
    unique=True,
    sqlite_where=books.c.is_active == True,  # noqa: E712
    postgresql_where=books.c.is_active == True,  # noqa: E712
)
Index("ix_books_title", books.c.title)
Index("ix_books_author", books.c.author)
Index("ix_books_is_active", books.c.is_active)


def start_mappers():
    if inspect(model.Book, raiseerr=False) is not None:
        return
    logger.info("Starting catalog mappers")
    mapper_registry.map_imperatively(model.Book, books)


@event.listens_for(model.Book, "load")
def receive_load(book, _):
    book.events = []
