"""
Catalog API Entrypoint - Thin API with Command Dispatch
Writes go through the message bus as commands; reads go straight to views.
"""
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import redis
import uvicorn
from fastapi import Depends, FastAPI, Query, Request, status
from pydantic import BaseModel
from sqlalchemy import create_engine

import config
from catalog import bootstrap, views
from catalog.adapters import orm
from catalog.adapters.cache import CachingBooksClient, RedisCache
from catalog.adapters.google_books import GoogleBooksClient
from catalog.domain.commands import CreateBook, DeleteBook, RestoreBook, UpdateBook
from catalog.domain.model import BookDetails
from catalog.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork
from shared.entrypoints import responses
from shared.domain.exceptions import NotFoundError
from shared.entrypoints.auth import User, require_admin, require_reader
from shared.service_layer.messagebus import MessageBus

log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Book Catalog API",
    description="Book catalog with ISBN validation and event publication",
    version="1.0.0"
)
responses.install(app)


def configure(uow_factory=None, publisher=None, books_client=None, cache=None):
    """Attach collaborators to the app; anything not given is built from config."""
    if cache is None:
        cache = RedisCache(
            redis.Redis(**config.get_redis_host_and_port()),
            ttl_seconds=config.get_google_books_config()["cache_ttl_seconds"],
        )
    app.state.uow_factory = uow_factory or SqlAlchemyUnitOfWork
    app.state.publisher = publisher or bootstrap.default_publisher()
    app.state.cache = cache
    app.state.books_client = CachingBooksClient(books_client or GoogleBooksClient(), cache)


@app.on_event("startup")
async def startup_event():
    engine = create_engine(config.get_database_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()
    if getattr(app.state, "uow_factory", None) is None:
        configure()
    logger.info("Catalog service initialized")


def get_uow(request: Request) -> AbstractUnitOfWork:
    return request.app.state.uow_factory()


def get_bus(request: Request, uow: AbstractUnitOfWork = Depends(get_uow)) -> MessageBus:
    return bootstrap.bootstrap(uow=uow, publisher=request.app.state.publisher, start_orm=False)


# ---------- Request models ----------

class BookRequest(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    published_date: Optional[date] = None
    price: Optional[Decimal] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    publisher: Optional[str] = None
    language: Optional[str] = None

    def to_details(self) -> BookDetails:
        return BookDetails(**self.model_dump())


# ---------- Endpoints ----------

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "book-service",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/books")
def get_books(uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)):
    books = views.list_books(uow)
    return responses.envelope(books, f"Found {len(books)} books")


@app.get("/books/search")
def search_books(
    query: str = Query(..., min_length=1),
    uow: AbstractUnitOfWork = Depends(get_uow),
    _: User = Depends(require_reader),
):
    books = views.search_books(query, uow)
    return responses.envelope(books, f"Found {len(books)} books matching '{query}'")


@app.get("/books/external/search")
def search_external_books(request: Request, query: str = Query(..., min_length=1), _: User = Depends(require_reader)):
    books = request.app.state.books_client.search(query)
    return responses.envelope([book.to_dict() for book in books], f"Found {len(books)} external books")


@app.get("/books/external/search/title")
def search_external_by_title(request: Request, title: str = Query(..., min_length=1), _: User = Depends(require_reader)):
    books = request.app.state.books_client.search_by_title(title)
    return responses.envelope([book.to_dict() for book in books], f"Found {len(books)} external books")


@app.get("/books/external/search/author")
def search_external_by_author(request: Request, author: str = Query(..., min_length=1), _: User = Depends(require_reader)):
    books = request.app.state.books_client.search_by_author(author)
    return responses.envelope([book.to_dict() for book in books], f"Found {len(books)} external books")


@app.get("/books/isbn/{isbn}")
def get_book_by_isbn(isbn: str, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)):
    return responses.envelope(views.find_by_isbn(isbn, uow), "Book retrieved successfully")


@app.get("/books/{field}/{value}")
def find_books(field: str, value: str, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)):
    if field not in ("title", "author", "genre", "publisher"):
        raise NotFoundError(f"Unknown lookup field {field}")
    books = views.find_books(field, value, uow)
    return responses.envelope(books, f"Found {len(books)} books")


@app.get("/books/{book_id}")
def get_book(book_id: str, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)):
    return responses.envelope(views.get_book(book_id, uow), "Book retrieved successfully")


@app.post("/books", status_code=status.HTTP_201_CREATED)
def create_book(
    body: BookRequest,
    request: Request,
    bus: MessageBus = Depends(get_bus),
    user: User = Depends(require_admin),
):
    cmd = CreateBook(
        details=body.to_details(),
        username=user.username,
        correlation_id=responses.get_correlation_id(request),
    )
    book = bus.handle(cmd)
    return responses.envelope(book, "Book created successfully")


@app.put("/books/{book_id}")
def update_book(
    book_id: str,
    body: BookRequest,
    request: Request,
    bus: MessageBus = Depends(get_bus),
    user: User = Depends(require_admin),
):
    cmd = UpdateBook(
        book_id=book_id,
        details=body.to_details(),
        username=user.username,
        correlation_id=responses.get_correlation_id(request),
    )
    book = bus.handle(cmd)
    return responses.envelope(book, "Book updated successfully")


@app.delete("/books/{book_id}")
def delete_book(
    book_id: str,
    request: Request,
    bus: MessageBus = Depends(get_bus),
    user: User = Depends(require_admin),
):
    bus.handle(DeleteBook(
        book_id=book_id,
        username=user.username,
        correlation_id=responses.get_correlation_id(request),
    ))
    return responses.envelope(None, "Book deleted successfully")


@app.delete("/books/{book_id}/hard")
def hard_delete_book(
    book_id: str,
    request: Request,
    bus: MessageBus = Depends(get_bus),
    user: User = Depends(require_admin),
):
    bus.handle(DeleteBook(
        book_id=book_id,
        username=user.username,
        hard=True,
        correlation_id=responses.get_correlation_id(request),
    ))
    return responses.envelope(None, "Book permanently deleted")


@app.patch("/books/{book_id}/restore")
def restore_book(
    book_id: str,
    request: Request,
    bus: MessageBus = Depends(get_bus),
    user: User = Depends(require_admin),
):
    book = bus.handle(RestoreBook(
        book_id=book_id,
        username=user.username,
        correlation_id=responses.get_correlation_id(request),
    ))
    return responses.envelope(book, "Book restored successfully")


@app.get("/cache/keys")
def get_cache_keys(request: Request, _: User = Depends(require_reader)):
    keys = request.app.state.cache.keys()
    return responses.envelope({"keys": keys, "count": len(keys)}, "Cache keys retrieved")


@app.delete("/cache/clear")
def clear_cache(request: Request, _: User = Depends(require_admin)):
    cleared = request.app.state.cache.clear()
    return responses.envelope({"cleared": cleared}, "All caches cleared successfully")


def main():
    uvicorn.run(
        "catalog.entrypoints.catalog_api:app",
        host=os.getenv("API_BIND_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
