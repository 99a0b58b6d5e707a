# pylint: disable=redefined-outer-name
from datetime import date
from decimal import Decimal

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import clear_mappers, sessionmaker
from sqlalchemy.pool import StaticPool

from catalog.adapters import orm as catalog_orm
from catalog.adapters.google_books import ExternalBook
from catalog.domain.model import BookDetails
from notification.adapters import orm as notification_orm
from shared.adapters.event_publisher import EventPublisher
from tests.fakes import FakeBooksClient, FakeSender, FakeTransport


@pytest.fixture
def sqlite_session_factory():
    """Create SQLite in-memory database shared across threads for fast testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    catalog_orm.metadata.create_all(engine)
    notification_orm.metadata.create_all(engine)
    catalog_orm.start_mappers()
    notification_orm.start_mappers()

    yield sessionmaker(bind=engine, expire_on_commit=False)

    clear_mappers()
    engine.dispose()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_publisher(fake_transport):
    """Publisher that never sleeps between retries."""
    return EventPublisher(fake_transport, base_delay=0, sleep=lambda seconds, cancel: False)


@pytest.fixture
def fake_books_client():
    return FakeBooksClient([
        ExternalBook(
            title="Effective Java",
            author="Joshua Bloch",
            isbn="9780134685991",
            published_date=date(2018, 1, 6),
        )
    ])


def _make_details(**overrides) -> BookDetails:
    fields = dict(
        title="Effective Java",
        author="Joshua Bloch",
        isbn="978-0-13-468599-1",
        published_date=date(2018, 1, 6),
        price=Decimal("45.99"),
        page_count=412,
        genre="Programming",
        publisher="Addison-Wesley",
        language="English",
    )
    fields.update(overrides)
    return BookDetails(**fields)


@pytest.fixture
def make_details():
    """Factory for valid book details; keyword arguments override single fields."""
    return _make_details


@pytest.fixture
def book_details():
    return _make_details()


@pytest.fixture
def fake_sender():
    return FakeSender()


@pytest.fixture
def failing_sender():
    return FakeSender(fail=True)
