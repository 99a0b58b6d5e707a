# pylint: disable=redefined-outer-name
import pytest
from fastapi.testclient import TestClient

from catalog.adapters.cache import RedisCache
from catalog.entrypoints import catalog_api
from catalog.service_layer.unit_of_work import SqlAlchemyUnitOfWork

pytestmark = pytest.mark.integration

ADMIN = ("admin", "admin123")
READER = ("user", "user123")

BOOK = {
    "title": "Effective Java",
    "author": "Joshua Bloch",
    "isbn": "978-0-13-468599-1",
    "published_date": "2018-01-06",
    "price": "45.99",
    "page_count": 412,
    "genre": "Programming",
    "publisher": "Addison-Wesley",
    "language": "English",
}


@pytest.fixture
def client(sqlite_session_factory, fake_publisher, fake_books_client, redis_client):
    catalog_api.configure(
        uow_factory=lambda: SqlAlchemyUnitOfWork(sqlite_session_factory),
        publisher=fake_publisher,
        books_client=fake_books_client,
        cache=RedisCache(redis_client),
    )
    return TestClient(catalog_api.app)


def _create(client, **overrides):
    body = dict(BOOK)
    body.update(overrides)
    response = client.post("/books", json=body, auth=ADMIN)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealth:

    def test_health_needs_no_credentials(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:

    def test_missing_credentials(self, client):
        response = client.get("/books")
        assert response.status_code == 401

    def test_wrong_password(self, client):
        response = client.get("/books", auth=("admin", "wrong"))
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Basic"
        assert response.json()["success"] is False

    def test_reader_cannot_write(self, client):
        response = client.post("/books", json=BOOK, auth=READER)
        assert response.status_code == 403
        assert response.json()["error"] == "FORBIDDEN"

    def test_reader_can_read(self, client):
        assert client.get("/books", auth=READER).status_code == 200


class TestBooks:

    def test_create_and_fetch(self, client, fake_transport):
        created = _create(client)

        response = client.get(f"/books/{created['id']}", auth=READER)
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["isbn"] == "9780134685991"
        assert body["data"]["price"] == "45.99"
        assert [m.routing_key for m in fake_transport.sent] == ["book-service.book.created"]

    def test_correlation_id_is_echoed_and_propagated(self, client, fake_transport):
        response = client.post("/books", json=BOOK, auth=ADMIN, headers={"X-Correlation-ID": "corr-42"})

        assert response.headers["X-Correlation-ID"] == "corr-42"
        assert fake_transport.sent[0].headers["correlation-id"] == "corr-42"

    def test_correlation_id_is_generated(self, client):
        assert client.get("/books", auth=READER).headers["X-Correlation-ID"]

    def test_overlong_correlation_id_is_replaced(self, client, fake_transport):
        overlong = "c" * 101

        response = client.post("/books", json=BOOK, auth=ADMIN, headers={"X-Correlation-ID": overlong})

        correlation_id = response.headers["X-Correlation-ID"]
        assert correlation_id != overlong
        assert len(correlation_id) <= 100
        assert fake_transport.sent[0].headers["correlation-id"] == correlation_id

    def test_validation_errors_list_every_field(self, client):
        response = client.post(
            "/books",
            json=dict(BOOK, isbn="9780134685990", price="-3", published_date="2999-01-01"),
            auth=ADMIN,
            headers={"X-Correlation-ID": "corr-7"},
        )
        body = response.json()

        assert response.status_code == 400
        assert body["error"] == "VALIDATION_ERROR"
        assert body["traceId"] == "corr-7"
        assert body["path"] == "/books"
        assert {(d["field"], d["code"]) for d in body["details"]} == {
            ("isbn", "INVALID_ISBN_CHECKSUM"),
            ("price", "NEGATIVE_VALUE"),
            ("published_date", "FUTURE_DATE"),
        }

    def test_missing_required_fields(self, client):
        response = client.post("/books", json={"isbn": "0306406152"}, auth=ADMIN)
        assert response.status_code == 400
        assert {d["field"] for d in response.json()["details"]} == {"title", "author", "published_date"}

    def test_malformed_body(self, client):
        response = client.post("/books", json=dict(BOOK, published_date="soon"), auth=ADMIN)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_duplicate_isbn(self, client):
        _create(client)
        response = client.post("/books", json=dict(BOOK, title="Copy"), auth=ADMIN)
        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_ISBN"

    def test_unknown_book(self, client):
        response = client.get("/books/does-not-exist", auth=READER)
        assert response.status_code == 404
        assert response.json()["error"] == "BOOK_NOT_FOUND"

    def test_update(self, client):
        created = _create(client)
        response = client.put(f"/books/{created['id']}", json=dict(BOOK, price="39.99"), auth=ADMIN)
        assert response.status_code == 200
        assert response.json()["data"]["price"] == "39.99"

    def test_soft_delete_restore_and_hard_delete(self, client, fake_transport):
        created = _create(client)
        book_url = f"/books/{created['id']}"

        assert client.delete(book_url, auth=ADMIN).status_code == 200
        assert client.get(book_url, auth=READER).status_code == 404
        assert client.delete(book_url, auth=ADMIN).status_code == 404

        restored = client.patch(f"{book_url}/restore", auth=ADMIN)
        assert restored.status_code == 200
        assert restored.json()["data"]["is_active"] is True

        assert client.delete(f"{book_url}/hard", auth=ADMIN).status_code == 200
        assert client.patch(f"{book_url}/restore", auth=ADMIN).status_code == 404
        assert [m.routing_key.rsplit(".", 1)[-1] for m in fake_transport.sent] == [
            "created", "deleted", "updated", "deleted",
        ]

    def test_lookups(self, client):
        _create(client)
        _create(client, title="Dune", author="Frank Herbert", isbn="9780441172719", genre="Sci-Fi")

        assert client.get("/books/isbn/9780441172719", auth=READER).json()["data"]["title"] == "Dune"
        assert client.get("/books/isbn/0306406152", auth=READER).status_code == 404
        assert [b["title"] for b in client.get("/books/author/joshua bloch", auth=READER).json()["data"]] == [
            "Effective Java"
        ]
        assert len(client.get("/books/search", params={"query": "e"}, auth=READER).json()["data"]) == 2
        assert client.get("/books/colour/red", auth=READER).status_code == 404
        assert client.get("/books/search", auth=READER).status_code == 400


class TestExternalSearch:

    def test_results_are_cached(self, client, fake_books_client):
        for _ in range(2):
            response = client.get("/books/external/search/title", params={"title": "java"}, auth=READER)
            assert response.status_code == 200
            assert response.json()["data"][0]["isbn"] == "9780134685991"
        assert fake_books_client.queries == ["intitle:java"]

        keys = client.get("/cache/keys", auth=READER).json()["data"]
        assert keys == {"keys": ["external-books:title:java"], "count": 1}

    def test_only_admins_clear_the_cache(self, client):
        client.get("/books/external/search", params={"query": "java"}, auth=READER)

        assert client.delete("/cache/clear", auth=READER).status_code == 403
        response = client.delete("/cache/clear", auth=ADMIN)
        assert response.json()["data"] == {"cleared": 1}
