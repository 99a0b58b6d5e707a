# pylint: disable=redefined-outer-name
import pytest
from fastapi.testclient import TestClient

from notification.domain.model import Notification, NotificationType
from notification.entrypoints import notification_api
from notification.service_layer import handlers
from notification.service_layer.unit_of_work import SqlAlchemyUnitOfWork
from tests.fakes import FakeSender

pytestmark = pytest.mark.integration

ADMIN = ("admin", "admin123")
READER = ("user", "user123")


@pytest.fixture
def uow_factory(sqlite_session_factory):
    return lambda: SqlAlchemyUnitOfWork(sqlite_session_factory)


@pytest.fixture
def client(uow_factory, fake_sender):
    notification_api.configure(uow_factory=uow_factory, sender=fake_sender)
    return TestClient(notification_api.app)


def _dispatch(uow_factory, source_event_id, recipient="admin@bookmanagement.com", fail=False):
    notification = Notification(
        recipient_email=recipient,
        subject=f"New Book Added: {source_event_id}",
        content="...",
        notification_type=NotificationType.BOOK_CREATED,
        source_event_id=source_event_id,
    )
    return handlers.dispatch_notification(notification, uow_factory(), FakeSender(fail=fail))


class TestNotificationApi:

    def test_requires_credentials(self, client):
        assert client.get("/notifications").status_code == 401

    def test_list_and_get(self, client, uow_factory):
        sent = _dispatch(uow_factory, "event-1")
        _dispatch(uow_factory, "event-2", recipient="other@example.com")

        listed = client.get("/notifications", auth=READER).json()
        assert listed["success"] is True
        assert len(listed["data"]) == 2

        one = client.get(f"/notifications/{sent.id}", auth=READER).json()["data"]
        assert one["status"] == "SENT"
        assert one["notification_type"] == "BOOK_CREATED"
        assert one["source_event_id"] == "event-1"

    def test_unknown_notification(self, client):
        response = client.get("/notifications/missing", auth=READER)
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_by_recipient(self, client, uow_factory):
        _dispatch(uow_factory, "event-1")
        _dispatch(uow_factory, "event-2", recipient="other@example.com")

        data = client.get("/notifications/recipient/other@example.com", auth=READER).json()["data"]
        assert [n["source_event_id"] for n in data] == ["event-2"]

    def test_recipient_must_be_an_email(self, client):
        response = client.get("/notifications/recipient/not-an-email", auth=READER)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_by_status(self, client, uow_factory):
        _dispatch(uow_factory, "event-1")
        _dispatch(uow_factory, "event-2", fail=True)

        data = client.get("/notifications/status/failed", auth=READER).json()["data"]
        assert [n["source_event_id"] for n in data] == ["event-2"]
        assert data[0]["error_message"] == "mail server down"

        response = client.get("/notifications/status/lost", auth=READER)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "status"

    def test_retry_failed_is_admin_only(self, client, uow_factory, fake_sender):
        _dispatch(uow_factory, "event-1", fail=True)

        assert client.post("/notifications/retry-failed", auth=READER).status_code == 403

        response = client.post("/notifications/retry-failed", auth=ADMIN)
        assert response.status_code == 200
        assert response.json()["data"] == {"retried": 1}
        assert len(fake_sender.sent) == 1
        assert client.get("/notifications/status/SENT", auth=READER).json()["data"][0]["retry_count"] == 1
