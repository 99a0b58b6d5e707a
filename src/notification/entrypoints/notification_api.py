"""
Notification API - Read endpoints for notifications plus a retry trigger.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

import uvicorn
from fastapi import Depends, FastAPI, Request
from pydantic import EmailStr
from sqlalchemy import create_engine

import config
from notification.adapters import orm
from notification.adapters.sender import LoggingNotificationSender
from notification.domain.model import Notification, NotificationStatus
from notification.service_layer import handlers
from notification.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork
from shared.domain.exceptions import NotFoundError, ValidationError
from shared.entrypoints import responses
from shared.entrypoints.auth import User, require_admin, require_reader

log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Notification API",
    description="Notifications raised by book catalog events",
    version="1.0.0"
)
responses.install(app)


def configure(uow_factory=None, sender=None):
    app.state.uow_factory = uow_factory or SqlAlchemyUnitOfWork
    app.state.sender = sender or LoggingNotificationSender()


@app.on_event("startup")
async def startup_event():
    engine = create_engine(config.get_database_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()
    if getattr(app.state, "uow_factory", None) is None:
        configure()
    logger.info("Notification service initialized")


def get_uow(request: Request) -> AbstractUnitOfWork:
    return request.app.state.uow_factory()


def notification_to_dict(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "recipient_email": notification.recipient_email,
        "recipient_name": notification.recipient_name,
        "subject": notification.subject,
        "content": notification.content,
        "notification_type": notification.notification_type.value,
        "status": notification.status.value,
        "retry_count": notification.retry_count,
        "error_message": notification.error_message,
        "template_name": notification.template_name,
        "reference_id": notification.reference_id,
        "reference_type": notification.reference_type,
        "source_event_id": notification.source_event_id,
        "correlation_id": notification.correlation_id,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
        "sent_at": notification.sent_at.isoformat() if notification.sent_at else None,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "notification-service",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/notifications")
def get_notifications(uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)):
    with uow:
        data = [notification_to_dict(n) for n in uow.notifications.list()]
    return responses.envelope(data, f"Found {len(data)} notifications")


@app.get("/notifications/recipient/{email}")
def get_notifications_for_recipient(
    email: EmailStr, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)
):
    with uow:
        data = [notification_to_dict(n) for n in uow.notifications.list_for_recipient(email)]
    return responses.envelope(data, f"Found {len(data)} notifications for {email}")


@app.get("/notifications/status/{status}")
def get_notifications_by_status(
    status: str, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)
):
    try:
        wanted = NotificationStatus(status.upper())
    except ValueError:
        raise ValidationError("status", f"Unknown status {status}", status)
    with uow:
        data = [notification_to_dict(n) for n in uow.notifications.list_by_status(wanted)]
    return responses.envelope(data, f"Found {len(data)} {wanted.value} notifications")


@app.get("/notifications/{notification_id}")
def get_notification(
    notification_id: str, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_reader)
):
    with uow:
        notification = uow.notifications.get(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        data = notification_to_dict(notification)
    return responses.envelope(data, "Notification retrieved successfully")


@app.post("/notifications/retry-failed")
def retry_failed(request: Request, uow: AbstractUnitOfWork = Depends(get_uow), _: User = Depends(require_admin)):
    sent = handlers.retry_failed_notifications(uow, request.app.state.sender)
    return responses.envelope({"retried": sent}, f"Successfully retried {sent} notifications")


def main():
    uvicorn.run(
        "notification.entrypoints.notification_api:app",
        host=os.getenv("API_BIND_HOST", "0.0.0.0"),
        port=int(os.getenv("NOTIFICATION_API_PORT", "8001")),
    )


if __name__ == "__main__":
    main()
