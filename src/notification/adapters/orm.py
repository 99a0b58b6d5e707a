import logging

from sqlalchemy import Column, DateTime, Enum, Integer, String, Table, Text, inspect
from sqlalchemy.orm import registry

from notification.domain import model

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

notifications = Table(
    "notifications",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("recipient_email", String(100), nullable=False, index=True),
    Column("recipient_name", String(100)),
    Column("subject", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("notification_type", Enum(model.NotificationType, native_enum=False, length=30), nullable=False),
    Column("status", Enum(model.NotificationStatus, native_enum=False, length=20), nullable=False, index=True),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("error_message", String(500)),
    Column("template_name", String(100)),
    Column("reference_id", String(100)),
    Column("reference_type", String(50)),
    Column("source_event_id", String(36), nullable=False, unique=True),
    Column("correlation_id", String(100)),
    Column("created_at", DateTime(timezone=True)),
    Column("sent_at", DateTime(timezone=True)),
)


def start_mappers():
    if inspect(model.Notification, raiseerr=False) is not None:
        return
    logger.info("Starting notification mappers")
    mapper_registry.map_imperatively(model.Notification, notifications)
