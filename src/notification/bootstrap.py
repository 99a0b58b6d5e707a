"""Wires the notification consumer to storage and the delivery channel."""

import logging
from typing import Optional

import config
from notification.adapters import orm
from notification.adapters.sender import AbstractNotificationSender, LoggingNotificationSender
from notification.service_layer import handlers
from notification.service_layer.consumer import BookEventConsumer
from notification.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork

logger = logging.getLogger(__name__)


def bootstrap(
    uow: Optional[AbstractUnitOfWork] = None,
    sender: Optional[AbstractNotificationSender] = None,
    start_orm: bool = True,
) -> BookEventConsumer:
    if start_orm:
        orm.start_mappers()

    uow = uow or SqlAlchemyUnitOfWork()
    sender = sender or LoggingNotificationSender()
    recipient = config.get_notification_config()

    def dispatch_notification(notification):
        return handlers.dispatch_notification(notification, uow=uow, sender=sender)

    return BookEventConsumer(
        dispatch=dispatch_notification,
        recipient_email=recipient["recipient_email"],
        recipient_name=recipient["recipient_name"],
    )
