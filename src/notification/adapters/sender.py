"""Delivery channel for notifications."""

import abc
import logging

from notification.domain import model

logger = logging.getLogger(__name__)


class NotificationDeliveryError(Exception):
    """The channel refused or could not take the notification."""
    pass


class AbstractNotificationSender(abc.ABC):

    @abc.abstractmethod
    def send(self, notification: model.Notification) -> None:
        """
        Deliver a notification.

        Raises:
            NotificationDeliveryError: If delivery failed
        """
        raise NotImplementedError


class LoggingNotificationSender(AbstractNotificationSender):
    """Writes notifications to the log instead of mailing them."""

    def send(self, notification):
        logger.info(
            f"Sending {notification.notification_type.value} notification {notification.id} "
            f"to {notification.recipient_display}: {notification.subject}"
        )
