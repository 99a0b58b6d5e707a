import logging

from sqlalchemy.exc import IntegrityError

from notification.adapters.sender import AbstractNotificationSender, NotificationDeliveryError
from notification.domain import model
from notification.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def _deliver(notification: model.Notification, sender: AbstractNotificationSender) -> None:
    try:
        sender.send(notification)
    except NotificationDeliveryError as e:
        notification.mark_as_failed(str(e))
        logger.warning(f"Failed to send notification {notification.id}: {e}")
        return
    notification.mark_as_sent()
    logger.info(f"Sent notification {notification.id} to {notification.recipient_email}")


def dispatch_notification(
    notification: model.Notification,
    uow: AbstractUnitOfWork,
    sender: AbstractNotificationSender,
) -> model.Notification:
    """
    Persist a notification as PENDING, try to deliver it, record the outcome.

    Dispatch is idempotent on ``source_event_id``: a redelivered event returns
    the notification stored the first time and sends nothing. A failed
    delivery is stored as FAILED for the retry job and is not an error here;
    only storage failures propagate.
    """
    with uow:
        existing = uow.notifications.get_by_source_event(notification.source_event_id)
        if existing is not None:
            logger.info(
                f"Event {notification.source_event_id} already produced notification {existing.id}, skipping"
            )
            return existing

        uow.notifications.add(notification)
        try:
            uow.commit()
        except IntegrityError:
            uow.rollback()
            existing = uow.notifications.get_by_source_event(notification.source_event_id)
            if existing is None:
                raise
            logger.info(f"Concurrent delivery of event {notification.source_event_id}, keeping {existing.id}")
            return existing

        _deliver(notification, sender)
        uow.commit()
    return notification


def retry_failed_notifications(uow: AbstractUnitOfWork, sender: AbstractNotificationSender) -> int:
    """Resend every notification that may still be retried. Returns how many went out."""
    sent = 0
    with uow:
        retryable = uow.notifications.list_retryable()
        logger.info(f"Retrying {len(retryable)} notifications")
        for notification in retryable:
            notification.reset_for_retry()
            _deliver(notification, sender)
            if notification.status == model.NotificationStatus.SENT:
                sent += 1
        uow.commit()
    logger.info(f"Retried notifications: {sent} sent")
    return sent
