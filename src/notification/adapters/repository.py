import abc
from typing import List, Optional

from notification.domain import model


class AbstractRepository(abc.ABC):

    @abc.abstractmethod
    def add(self, notification: model.Notification) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, notification_id: str) -> Optional[model.Notification]:
        raise NotImplementedError

    @abc.abstractmethod
    def get_by_source_event(self, event_id: str) -> Optional[model.Notification]:
        raise NotImplementedError

    @abc.abstractmethod
    def list(self) -> List[model.Notification]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_for_recipient(self, email: str) -> List[model.Notification]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_by_status(self, status: model.NotificationStatus) -> List[model.Notification]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_retryable(self) -> List[model.Notification]:
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):
    def __init__(self, session):
        self.session = session

    def _query(self):
        return self.session.query(model.Notification)

    def add(self, notification):
        self.session.add(notification)

    def get(self, notification_id):
        return self._query().filter_by(id=notification_id).first()

    def get_by_source_event(self, event_id):
        return self._query().filter_by(source_event_id=event_id).first()

    def list(self):
        return self._query().order_by(model.Notification.created_at.desc()).all()

    def list_for_recipient(self, email):
        return (
            self._query()
            .filter_by(recipient_email=email)
            .order_by(model.Notification.created_at.desc())
            .all()
        )

    def list_by_status(self, status):
        return (
            self._query()
            .filter_by(status=status)
            .order_by(model.Notification.created_at.desc())
            .all()
        )

    def list_retryable(self):
        return (
            self._query()
            .filter(model.Notification.status.in_([model.NotificationStatus.FAILED, model.NotificationStatus.PENDING]))
            .filter(model.Notification.retry_count < model.MAX_RETRIES)
            .order_by(model.Notification.created_at)
            .all()
        )
