"""Publishes domain events onto the message transport, at least once."""
# pylint: disable=broad-except

import logging
import threading
from typing import Callable, Optional

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from shared.adapters import messaging
from shared.adapters.serialization import serialize_event
from shared.domain.commands import Event
from shared.domain.exceptions import PublishError, RetryAborted, RetryExhausted

logger = logging.getLogger(__name__)


def _interruptible_sleep(seconds: float, cancel: threading.Event) -> bool:
    """Wait for ``seconds``; returns True if cancellation was requested meanwhile."""
    return cancel.wait(seconds)


def to_message(event: Event) -> messaging.Message:
    headers = {
        messaging.CORRELATION_ID_HEADER: event.correlation_id,
        messaging.EVENT_TYPE_HEADER: event.event_type,
        messaging.SOURCE_SERVICE_HEADER: event.source_service,
        messaging.TIMESTAMP_HEADER: event.timestamp.isoformat(),
        messaging.MESSAGE_ID_HEADER: event.event_id,
    }
    return messaging.Message(
        exchange=event.exchange,
        routing_key=event.routing_key,
        body=serialize_event(event),
        headers=headers,
    )


class EventPublisher:
    """
    Sends events through an ``AbstractTransport``.

    Failures come back as values: ``None`` means the event was handed to the
    broker, otherwise a ``PublishError`` describes why not. There is no
    deduplication here; a retried send may deliver the same event_id twice and
    consumers are expected to cope.
    """

    def __init__(
        self,
        transport: messaging.AbstractTransport,
        base_delay: float = 1.0,
        sleep: Callable[[float, threading.Event], bool] = _interruptible_sleep,
    ):
        self.transport = transport
        self.base_delay = base_delay
        self.sleep = sleep

    def publish(self, event: Event) -> Optional[PublishError]:
        """Make exactly one send attempt."""
        message = to_message(event)
        try:
            self.transport.send(message)
        except Exception as e:
            logger.warning(
                f"Failed to publish {event.event_type} {event.event_id} "
                f"[correlation_id={event.correlation_id}]: {e}"
            )
            return PublishError(event.event_id, f"Failed to publish event {event.event_id}: {e}", cause=e)

        logger.info(
            f"Published {event.event_type} {event.event_id} to {message.routing_key} "
            f"[correlation_id={event.correlation_id}]"
        )
        return None

    def publish_with_retry(
        self,
        event: Event,
        max_attempts: int = 3,
        cancel: Optional[threading.Event] = None,
    ) -> Optional[PublishError]:
        """
        Publish with linear backoff between attempts.

        The wait after attempt ``n`` is ``n * base_delay``. Setting ``cancel``
        during a wait stops the loop with ``RetryAborted``; running out of
        attempts gives ``RetryExhausted`` with the last transport error.
        """
        cancel = cancel or threading.Event()
        attempts = 0
        last_error: Optional[PublishError] = None

        def attempt():
            nonlocal attempts, last_error
            attempts += 1
            last_error = self.publish(event)
            if last_error is not None:
                raise last_error

        def wait(seconds: float):
            if self.sleep(seconds, cancel):
                logger.warning(f"Publishing of {event.event_id} cancelled after {attempts} attempts")
                raise RetryAborted(event.event_id, attempts, last_error.cause if last_error else None)

        retryer = Retrying(
            stop=stop_after_attempt(max(1, max_attempts)),
            wait=wait_incrementing(start=self.base_delay, increment=self.base_delay),
            retry=retry_if_exception_type(PublishError),
            sleep=wait,
            before_sleep=before_sleep_log(logger, logging.INFO),
        )
        try:
            retryer(attempt)
        except RetryAborted as aborted:
            return aborted
        except RetryError as e:
            error = e.last_attempt.exception()
            logger.error(
                f"Giving up on {event.event_type} {event.event_id} after {attempts} attempts "
                f"[correlation_id={event.correlation_id}]"
            )
            return RetryExhausted(event.event_id, attempts, getattr(error, "cause", None) or error)
        return None
