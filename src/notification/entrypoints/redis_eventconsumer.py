"""Redis Streams consumer for the notification service - listens to book events."""

import logging
import os
import signal
import threading
from typing import Optional

import redis
from sqlalchemy import create_engine

import config
from notification import bootstrap
from notification.adapters import orm
from notification.service_layer.consumer import BookEventConsumer, ConsumerState, ConsumptionOutcome
from shared.adapters.messaging import RedisStreamsSubscriber
from shared.domain.events import EVENT_TYPES

log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
logging.basicConfig(
    level=getattr(logging, log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEAD_LETTER = "dead-letter"
DROP = "drop"
MAX_DELIVERIES = 5

BOOK_STREAMS = [event_cls.topic() for event_cls in EVENT_TYPES.values()]


def handle_message(
    subscriber: RedisStreamsSubscriber,
    consumer: BookEventConsumer,
    stream: str,
    message_id: str,
    fields: dict,
    on_bad_message: str = DEAD_LETTER,
    max_deliveries: int = MAX_DELIVERIES,
) -> ConsumptionOutcome:
    """
    Process one stream entry and settle it.

    Dispatched messages and bad payloads are acknowledged (bad ones after
    being dead-lettered or dropped). Dispatch failures stay pending so the
    entry is delivered again, until it has been delivered ``max_deliveries``
    times; then it is dead-lettered too.
    """
    outcome = consumer.process(fields)

    if outcome.state == ConsumerState.DISPATCHED:
        subscriber.ack(stream, message_id)
    elif outcome.bad_message:
        if on_bad_message == DROP:
            logger.warning(f"Dropping bad message {message_id} from {stream}: {outcome.error}")
        else:
            subscriber.dead_letter(stream, message_id, fields, str(outcome.error))
        subscriber.ack(stream, message_id)
    else:
        deliveries = subscriber.delivery_count(stream, message_id)
        if deliveries >= max_deliveries:
            subscriber.dead_letter(
                stream, message_id, fields, f"Gave up after {deliveries} deliveries: {outcome.error}"
            )
            subscriber.ack(stream, message_id)
        else:
            logger.warning(
                f"Leaving message {message_id} on {stream} pending for redelivery "
                f"({deliveries}/{max_deliveries}): {outcome.error}"
            )

    return outcome


def run(
    subscriber: RedisStreamsSubscriber,
    consumer: BookEventConsumer,
    on_bad_message: str = DEAD_LETTER,
    stop: Optional[threading.Event] = None,
    max_deliveries: int = MAX_DELIVERIES,
) -> None:
    """Consume until ``stop`` is set, starting with anything left pending."""
    stop = stop or threading.Event()
    subscriber.ensure_groups()

    def drain(pending: bool) -> int:
        count = 0
        for stream, message_id, fields in subscriber.read(pending=pending):
            handle_message(subscriber, consumer, stream, message_id, fields, on_bad_message, max_deliveries)
            count += 1
        return count

    drain(pending=True)
    while not stop.is_set():
        try:
            if drain(pending=False) == 0:
                # Idle: give entries that failed earlier another go
                drain(pending=True)
        except redis.exceptions.ConnectionError as e:
            logger.error(f"Lost connection to Redis: {e}")
            stop.wait(1.0)


def main():
    """Main entry point for the notification consumer."""
    logger.info("Notification Redis Streams consumer starting")

    engine = create_engine(config.get_database_uri())
    orm.metadata.create_all(engine)
    consumer = bootstrap.bootstrap()
    logger.info("Database tables created and ORM mappers initialized")

    settings = config.get_messaging_config()
    subscriber = RedisStreamsSubscriber(
        redis.Redis(**config.get_redis_host_and_port()),
        streams=BOOK_STREAMS,
        group=settings["consumer_group"],
        consumer=settings["consumer_name"],
        block_ms=settings["block_ms"],
    )

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    signal.signal(signal.SIGINT, lambda *_: stop.set())

    logger.info(f"Consuming {', '.join(BOOK_STREAMS)} as {settings['consumer_group']}/{settings['consumer_name']}")
    run(
        subscriber,
        consumer,
        on_bad_message=settings["on_bad_message"],
        stop=stop,
        max_deliveries=settings["max_deliveries"],
    )
    logger.info("Notification consumer stopped")


if __name__ == "__main__":
    main()
