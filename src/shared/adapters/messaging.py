"""Redis Streams transport for domain events.

One stream per routing key. Transport metadata travels as separate stream
fields next to the JSON ``body`` so consumers can filter without decoding it.
"""

import abc
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Tuple

import redis

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "correlation-id"
EVENT_TYPE_HEADER = "event-type"
SOURCE_SERVICE_HEADER = "source-service"
TIMESTAMP_HEADER = "timestamp"
MESSAGE_ID_HEADER = "message-id"
EXCHANGE_HEADER = "exchange"
ROUTING_KEY_HEADER = "routing-key"
BODY_FIELD = "body"
ERROR_FIELD = "error"
ORIGINAL_ID_FIELD = "original-message-id"


@dataclass(frozen=True)
class Message:
    """Transport-level message: an opaque body plus headers."""
    exchange: str
    routing_key: str
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


def dead_letter_stream(stream: str) -> str:
    return f"{stream}.dlq"


class AbstractTransport(abc.ABC):
    """Black-box publish channel."""

    @abc.abstractmethod
    def send(self, message: Message) -> None:
        """Hand a message to the broker. Raises on transport failure."""
        raise NotImplementedError


class RedisStreamsTransport(AbstractTransport):
    """Publishes messages with XADD onto the stream named by the routing key."""

    def __init__(self, client: redis.Redis, max_stream_length: int = 10_000):
        self.client = client
        self.max_stream_length = max_stream_length

    def send(self, message: Message) -> None:
        fields = dict(message.headers)
        fields[EXCHANGE_HEADER] = message.exchange
        fields[ROUTING_KEY_HEADER] = message.routing_key
        fields[BODY_FIELD] = message.body
        self.client.xadd(
            message.routing_key,
            fields,
            maxlen=self.max_stream_length,
            approximate=True,
        )


class RedisStreamsSubscriber:
    """
    Consumer-group reader over one or more streams.

    Entries are only removed from the group's pending list once acknowledged,
    which gives at-least-once delivery: anything read but not acked is
    returned again by ``read(pending=True)`` after a restart.
    """

    def __init__(
        self,
        client: redis.Redis,
        streams: Iterable[str],
        group: str,
        consumer: str,
        block_ms: int = 5000,
        batch_size: int = 10,
    ):
        self.client = client
        self.streams = list(streams)
        self.group = group
        self.consumer = consumer
        self.block_ms = block_ms
        self.batch_size = batch_size

    def ensure_groups(self) -> None:
        """Create the consumer group on every stream, ignoring BUSYGROUP."""
        for stream in self.streams:
            try:
                self.client.xgroup_create(stream, self.group, id="0", mkstream=True)
                logger.info(f"Created consumer group {self.group} on {stream}")
            except redis.exceptions.ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    def read(self, pending: bool = False) -> Iterator[Tuple[str, str, Dict[str, str]]]:
        """
        Yield (stream, message_id, fields) for new or still-pending entries.

        New entries come in one batch of at most ``batch_size``. Pending
        entries are paged through completely, so entries that keep failing
        cannot hide the ones behind them.
        """
        if pending:
            for stream in self.streams:
                yield from self._read_pending(stream)
            return
        entries = self.client.xreadgroup(
            groupname=self.group,
            consumername=self.consumer,
            streams={stream: ">" for stream in self.streams},
            count=self.batch_size,
            block=self.block_ms,
        )
        yield from _entries(entries)

    def _read_pending(self, stream: str) -> Iterator[Tuple[str, str, Dict[str, str]]]:
        last_id = "0"
        while True:
            entries = self.client.xreadgroup(
                groupname=self.group,
                consumername=self.consumer,
                streams={stream: last_id},
                count=self.batch_size,
            )
            page = list(_entries(entries))
            for entry in page:
                yield entry
                last_id = entry[1]
            if len(page) < self.batch_size:
                return

    def delivery_count(self, stream: str, message_id: str) -> int:
        """How often the group has handed out this entry, 0 once it is acked."""
        entries = self.client.xpending_range(stream, self.group, min=message_id, max=message_id, count=1)
        return int(entries[0]["times_delivered"]) if entries else 0

    def ack(self, stream: str, message_id: str) -> None:
        self.client.xack(stream, self.group, message_id)

    def dead_letter(self, stream: str, message_id: str, fields: Dict[str, str], error: str) -> None:
        """Copy a message to ``<stream>.dlq`` with the failure reason."""
        record = dict(fields)
        record[ORIGINAL_ID_FIELD] = message_id
        record[ERROR_FIELD] = error
        self.client.xadd(dead_letter_stream(stream), record)
        logger.warning(f"Dead-lettered message {message_id} from {stream}: {error}")


def _text(value) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def _entries(entries) -> Iterator[Tuple[str, str, Dict[str, str]]]:
    for stream, messages in entries or []:
        for message_id, fields in messages:
            yield _text(stream), _text(message_id), _decode_fields(fields)


def _decode_fields(fields: Optional[Dict]) -> Dict[str, str]:
    return {_text(key): _text(value) for key, value in (fields or {}).items()}
