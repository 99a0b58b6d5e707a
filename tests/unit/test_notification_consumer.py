# pylint: disable=redefined-outer-name
import json
import threading
from collections import Counter

import pytest

from notification.entrypoints import redis_eventconsumer
from notification.service_layer.consumer import BookEventConsumer, ConsumerState
from shared.adapters import messaging
from shared.adapters.event_publisher import to_message
from shared.domain.events import BookCreated, BookDeleted

STREAM = "book-service.book.created"


def _fields(event):
    message = to_message(event)
    fields = dict(message.headers)
    fields[messaging.BODY_FIELD] = message.body
    return fields


class RecordingDispatch:
    def __init__(self, fail=False):
        self.dispatched = []
        self.fail = fail

    def __call__(self, notification):
        if self.fail:
            raise RuntimeError("database unavailable")
        self.dispatched.append(notification)
        return notification


class FakeSubscriber:
    """Holds entries in memory and records how each one was settled."""

    def __init__(self, entries=None):
        self.entries = list(entries or [])
        self.pending = []
        self.acked = []
        self.dead_lettered = []
        self.deliveries = Counter()
        self.groups_ensured = False

    def ensure_groups(self):
        self.groups_ensured = True

    def read(self, pending=False):
        if pending:
            entries = list(self.pending)
        else:
            entries, self.entries = self.entries, []
            self.pending.extend(entries)
        self.deliveries.update(message_id for _, message_id, _ in entries)
        return entries

    def delivery_count(self, stream, message_id):
        return self.deliveries[message_id]

    def ack(self, stream, message_id):
        self.acked.append(message_id)
        self.pending = [e for e in self.pending if e[1] != message_id]

    def dead_letter(self, stream, message_id, fields, error):
        self.dead_lettered.append((message_id, error))


@pytest.fixture
def dispatch():
    return RecordingDispatch()


@pytest.fixture
def consumer(dispatch):
    return BookEventConsumer(dispatch, recipient_email="admin@bookmanagement.com", recipient_name="Admin")


class TestBookEventConsumer:

    def test_event_becomes_notification(self, consumer, dispatch):
        event = BookCreated(aggregate_id="book-1", title="Dune", author="Frank Herbert", correlation_id="corr-1")

        outcome = consumer.process(_fields(event))

        assert outcome.state == ConsumerState.DISPATCHED
        assert outcome.event_id == event.event_id
        [notification] = dispatch.dispatched
        assert notification.source_event_id == event.event_id
        assert notification.reference_id == "book-1"
        assert notification.reference_type == "BOOK"
        assert notification.correlation_id == "corr-1"
        assert notification.subject == "New Book Added: Dune"
        assert notification.recipient_name == "Admin"

    def test_unreadable_body_is_a_bad_message(self, consumer, dispatch):
        outcome = consumer.process({messaging.BODY_FIELD: "{broken", messaging.MESSAGE_ID_HEADER: "m-1"})

        assert outcome.state == ConsumerState.FAILED
        assert outcome.failed_at == ConsumerState.RECEIVED
        assert outcome.bad_message
        assert dispatch.dispatched == []

    def test_missing_body_is_a_bad_message(self, consumer):
        assert consumer.process({}).bad_message

    @pytest.mark.parametrize("event_type", [["BookCreated"], {}, None])
    def test_non_string_event_type_is_a_bad_message(self, consumer, dispatch, event_type):
        body = json.dumps({"eventType": event_type, "eventId": "e-1", "aggregateId": "b", "title": "t", "author": "a"})

        outcome = consumer.process({messaging.BODY_FIELD: body})

        assert outcome.bad_message
        assert dispatch.dispatched == []

    def test_dispatch_failure_is_not_a_bad_message(self):
        consumer = BookEventConsumer(RecordingDispatch(fail=True), recipient_email="a@b.com")
        outcome = consumer.process(_fields(BookDeleted(aggregate_id="b", title="t", author="a")))

        assert outcome.state == ConsumerState.FAILED
        assert outcome.failed_at == ConsumerState.NOTIFICATION_BUILT
        assert not outcome.bad_message


class TestHandleMessage:

    def test_dispatched_message_is_acked(self, consumer):
        subscriber = FakeSubscriber()
        fields = _fields(BookCreated(aggregate_id="b", title="t", author="a"))

        redis_eventconsumer.handle_message(subscriber, consumer, STREAM, "1-0", fields)

        assert subscriber.acked == ["1-0"]
        assert subscriber.dead_lettered == []

    def test_bad_message_is_dead_lettered_and_acked(self, consumer):
        subscriber = FakeSubscriber()

        redis_eventconsumer.handle_message(subscriber, consumer, STREAM, "1-0", {messaging.BODY_FIELD: "nope"})

        assert [message_id for message_id, _ in subscriber.dead_lettered] == ["1-0"]
        assert subscriber.acked == ["1-0"]

    def test_bad_message_can_be_dropped(self, consumer):
        subscriber = FakeSubscriber()

        redis_eventconsumer.handle_message(
            subscriber, consumer, STREAM, "1-0", {messaging.BODY_FIELD: "nope"}, on_bad_message=redis_eventconsumer.DROP
        )

        assert subscriber.dead_lettered == []
        assert subscriber.acked == ["1-0"]

    def test_dispatch_failure_stays_pending(self):
        subscriber = FakeSubscriber()
        consumer = BookEventConsumer(RecordingDispatch(fail=True), recipient_email="a@b.com")
        fields = _fields(BookCreated(aggregate_id="b", title="t", author="a"))

        redis_eventconsumer.handle_message(subscriber, consumer, STREAM, "1-0", fields)

        assert subscriber.acked == []
        assert subscriber.dead_lettered == []

    def test_dispatch_failure_is_dead_lettered_after_max_deliveries(self):
        """Test that an entry that keeps failing stops being redelivered."""
        subscriber = FakeSubscriber()
        subscriber.deliveries["1-0"] = 3
        consumer = BookEventConsumer(RecordingDispatch(fail=True), recipient_email="a@b.com")
        fields = _fields(BookCreated(aggregate_id="b", title="t", author="a"))

        redis_eventconsumer.handle_message(subscriber, consumer, STREAM, "1-0", fields, max_deliveries=3)

        [(message_id, error)] = subscriber.dead_lettered
        assert message_id == "1-0"
        assert "database unavailable" in error
        assert subscriber.acked == ["1-0"]


class TestRun:

    def test_pending_entries_are_processed_first(self, consumer, dispatch):
        """Test that a restart settles what the previous run left unacked."""
        event = BookCreated(aggregate_id="b", title="t", author="a")
        subscriber = FakeSubscriber()
        subscriber.pending = [(STREAM, "1-0", _fields(event))]
        stop = threading.Event()
        stop.set()

        redis_eventconsumer.run(subscriber, consumer, stop=stop)

        assert subscriber.groups_ensured
        assert subscriber.acked == ["1-0"]
        assert [n.source_event_id for n in dispatch.dispatched] == [event.event_id]

    def test_stops_when_asked(self, consumer, dispatch):
        event = BookCreated(aggregate_id="b", title="t", author="a")
        subscriber = FakeSubscriber([(STREAM, "2-0", _fields(event))])
        stop = threading.Event()

        def dispatch_and_stop(notification):
            stop.set()
            return dispatch(notification)

        consumer.dispatch = dispatch_and_stop
        redis_eventconsumer.run(subscriber, consumer, stop=stop)

        assert subscriber.acked == ["2-0"]
        assert subscriber.pending == []

    def test_streams_cover_every_book_event(self):
        assert sorted(redis_eventconsumer.BOOK_STREAMS) == [
            "book-service.book.created",
            "book-service.book.deleted",
            "book-service.book.updated",
        ]
