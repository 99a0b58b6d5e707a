"""Wires the catalog's handlers to their dependencies."""

import inspect
import logging
from typing import Callable, Optional

import redis

import config
from catalog.adapters import orm
from catalog.domain import commands
from catalog.service_layer import handlers
from catalog.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork
from shared.adapters.event_publisher import EventPublisher
from shared.adapters.messaging import RedisStreamsTransport
from shared.domain import events
from shared.service_layer.messagebus import MessageBus

logger = logging.getLogger(__name__)


def default_publisher() -> EventPublisher:
    settings = config.get_messaging_config()
    client = redis.Redis(**config.get_redis_host_and_port())
    transport = RedisStreamsTransport(client, max_stream_length=settings["max_stream_length"])
    return EventPublisher(transport, base_delay=settings["base_delay_seconds"])


def inject_dependencies(handler: Callable, dependencies: dict) -> Callable:
    params = inspect.signature(handler).parameters
    deps = {name: dependency for name, dependency in dependencies.items() if name in params}

    def injected(message):
        return handler(message, **deps)

    injected.__name__ = handler.__name__
    return injected


def bootstrap(
    uow: Optional[AbstractUnitOfWork] = None,
    publisher: Optional[EventPublisher] = None,
    start_orm: bool = True,
    max_attempts: Optional[int] = None,
) -> MessageBus:
    """Build a message bus for one unit of work. Call once per request."""
    if start_orm:
        orm.start_mappers()

    uow = uow or SqlAlchemyUnitOfWork()
    dependencies = {
        "uow": uow,
        "publisher": publisher or default_publisher(),
        "max_attempts": max_attempts or config.get_messaging_config()["max_attempts"],
    }

    publish = inject_dependencies(handlers.publish_book_event, dependencies)
    event_handlers = {
        events.BookCreated: [publish],
        events.BookUpdated: [publish],
        events.BookDeleted: [publish],
    }
    command_handlers = {
        commands.CreateBook: inject_dependencies(handlers.create_book, dependencies),
        commands.UpdateBook: inject_dependencies(handlers.update_book, dependencies),
        commands.DeleteBook: inject_dependencies(handlers.delete_book, dependencies),
        commands.RestoreBook: inject_dependencies(handlers.restore_book, dependencies),
    }
    return MessageBus(uow=uow, event_handlers=event_handlers, command_handlers=command_handlers)
