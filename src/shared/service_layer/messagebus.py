"""Message bus routing commands and events to their handlers."""
# pylint: disable=broad-except

import logging
from typing import Callable, Dict, List, Type, Union

from shared.domain.commands import Command, Event
from shared.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[Command, Event]


class MessageBus:
    """
    Dispatches a command to its single handler, then drains the events the
    unit of work collected from touched aggregates.

    Handlers are wired in by the bootstrap module; the bus holds no global
    registry. Event handler failures are logged and skipped so one failing
    subscriber never fails the command that raised the event.
    """

    def __init__(
        self,
        uow: AbstractUnitOfWork,
        event_handlers: Dict[Type[Event], List[Callable]],
        command_handlers: Dict[Type[Command], Callable],
    ):
        self.uow = uow
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers

    def handle(self, message: Message):
        """Handle a command or event and every event it leads to."""
        queue = [message]
        result = None
        while queue:
            message = queue.pop(0)
            if isinstance(message, Event):
                self.handle_event(message, queue)
            elif isinstance(message, Command):
                result = self.handle_command(message, queue)
            else:
                raise Exception(f"{message} was not an Event or Command")
        return result

    def handle_event(self, event: Event, queue: List[Message]):
        handlers = self.event_handlers.get(type(event), [])
        if not handlers:
            logger.warning(f"No handlers registered for event {type(event).__name__}")
        for handler in handlers:
            try:
                logger.debug(f"Handling event {type(event).__name__} with {handler.__name__}")
                handler(event)
                queue.extend(self.uow.collect_new_events())
            except Exception:
                logger.exception(
                    f"Exception handling event {event.event_type} {event.event_id} "
                    f"[correlation_id={event.correlation_id}]"
                )
                continue

    def handle_command(self, command: Command, queue: List[Message]):
        logger.debug(f"Handling command {command}")
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"No handler registered for command {type(command).__name__}")
        try:
            result = handler(command)
        except Exception as e:
            logger.info(f"Command {type(command).__name__} failed: {e}")
            raise
        new_events = list(self.uow.collect_new_events())
        logger.debug(f"Collected {len(new_events)} events after {type(command).__name__}")
        queue.extend(new_events)
        return result
