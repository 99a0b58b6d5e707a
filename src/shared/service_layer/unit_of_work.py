"""Abstract Unit of Work coordinating a repository with its transaction."""

from __future__ import annotations

import abc
from typing import Iterator

from shared.domain.commands import Event


class AbstractUnitOfWork(abc.ABC):
    """
    Base unit of work. Subclasses attach a repository exposing ``seen``; the
    events raised on those aggregates are handed to the bus once the handler
    returns, which handlers only do after committing.
    """

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self) -> Iterator[Event]:
        for aggregate in self._seen():
            while aggregate.events:
                yield aggregate.events.pop(0)

    def _seen(self):
        return []

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError
