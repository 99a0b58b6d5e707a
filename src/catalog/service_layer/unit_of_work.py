# pylint: disable=attribute-defined-outside-init
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from catalog.adapters import repository
from shared.service_layer.unit_of_work import AbstractUnitOfWork as BaseUnitOfWork


class AbstractUnitOfWork(BaseUnitOfWork):
    books: repository.AbstractRepository

    def _seen(self):
        books = getattr(self, "books", None)
        return books.seen if books is not None else []


DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_engine(config.get_database_uri(), pool_pre_ping=True),
    expire_on_commit=False,
)


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory=DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.books = repository.SqlAlchemyRepository(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def _commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
