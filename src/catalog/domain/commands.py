"""Commands accepted by the catalog service."""

from dataclasses import dataclass
from typing import Optional

from catalog.domain.model import BookDetails
from shared.domain.commands import Command


@dataclass
class CreateBook(Command):
    details: BookDetails
    username: str
    correlation_id: Optional[str] = None


@dataclass
class UpdateBook(Command):
    book_id: str
    details: BookDetails
    username: str
    correlation_id: Optional[str] = None


@dataclass
class DeleteBook(Command):
    """Soft delete by default; ``hard`` removes the row."""
    book_id: str
    username: str
    hard: bool = False
    correlation_id: Optional[str] = None


@dataclass
class RestoreBook(Command):
    book_id: str
    username: str
    correlation_id: Optional[str] = None
