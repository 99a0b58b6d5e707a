"""Google Books API client - adapter for searching books outside the catalog."""
# pylint: disable=broad-except

import abc
import logging
import re
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import requests

import config
from shared.domain.exceptions import ExternalApiError

logger = logging.getLogger(__name__)


@dataclass
class ExternalBook:
    """A search hit from the external catalog. Not persisted."""
    title: str
    author: str
    isbn: Optional[str] = None
    published_date: Optional[date] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    language: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["published_date"] = self.published_date.isoformat() if self.published_date else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExternalBook":
        data = dict(data)
        if data.get("published_date"):
            data["published_date"] = date.fromisoformat(data["published_date"])
        return cls(**data)


class GoogleBooksError(ExternalApiError):
    """Raised when the Google Books API cannot be reached or answers badly."""
    pass


class AbstractBooksClient(abc.ABC):

    @abc.abstractmethod
    def search(self, query: str) -> List[ExternalBook]:
        """
        Run a free-text volume search.

        Raises:
            GoogleBooksError: If the request fails or the response is unreadable
        """
        raise NotImplementedError

    def search_by_title(self, title: str) -> List[ExternalBook]:
        return self.search(f"intitle:{title}")

    def search_by_author(self, author: str) -> List[ExternalBook]:
        return self.search(f"inauthor:{author}")


def parse_published_date(value: Optional[str]) -> date:
    """Google reports YYYY, YYYY-MM or YYYY-MM-DD; anything else means today."""
    if value:
        try:
            if re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
                return date.fromisoformat(value)
            if re.fullmatch(r"\d{4}-\d{2}", value):
                return date.fromisoformat(f"{value}-01")
            if re.fullmatch(r"\d{4}", value):
                return date.fromisoformat(f"{value}-01-01")
        except ValueError:
            logger.warning(f"Could not parse published date {value!r}")
    return date.today()


def parse_volume(volume_info: Dict[str, Any]) -> Optional[ExternalBook]:
    """Map a ``volumeInfo`` object; volumes without title or author are skipped."""
    title = volume_info.get("title")
    authors = volume_info.get("authors") or []
    if not title or not authors:
        return None

    isbn = None
    for identifier in volume_info.get("industryIdentifiers") or []:
        if identifier.get("type") in ("ISBN_13", "ISBN_10"):
            isbn = identifier.get("identifier")
            break

    return ExternalBook(
        title=title,
        author=authors[0],
        isbn=isbn,
        published_date=parse_published_date(volume_info.get("publishedDate")),
        publisher=volume_info.get("publisher"),
        description=volume_info.get("description"),
        page_count=volume_info.get("pageCount"),
        language=volume_info.get("language"),
    )


class GoogleBooksClient(AbstractBooksClient):
    """HTTP client for the Google Books ``volumes`` endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        max_results: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        settings = config.get_google_books_config()
        self.base_url = (base_url or settings["base_url"]).rstrip("/")
        self.api_key = api_key if api_key is not None else settings["api_key"]
        self.max_results = max_results or settings["max_results"]
        self.timeout = timeout or settings["timeout"]

    def search(self, query: str) -> List[ExternalBook]:
        url = f"{self.base_url}/volumes"
        params = {"q": query, "maxResults": self.max_results}
        if self.api_key:
            params["key"] = self.api_key

        logger.info(f"Querying Google Books for {query!r}")

        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Google Books answered with an error for {query!r}: {e}")
            raise GoogleBooksError(f"Failed to fetch data from Google Books API: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling Google Books: {e}")
            raise GoogleBooksError(f"Error calling Google Books API: {e}") from e
        except ValueError as e:
            logger.error(f"Unreadable Google Books response: {e}")
            raise GoogleBooksError("Error parsing Google Books API response") from e

        books = []
        for item in payload.get("items") or []:
            try:
                book = parse_volume(item.get("volumeInfo") or {})
            except Exception as e:
                logger.warning(f"Skipping unparseable volume: {e}")
                continue
            if book is not None:
                books.append(book)

        logger.info(f"Parsed {len(books)} books from Google Books response")
        return books
