"""Redis-backed response cache for external book searches."""

import json
import logging
from typing import Any, List, Optional

import redis

from catalog.adapters.google_books import AbstractBooksClient, ExternalBook

logger = logging.getLogger(__name__)

EXTERNAL_BOOKS_CACHE = "external-books"


class RedisCache:
    """
    JSON values under ``<name>:<key>`` with a TTL.

    Redis being down only costs a cache miss; reads and writes log and carry on.
    ``keys`` and ``clear`` only touch this cache's namespace so the event
    streams living in the same Redis are never affected.
    """

    def __init__(self, client: redis.Redis, name: str = EXTERNAL_BOOKS_CACHE, ttl_seconds: int = 3600):
        self.client = client
        self.name = name
        self.ttl_seconds = ttl_seconds

    def _key(self, key: str) -> str:
        return f"{self.name}:{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Failed to read cache entry {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None

    def set(self, key: str, value: Any) -> None:
        try:
            self.client.setex(self._key(key), self.ttl_seconds, json.dumps(value))
            logger.debug(f"Cached {self._key(key)} (TTL: {self.ttl_seconds}s)")
        except redis.RedisError as e:
            logger.error(f"Failed to write cache entry {key}: {e}")

    def keys(self) -> List[str]:
        keys = self.client.scan_iter(match=self._key("*"), count=100)
        return sorted(k.decode("utf-8") if isinstance(k, bytes) else k for k in keys)

    def clear(self) -> int:
        keys = self.keys()
        if keys:
            self.client.delete(*keys)
        logger.info(f"Cleared {len(keys)} entries from cache {self.name}")
        return len(keys)


class CachingBooksClient(AbstractBooksClient):
    """Wraps a books client; results are cached per query, title or author."""

    def __init__(self, client: AbstractBooksClient, cache: RedisCache):
        self.client = client
        self.cache = cache

    def _cached(self, key: str, fetch) -> List[ExternalBook]:
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug(f"Cache hit for {key}")
            return [ExternalBook.from_dict(item) for item in hit]
        books = fetch()
        self.cache.set(key, [book.to_dict() for book in books])
        return books

    def search(self, query: str) -> List[ExternalBook]:
        return self._cached(f"search:{query}", lambda: self.client.search(query))

    def search_by_title(self, title: str) -> List[ExternalBook]:
        return self._cached(f"title:{title}", lambda: self.client.search_by_title(title))

    def search_by_author(self, author: str) -> List[ExternalBook]:
        return self._cached(f"author:{author}", lambda: self.client.search_by_author(author))
