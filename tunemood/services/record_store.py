"""
Durable Record Store

Narrow key/record interface the genre cache, the listening history and
the correlation engine persist through. The default implementation keeps
one diskcache collection per record type.
"""

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog
from diskcache import Cache, Timeout

from ..utils.errors import DurableStoreError

logger = structlog.get_logger(__name__)

Record = Dict[str, Any]
Predicate = Callable[[Record], bool]

# Collections used by the pipeline
GENRE_CACHE = "artist_genre_cache"
LISTENING_HISTORY = "listening_history"
JOURNAL_ENTRIES = "journal_entries"
MOOD_CORRELATIONS = "genre_mood_correlations"

COLLECTIONS = (GENRE_CACHE, LISTENING_HISTORY, JOURNAL_ENTRIES, MOOD_CORRELATIONS)

_BACKEND_ERRORS = (sqlite3.Error, OSError, Timeout)


class RecordStore(ABC):
    """Key/record store with create-or-update semantics."""

    @abstractmethod
    async def find_one(self, collection: str, key: str) -> Optional[Record]:
        """Return the record stored under ``key`` or None."""

    @abstractmethod
    async def find_many(self, collection: str, predicate: Optional[Predicate] = None) -> List[Record]:
        """Return every record matching ``predicate`` (all records if None)."""

    @abstractmethod
    async def upsert(self, collection: str, key: str, fields: Record) -> Record:
        """Create the record or merge ``fields`` into the existing one."""

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool:
        """Delete one record; False if it did not exist."""

    @abstractmethod
    async def delete_many(self, collection: str, predicate: Predicate) -> int:
        """Delete every record matching ``predicate``; returns the count."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Number of records in a collection."""

    async def close(self) -> None:
        """Release backend resources."""


class DiskRecordStore(RecordStore):
    """
    diskcache-backed record store.

    Each collection lives in its own cache directory under ``cache_dir``.
    Backend failures surface as DurableStoreError (retryable).
    """

    def __init__(self, cache_dir: str = "data/cache"):
        """
        Initialize record store.

        Args:
            cache_dir: Directory for cache storage
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.caches: Dict[str, Cache] = {}

        logger.info(
            "Record store initialized",
            cache_dir=str(self.cache_dir),
            collections=list(COLLECTIONS)
        )

    def _cache(self, collection: str) -> Cache:
        if collection not in self.caches:
            self.caches[collection] = Cache(str(self.cache_dir / collection))
        return self.caches[collection]

    def _failure(self, operation: str, collection: str, error: Exception) -> DurableStoreError:
        logger.error(
            "Record store operation failed",
            operation=operation,
            collection=collection,
            error=str(error),
            error_type=type(error).__name__
        )
        return DurableStoreError(operation, collection, error)

    def _scan(self, cache: Cache, predicate: Optional[Predicate]):
        for key in list(cache.iterkeys()):
            record = cache.get(key)
            # Deleted between listing and reading
            if record is None:
                continue
            if predicate is None or predicate(record):
                yield key, record

    async def find_one(self, collection: str, key: str) -> Optional[Record]:
        try:
            record = self._cache(collection).get(key)
        except _BACKEND_ERRORS as e:
            raise self._failure("find_one", collection, e) from e
        return dict(record) if record is not None else None

    async def find_many(self, collection: str, predicate: Optional[Predicate] = None) -> List[Record]:
        try:
            return [dict(record) for _, record in self._scan(self._cache(collection), predicate)]
        except _BACKEND_ERRORS as e:
            raise self._failure("find_many", collection, e) from e

    async def upsert(self, collection: str, key: str, fields: Record) -> Record:
        try:
            cache = self._cache(collection)
            with cache.transact():
                record = dict(cache.get(key) or {})
                record.update(fields)
                cache.set(key, record)
        except _BACKEND_ERRORS as e:
            raise self._failure("upsert", collection, e) from e
        return record

    async def delete(self, collection: str, key: str) -> bool:
        try:
            return bool(self._cache(collection).delete(key))
        except _BACKEND_ERRORS as e:
            raise self._failure("delete", collection, e) from e

    async def delete_many(self, collection: str, predicate: Predicate) -> int:
        try:
            cache = self._cache(collection)
            deleted = 0
            for key, _ in list(self._scan(cache, predicate)):
                if cache.delete(key):
                    deleted += 1
        except _BACKEND_ERRORS as e:
            raise self._failure("delete_many", collection, e) from e

        logger.debug("Records deleted", collection=collection, deleted=deleted)
        return deleted

    async def count(self, collection: str) -> int:
        try:
            return len(self._cache(collection))
        except _BACKEND_ERRORS as e:
            raise self._failure("count", collection, e) from e

    async def close(self) -> None:
        """Close all cache connections."""
        for name, cache in self.caches.items():
            try:
                cache.close()
                logger.debug("Cache closed", cache_name=name)
            except _BACKEND_ERRORS as e:
                logger.error("Failed to close cache", cache_name=name, error=str(e))
        self.caches.clear()
