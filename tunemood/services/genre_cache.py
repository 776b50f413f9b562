"""
Two-Tier Genre Cache

In-memory map in front of the durable ``artist_genre_cache`` collection.
Reads go memory first, then durable (read-through); writes go to both
tiers (write-through). Durable failures never reach the caller: reads
degrade to a miss, writes are logged and dropped.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import structlog

from .record_store import GENRE_CACHE, RecordStore
from .retry import DEFAULT_POLICY, RetryPolicy, with_retry
from ..models.genre_models import CacheEntry, ClassificationResult, utc_now

logger = structlog.get_logger(__name__)

GENRE_CACHE_TTL = timedelta(days=7)


class GenreCache:
    """
    Genre classification cache with a fixed 7-day TTL.

    The memory tier is a plain dict owned by this instance; the clock is
    injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = utc_now,
        retry_policy: RetryPolicy = DEFAULT_POLICY
    ):
        self.store = store
        self.clock = clock
        self.retry_policy = retry_policy
        self.ttl = GENRE_CACHE_TTL
        self._memory: Dict[str, CacheEntry] = {}
        self._started = False
        self.logger = logger.bind(component="GenreCache")

    async def init(self) -> None:
        """Start the cache with an empty memory tier."""
        self._memory.clear()
        self._started = True
        self.logger.info("Genre cache initialized", ttl_days=self.ttl.days)

    async def shutdown(self) -> None:
        """Drop the memory tier and close the durable store."""
        self._memory.clear()
        self._started = False
        await self.store.close()
        self.logger.info("Genre cache shut down")

    async def get(self, key: str) -> Optional[ClassificationResult]:
        """
        Look up a classification.

        Args:
            key: Cache key from ``make_cache_key``

        Returns:
            The cached result, or None on a miss (including expired entries
            and durable read failures)
        """
        now = self.clock()

        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired(now, self.ttl):
                self.logger.debug("Cache hit", tier="memory", key=key)
                return entry.result
            del self._memory[key]

        try:
            record = await with_retry(
                lambda: self.store.find_one(GENRE_CACHE, key),
                f"genre cache read {key}",
                self.retry_policy
            )
        except Exception as e:
            self.logger.error("Durable cache read failed", key=key, error=str(e))
            return None

        if record is None:
            self.logger.debug("Cache miss", key=key)
            return None

        try:
            entry = CacheEntry.from_record(record)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning("Discarding malformed cache record", key=key, error=str(e))
            return None

        if entry.is_expired(now, self.ttl):
            self.logger.debug("Cache entry expired", key=key)
            return None

        self._memory[key] = entry
        self.logger.debug("Cache hit", tier="durable", key=key)
        return entry.result

    async def set(self, key: str, result: ClassificationResult) -> None:
        """Store a classification in both tiers."""
        entry = CacheEntry(key=key, result=result, last_updated=self.clock())
        self._memory[key] = entry

        try:
            await with_retry(
                lambda: self.store.upsert(GENRE_CACHE, key, entry.to_record()),
                f"genre cache write {key}",
                self.retry_policy
            )
        except Exception as e:
            self.logger.error("Durable cache write failed", key=key, error=str(e))

    async def invalidate(self, key: str) -> None:
        """Remove a key from both tiers; a missing durable record is fine."""
        self._memory.pop(key, None)

        try:
            deleted = await with_retry(
                lambda: self.store.delete(GENRE_CACHE, key),
                f"genre cache delete {key}",
                self.retry_policy
            )
            self.logger.info("Cache entry invalidated", key=key, durable_deleted=deleted)
        except Exception as e:
            self.logger.error("Durable cache delete failed", key=key, error=str(e))

    async def cleanup(self) -> Dict[str, int]:
        """
        Delete every expired entry from both tiers.

        Returns:
            Number of removed entries per tier (``memory``, ``durable``)
        """
        now = self.clock()

        expired_keys = [k for k, entry in self._memory.items() if entry.is_expired(now, self.ttl)]
        for key in expired_keys:
            self._memory.pop(key, None)

        def is_expired(record: Dict[str, Any]) -> bool:
            try:
                return CacheEntry.from_record(record).is_expired(now, self.ttl)
            except (KeyError, TypeError, ValueError):
                # Unreadable records can never be served
                return True

        durable_deleted = 0
        try:
            durable_deleted = await with_retry(
                lambda: self.store.delete_many(GENRE_CACHE, is_expired),
                "genre cache cleanup",
                self.retry_policy
            )
        except Exception as e:
            self.logger.error("Durable cache cleanup failed", error=str(e))

        counts = {"memory": len(expired_keys), "durable": durable_deleted}
        self.logger.info("Genre cache cleaned up", **counts)
        return counts

    async def stats(self) -> Dict[str, Any]:
        """Sizes of both tiers."""
        stats: Dict[str, Any] = {
            "memory_size": len(self._memory),
            "ttl_days": self.ttl.days,
        }
        try:
            stats["durable_size"] = await self.store.count(GENRE_CACHE)
        except Exception as e:
            self.logger.error("Failed to get cache stats", error=str(e))
            stats["durable_size"] = None
        return stats
