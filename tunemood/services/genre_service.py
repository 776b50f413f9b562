"""
Genre Service

Boundary of the genre core. Wraps the aggregator in the two-tier cache,
records plays into the listening history and exposes mood-genre
correlations and genre distributions. Nothing here raises to the caller
for provider or store faults; they surface through structured logs only.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .correlation_engine import CorrelationEngine
from .genre_aggregator import GenreAggregator
from .genre_cache import GenreCache
from .listening_history import ListeningHistory
from .record_store import DiskRecordStore, RecordStore
from .retry import DEFAULT_POLICY, RetryPolicy
from .signal_collector import SignalCollector
from ..api.client_factory import APIClientFactory
from ..models.config import SystemConfig
from ..models.genre_models import (
    ClassificationResult,
    GenreDistribution,
    ListeningEvent,
    MoodCorrelation,
    make_cache_key,
    utc_now,
)

logger = structlog.get_logger(__name__)

DEFAULT_CORRELATION_WINDOW = timedelta(days=30)


def _default_window(
    window_start: Optional[datetime],
    window_end: Optional[datetime]
) -> Tuple[datetime, datetime]:
    window_end = window_end or utc_now()
    return window_start or window_end - DEFAULT_CORRELATION_WINDOW, window_end


class GenreService:
    """
    Genre classification, listening history and mood correlation.

    Call ``init()`` before use and ``shutdown()`` when done.
    """

    def __init__(
        self,
        collector: SignalCollector,
        store: RecordStore,
        retry_policy: RetryPolicy = DEFAULT_POLICY,
        cache: Optional[GenreCache] = None
    ):
        self.collector = collector
        self.store = store
        self.aggregator = GenreAggregator(collector)
        self.cache = cache or GenreCache(store, retry_policy=retry_policy)
        self.history = ListeningHistory(store, retry_policy)
        self.correlations = CorrelationEngine(store, self.history, retry_policy)
        self.logger = logger.bind(service="GenreService")

    @classmethod
    def from_config(cls, config: SystemConfig) -> "GenreService":
        """Wire every component from the system configuration."""
        factory = APIClientFactory(config)
        retry_policy = RetryPolicy(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay
        )
        collector = SignalCollector(
            lastfm_client=factory.create_lastfm_client(),
            genius_client=factory.create_genius_client(),
            deepseek_client=factory.create_deepseek_client(),
            retry_policy=retry_policy
        )
        return cls(collector, DiskRecordStore(config.cache_directory), retry_policy)

    async def init(self) -> None:
        """Open provider sessions and the cache."""
        await self.collector.start()
        await self.cache.init()
        self.logger.info(
            "Genre service initialized",
            active_clients=[type(c).__name__ for c in self.collector.clients]
        )

    async def shutdown(self) -> None:
        """Close provider sessions and the cache (and its store)."""
        await self.collector.close()
        await self.cache.shutdown()
        self.logger.info("Genre service shut down")

    async def classify_genre(self, artist: str, track: Optional[str] = None) -> ClassificationResult:
        """
        Classify an artist or track, using the cache when possible.

        Args:
            artist: Artist name
            track: Optional track name

        Returns:
            Classification result; ``other`` for an empty artist or when
            every source fails
        """
        if not artist or not artist.strip():
            return ClassificationResult.fallback()

        key = make_cache_key(artist, track)
        try:
            cached = await self.cache.get(key)
            if cached is not None:
                return cached

            result = await self.aggregator.aggregate(artist.strip(), (track or "").strip() or None)
            await self.cache.set(key, result)
            self.logger.info(
                "Genre classified",
                artist=artist,
                track=track,
                main_genres=result.main_genres,
                sub_genres=result.sub_genres
            )
            return result
        except Exception as e:
            self.logger.error(
                "Genre classification failed",
                artist=artist,
                track=track,
                error=str(e),
                error_type=type(e).__name__
            )
            return ClassificationResult.fallback()

    async def record_play(
        self,
        user_id: str,
        track_id: str,
        artist: str,
        track: str,
        played_at: Optional[datetime] = None
    ) -> ListeningEvent:
        """
        Classify a play and store it in the listening history.

        Returns:
            The stored event (the existing one for a duplicate play)
        """
        result = await self.classify_genre(artist, track)
        event = ListeningEvent(
            user_id=user_id,
            track_id=track_id,
            track_name=track,
            artist_name=artist,
            genre=result.genre,
            sub_genres=list(result.sub_genres),
            played_at=played_at or utc_now()
        )

        try:
            if not await self.history.record(event):
                return await self.history.find(event) or event
        except Exception as e:
            self.logger.error(
                "Failed to store listening event",
                user_id=user_id,
                track_id=track_id,
                error=str(e)
            )
        return event

    async def invalidate_genre(self, artist: str, track: Optional[str] = None) -> None:
        """Forget the cached classification of an artist or track."""
        await self.cache.invalidate(make_cache_key(artist, track))

    async def cleanup_expired_genres(self) -> Dict[str, int]:
        """Remove expired classifications from both cache tiers."""
        return await self.cache.cleanup()

    async def get_mood_genre_correlations(
        self,
        user_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None
    ) -> List[MoodCorrelation]:
        """
        Compute mood-genre correlations for a user.

        Args:
            user_id: User identifier
            window_start: Inclusive start (defaults to 30 days before the end)
            window_end: Inclusive end (defaults to now)

        Returns:
            Correlations, or an empty list when the computation fails
        """
        window_start, window_end = _default_window(window_start, window_end)
        try:
            return await self.correlations.compute_correlations(user_id, window_start, window_end)
        except Exception as e:
            self.logger.error(
                "Correlation computation failed",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return []

    async def get_genre_distribution(
        self,
        user_id: str,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None
    ) -> List[GenreDistribution]:
        """
        Play counts per genre for a user, each with its mood breakdown.

        Same window defaults as ``get_mood_genre_correlations``; returns an
        empty list when the computation fails.
        """
        window_start, window_end = _default_window(window_start, window_end)
        try:
            return await self.correlations.genre_distribution(user_id, window_start, window_end)
        except Exception as e:
            self.logger.error(
                "Genre distribution failed",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return []

    async def get_stats(self) -> Dict[str, Any]:
        """Cache sizes and per-provider rate limiter usage."""
        return {
            "cache": await self.cache.stats(),
            "rate_limiters": {
                client.service_name: client.rate_limiter.get_current_usage()
                for client in self.collector.clients
            },
        }
