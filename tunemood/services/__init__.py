"""
Services Module

Genre classification pipeline, caching, listening history and
mood-genre correlation.
"""

from .retry import RetryPolicy, with_retry, is_retryable
from .genre_normalizer import normalize_genre, CANONICAL_GENRES
from .record_store import RecordStore, DiskRecordStore
from .signal_collector import SignalCollector
from .genre_aggregator import GenreAggregator
from .genre_cache import GenreCache, GENRE_CACHE_TTL
from .listening_history import ListeningHistory
from .correlation_engine import CorrelationEngine
from .genre_service import GenreService

__all__ = [
    "RetryPolicy",
    "with_retry",
    "is_retryable",
    "normalize_genre",
    "CANONICAL_GENRES",
    "RecordStore",
    "DiskRecordStore",
    "SignalCollector",
    "GenreAggregator",
    "GenreCache",
    "GENRE_CACHE_TTL",
    "ListeningHistory",
    "CorrelationEngine",
    "GenreService",
]
