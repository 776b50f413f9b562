"""
Models Module

Data structures of the genre pipeline and the system configuration.
"""

from .config import SystemConfig
from .genre_models import (
    OTHER_GENRE,
    SourceId,
    RawSignal,
    GenreWeight,
    ClassificationResult,
    CacheEntry,
    ListeningEvent,
    JournalEntry,
    MoodCorrelation,
    make_cache_key,
)

__all__ = [
    "SystemConfig",
    "OTHER_GENRE",
    "SourceId",
    "RawSignal",
    "GenreWeight",
    "ClassificationResult",
    "CacheEntry",
    "ListeningEvent",
    "JournalEntry",
    "MoodCorrelation",
    "make_cache_key",
]
