"""
Mood-Genre Correlation Engine

Joins a user's listening events with their journal entries. Every event
played in the two hours before a journal entry co-occurs with that
entry's mood; strengths are per-genre mood shares. The same join also
yields the per-genre play distribution of a window.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

import structlog

from .genre_normalizer import normalize_genre
from .listening_history import ListeningHistory
from .record_store import JOURNAL_ENTRIES, MOOD_CORRELATIONS, RecordStore
from .retry import DEFAULT_POLICY, RetryPolicy, with_retry
from ..models.genre_models import (
    GenreDistribution,
    JournalEntry,
    ListeningEvent,
    MoodCorrelation,
    ensure_utc,
    parse_timestamp,
)

logger = structlog.get_logger(__name__)

LOOKBACK = timedelta(hours=2)


def count_cooccurrences(
    events: List[ListeningEvent],
    entries: List[JournalEntry],
    lookback: timedelta = LOOKBACK
) -> Counter:
    """
    Count (genre, mood) pairs.

    An event co-occurs with an entry when
    ``created_at - lookback <= played_at <= created_at``.
    """
    pairs: Counter = Counter()
    for entry in entries:
        mood = (entry.selected_mood or "").strip()
        if not mood:
            continue
        window_end = ensure_utc(entry.created_at)
        window_start = window_end - lookback
        for event in events:
            if not event.genre:
                continue
            if window_start <= ensure_utc(event.played_at) <= window_end:
                pairs[(normalize_genre(event.genre), mood)] += 1
    return pairs


def build_correlations(user_id: str, pairs: Counter) -> List[MoodCorrelation]:
    """
    Turn pair counts into correlations with ``strength = count / genre total``.

    Sorted by descending genre total, then descending count.
    """
    genre_totals: Dict[str, int] = {}
    for (genre, _), count in pairs.items():
        genre_totals[genre] = genre_totals.get(genre, 0) + count

    def order(item: Tuple[Tuple[str, str], int]):
        (genre, _), count = item
        return (-genre_totals[genre], -count)

    return [
        MoodCorrelation(
            user_id=user_id,
            genre=genre,
            mood=mood,
            strength=count / genre_totals[genre],
            count=count
        )
        for (genre, mood), count in sorted(pairs.items(), key=order)
    ]


def build_genre_distribution(
    events: List[ListeningEvent],
    entries: List[JournalEntry],
    lookback: timedelta = LOOKBACK
) -> List[GenreDistribution]:
    """
    Count plays per genre and break each genre down by co-occurring mood.

    Every event with a genre counts, journal entry or not. Genres are
    sorted by descending play count (ties keep event order); moods within
    a genre by descending count.
    """
    plays: Counter = Counter(normalize_genre(e.genre) for e in events if e.genre)

    moods: Dict[str, Counter] = {}
    for (genre, mood), count in count_cooccurrences(events, entries, lookback).items():
        moods.setdefault(genre, Counter())[mood] += count

    return [
        GenreDistribution(
            genre=genre,
            count=count,
            moods=dict(moods[genre].most_common()) if genre in moods else {}
        )
        for genre, count in plays.most_common()
    ]


class CorrelationEngine:
    """Computes and stores mood-genre correlations for one user at a time."""

    def __init__(
        self,
        store: RecordStore,
        history: ListeningHistory,
        retry_policy: RetryPolicy = DEFAULT_POLICY
    ):
        self.store = store
        self.history = history
        self.retry_policy = retry_policy
        self.logger = logger.bind(component="CorrelationEngine")

    async def journal_entries_between(
        self,
        user_id: str,
        start: datetime,
        end: datetime
    ) -> List[JournalEntry]:
        """Journal entries of ``user_id`` created within ``[start, end]``."""
        start, end = ensure_utc(start), ensure_utc(end)

        def in_window(record) -> bool:
            if record.get("user_id") != user_id:
                return False
            return start <= parse_timestamp(record["created_at"]) <= end

        records = await with_retry(
            lambda: self.store.find_many(JOURNAL_ENTRIES, in_window),
            f"journal scan {user_id}",
            self.retry_policy
        )
        entries = [JournalEntry.from_record(record) for record in records]
        return sorted(entries, key=lambda entry: entry.created_at)

    async def compute_correlations(
        self,
        user_id: str,
        window_start: datetime,
        window_end: datetime
    ) -> List[MoodCorrelation]:
        """
        Compute correlations over a window and upsert them.

        Args:
            user_id: User whose history is analysed
            window_start: Inclusive window start
            window_end: Inclusive window end

        Returns:
            Correlations sorted by genre total, then count

        Raises:
            DurableStoreError: Loading events or entries failed
        """
        events = await self.history.events_between(user_id, window_start, window_end)
        entries = await self.journal_entries_between(user_id, window_start, window_end)

        correlations = build_correlations(user_id, count_cooccurrences(events, entries))

        for correlation in correlations:
            try:
                await with_retry(
                    lambda c=correlation: self.store.upsert(MOOD_CORRELATIONS, c.key, c.to_record()),
                    f"correlation write {correlation.key}",
                    self.retry_policy
                )
            except Exception as e:
                self.logger.error(
                    "Failed to store correlation",
                    user_id=user_id,
                    genre=correlation.genre,
                    mood=correlation.mood,
                    error=str(e)
                )

        self.logger.info(
            "Correlations computed",
            user_id=user_id,
            events=len(events),
            journal_entries=len(entries),
            correlations=len(correlations)
        )
        return correlations

    async def genre_distribution(
        self,
        user_id: str,
        window_start: datetime,
        window_end: datetime
    ) -> List[GenreDistribution]:
        """
        Per-genre play counts over a window, with their mood breakdown.

        Nothing is stored.

        Raises:
            DurableStoreError: Loading events or entries failed
        """
        events = await self.history.events_between(user_id, window_start, window_end)
        entries = await self.journal_entries_between(user_id, window_start, window_end)

        distribution = build_genre_distribution(events, entries)
        self.logger.info(
            "Genre distribution computed",
            user_id=user_id,
            events=len(events),
            journal_entries=len(entries),
            genres=len(distribution)
        )
        return distribution
