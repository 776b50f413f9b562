"""
Weighted Genre Aggregator

Combines normalized signals from the collector into a ranked genre list.
Sources are tried in a fixed fallback chain and the chain stops as soon
as two distinct genres have been collected.
"""

from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from .genre_normalizer import find_genre_keywords, normalize_genre
from .signal_collector import SignalCollector
from ..models.genre_models import (
    OTHER_GENRE,
    ClassificationResult,
    GenreWeight,
    RawSignal,
    SourceId,
)

logger = structlog.get_logger(__name__)

ARTIST_TAG_SCALE = 0.5
TRACK_TAG_SCALE = 0.3
LYRICS_TOTAL_WEIGHT = 0.2
BIO_KEYWORD_WEIGHT = 0.1
NAME_WEIGHT = 1.0
FALLBACK_WEIGHT = 1.0
MIN_DISTINCT_GENRES = 2


def tag_votes(signals: Iterable[RawSignal], scale: float, source: SourceId) -> List[GenreWeight]:
    """Weight tag signals by ``count / 100 * scale``; ``other`` votes are dropped."""
    votes = []
    for signal in signals:
        genre = normalize_genre(signal.raw_text)
        if genre == OTHER_GENRE:
            continue
        votes.append(GenreWeight(genre, signal.strength / 100 * scale, source))
    return votes


def lyric_votes(signals: List[RawSignal]) -> List[GenreWeight]:
    """
    Split the lyric weight evenly across the genres the model returned.

    The divisor counts every returned genre, including ones that
    normalize to ``other`` and are then dropped.
    """
    if not signals:
        return []
    share = LYRICS_TOTAL_WEIGHT / len(signals)
    votes = []
    for signal in signals:
        genre = normalize_genre(signal.raw_text)
        if genre != OTHER_GENRE:
            votes.append(GenreWeight(genre, share, SourceId.LYRICS_ANALYSIS))
    return votes


def bio_votes(bio: str) -> List[GenreWeight]:
    """One vote per genre family mentioned in an artist biography."""
    return [
        GenreWeight(genre, BIO_KEYWORD_WEIGHT, SourceId.LASTFM_ARTIST_BIO)
        for genre in find_genre_keywords(bio)
        if genre != OTHER_GENRE
    ]


def rank_genres(votes: Iterable[GenreWeight]) -> List[Tuple[str, float]]:
    """
    Sum votes per genre and sort by descending weight.

    Ties keep first-seen order (the sort is stable and dicts keep
    insertion order).
    """
    totals: Dict[str, float] = {}
    for vote in votes:
        totals[vote.genre] = totals.get(vote.genre, 0.0) + vote.weight
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


class GenreAggregator:
    """Runs the source fallback chain for one artist or track."""

    def __init__(self, collector: SignalCollector):
        self.collector = collector
        self.logger = logger.bind(component="GenreAggregator")

    async def _signals(self, source: SourceId, artist: str, track: Optional[str]) -> List[RawSignal]:
        # A failing source contributes nothing
        try:
            return await self.collector.fetch_tags(source, artist, track)
        except Exception as e:
            self.logger.warning(
                "Signal source failed",
                source=source.value,
                artist=artist,
                track=track,
                error=str(e),
                error_type=type(e).__name__
            )
            return []

    async def aggregate(self, artist: str, track: Optional[str] = None) -> ClassificationResult:
        """
        Classify an artist (or a track by that artist).

        Args:
            artist: Artist name
            track: Optional track name

        Returns:
            Ranked classification; ``other`` when no source yields a genre
        """
        votes: List[GenreWeight] = []

        def distinct() -> int:
            return len({vote.genre for vote in votes})

        votes.extend(tag_votes(
            await self._signals(SourceId.LASTFM_ARTIST, artist, None),
            ARTIST_TAG_SCALE,
            SourceId.LASTFM_ARTIST
        ))

        if track and distinct() < MIN_DISTINCT_GENRES:
            votes.extend(tag_votes(
                await self._signals(SourceId.LASTFM_TRACK, artist, track),
                TRACK_TAG_SCALE,
                SourceId.LASTFM_TRACK
            ))

        if track and distinct() < MIN_DISTINCT_GENRES:
            votes.extend(lyric_votes(
                await self._signals(SourceId.LYRICS_ANALYSIS, artist, track)
            ))

        if not votes:
            info_signals = await self._signals(SourceId.LASTFM_ARTIST_INFO, artist, None)
            votes.extend(tag_votes(
                [s for s in info_signals if s.source == SourceId.LASTFM_ARTIST_INFO],
                ARTIST_TAG_SCALE,
                SourceId.LASTFM_ARTIST_INFO
            ))
            for signal in info_signals:
                if signal.source == SourceId.LASTFM_ARTIST_BIO:
                    votes.extend(bio_votes(signal.raw_text))

        if not votes:
            name_text = f"{track} {artist}" if track else artist
            genre = normalize_genre(name_text)
            if genre != OTHER_GENRE:
                votes.append(GenreWeight(genre, NAME_WEIGHT, SourceId.NAME_ANALYSIS))

        if not votes:
            self.logger.info("No genre signals, using fallback", artist=artist, track=track)
            votes.append(GenreWeight(OTHER_GENRE, FALLBACK_WEIGHT, SourceId.FALLBACK))

        ranked = rank_genres(votes)
        self.logger.debug(
            "Genres aggregated",
            artist=artist,
            track=track,
            ranking=[(genre, round(weight, 4)) for genre, weight in ranked],
            sources=sorted({vote.source.value for vote in votes})
        )
        return ClassificationResult.from_ranking([genre for genre, _ in ranked])
