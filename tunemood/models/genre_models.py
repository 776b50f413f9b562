"""
Genre Pipeline Models

Data structures shared by the classification pipeline, the genre cache
and the mood-correlation engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

OTHER_GENRE = "other"


class SourceId(Enum):
    """Signal sources feeding the genre aggregator."""
    LASTFM_ARTIST = "lastfm_artist"
    LASTFM_ARTIST_INFO = "lastfm_artist_info"
    LASTFM_ARTIST_BIO = "lastfm_artist_bio"
    LASTFM_TRACK = "lastfm_track"
    LYRICS_ANALYSIS = "lyrics_analysis"
    NAME_ANALYSIS = "name_analysis"
    FALLBACK = "fallback"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp (ISO string or datetime) into aware UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value)))


def make_cache_key(artist: str, track: Optional[str] = None) -> str:
    """
    Build the cache key for an artist or an (artist, track) pair.

    Args:
        artist: Artist name
        track: Optional track name

    Returns:
        Lower-cased key, ``"<artist>::<track>"`` when a track is given
    """
    artist_key = (artist or "").strip().lower()
    track_key = (track or "").strip().lower()
    if track_key:
        return f"{artist_key}::{track_key}"
    return artist_key


@dataclass(frozen=True)
class RawSignal:
    """Unprocessed observation from one provider (a tag or free text)."""
    source: SourceId
    raw_text: str
    strength: float = 0.0


@dataclass(frozen=True)
class GenreWeight:
    """Normalized, weighted genre vote."""
    genre: str
    weight: float
    source: SourceId


@dataclass
class ClassificationResult:
    """
    Ranked genres for an artist or track.

    ``main_genres`` holds at most two genres, ``sub_genres`` at most three,
    and the two lists never overlap.
    """
    main_genres: List[str] = field(default_factory=lambda: [OTHER_GENRE])
    sub_genres: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.main_genres:
            self.main_genres = [OTHER_GENRE]
        self.sub_genres = [g for g in self.sub_genres if g not in self.main_genres]

    @classmethod
    def fallback(cls) -> "ClassificationResult":
        return cls(main_genres=[OTHER_GENRE], sub_genres=[])

    @classmethod
    def from_ranking(cls, ranked_genres: List[str]) -> "ClassificationResult":
        """Top two genres become main genres, ranks 3-5 sub-genres."""
        if not ranked_genres:
            return cls.fallback()
        return cls(main_genres=list(ranked_genres[:2]), sub_genres=list(ranked_genres[2:5]))

    @property
    def genre(self) -> str:
        """Primary genre label."""
        return self.main_genres[0]

    def to_dict(self) -> Dict[str, Any]:
        return {"main_genres": list(self.main_genres), "sub_genres": list(self.sub_genres)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassificationResult":
        return cls(
            main_genres=list(data.get("main_genres") or []),
            sub_genres=list(data.get("sub_genres") or [])
        )


@dataclass
class CacheEntry:
    """A cached classification with its refresh time."""
    key: str
    result: ClassificationResult
    last_updated: datetime

    def is_expired(self, now: datetime, ttl) -> bool:
        return now - self.last_updated >= ttl

    def to_record(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            **self.result.to_dict(),
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CacheEntry":
        return cls(
            key=record["key"],
            result=ClassificationResult.from_dict(record),
            last_updated=parse_timestamp(record["last_updated"])
        )


@dataclass(frozen=True)
class ListeningEvent:
    """A track observed as played by a user."""
    user_id: str
    track_id: str
    artist_name: str
    played_at: datetime
    track_name: str = ""
    genre: Optional[str] = None
    sub_genres: List[str] = field(default_factory=list)

    @property
    def dedup_key(self) -> str:
        return f"{self.user_id}|{self.track_id}|{ensure_utc(self.played_at).isoformat()}"

    def to_record(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "track_id": self.track_id,
            "track_name": self.track_name,
            "artist_name": self.artist_name,
            "genre": self.genre,
            "sub_genres": list(self.sub_genres),
            "played_at": ensure_utc(self.played_at).isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ListeningEvent":
        return cls(
            user_id=record["user_id"],
            track_id=record["track_id"],
            track_name=record.get("track_name", ""),
            artist_name=record.get("artist_name", ""),
            genre=record.get("genre"),
            sub_genres=list(record.get("sub_genres") or []),
            played_at=parse_timestamp(record["played_at"])
        )


@dataclass(frozen=True)
class JournalEntry:
    """A journal entry with the mood the user selected (read-only)."""
    user_id: str
    created_at: datetime
    selected_mood: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "selected_mood": self.selected_mood,
            "created_at": ensure_utc(self.created_at).isoformat(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "JournalEntry":
        return cls(
            user_id=record["user_id"],
            selected_mood=record.get("selected_mood"),
            created_at=parse_timestamp(record["created_at"])
        )


@dataclass
class MoodCorrelation:
    """How often a genre co-occurs with a mood for one user."""
    user_id: str
    genre: str
    mood: str
    strength: float
    count: int

    @property
    def key(self) -> str:
        return f"{self.user_id}|{self.genre}|{self.mood}"

    def to_record(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "genre": self.genre,
            "mood": self.mood,
            "strength": self.strength,
            "count": self.count,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "MoodCorrelation":
        return cls(
            user_id=record["user_id"],
            genre=record["genre"],
            mood=record["mood"],
            strength=float(record["strength"]),
            count=int(record["count"])
        )


@dataclass
class GenreDistribution:
    """Plays of one genre in a window, with the moods they co-occurred with."""
    genre: str
    count: int
    moods: Dict[str, int] = field(default_factory=dict)
