"""
Signal Collector

Fetches raw genre evidence from the external providers. Every outbound
call goes through the provider's rate limiter (inside the client) and
the retry executor. No weighting happens here: tags come back with their
raw popularity count, text comes back as text.
"""

from typing import List, Optional

import structlog

from .retry import DEFAULT_POLICY, RetryPolicy, with_retry
from ..api.deepseek_client import DeepSeekClient
from ..api.genius_client import GeniusClient
from ..api.lastfm_client import LastFmClient
from ..models.genre_models import RawSignal, SourceId

logger = structlog.get_logger(__name__)


class SignalCollector:
    """
    Raw signal access for the genre aggregator.

    A provider client left as None disables its sources; they return no
    signals instead of failing.
    """

    def __init__(
        self,
        lastfm_client: Optional[LastFmClient] = None,
        genius_client: Optional[GeniusClient] = None,
        deepseek_client: Optional[DeepSeekClient] = None,
        retry_policy: RetryPolicy = DEFAULT_POLICY
    ):
        self.lastfm_client = lastfm_client
        self.genius_client = genius_client
        self.deepseek_client = deepseek_client
        self.retry_policy = retry_policy
        self.logger = logger.bind(component="SignalCollector")

    @property
    def clients(self) -> list:
        return [c for c in (self.lastfm_client, self.genius_client, self.deepseek_client) if c]

    async def start(self) -> None:
        """Open every client session."""
        for client in self.clients:
            await client.start()

    async def close(self) -> None:
        """Close every client session."""
        for client in self.clients:
            await client.close()

    async def fetch_tags(
        self,
        source: SourceId,
        artist: str,
        track: Optional[str] = None
    ) -> List[RawSignal]:
        """
        Collect raw signals from one source.

        Args:
            source: Which signal source to query
            artist: Artist name
            track: Track name (required by the track and lyric sources)

        Returns:
            Raw signals; empty when the source is disabled or has nothing

        Raises:
            ProviderError: The provider failed after the retry budget
            ValueError: The source is not backed by an external provider
        """
        if source == SourceId.LASTFM_ARTIST:
            return await self._artist_tags(artist)
        if source == SourceId.LASTFM_TRACK:
            return await self._track_tags(artist, track) if track else []
        if source == SourceId.LASTFM_ARTIST_INFO:
            return await self._artist_info(artist)
        if source == SourceId.LYRICS_ANALYSIS:
            return await self._lyrics_analysis(artist, track) if track else []
        raise ValueError(f"{source.value} is not an external signal source")

    async def _artist_tags(self, artist: str) -> List[RawSignal]:
        if self.lastfm_client is None:
            return []
        tags = await with_retry(
            lambda: self.lastfm_client.get_artist_top_tags(artist),
            f"artist.getTopTags {artist}",
            self.retry_policy
        )
        return [RawSignal(SourceId.LASTFM_ARTIST, tag.name, float(tag.count)) for tag in tags]

    async def _track_tags(self, artist: str, track: str) -> List[RawSignal]:
        if self.lastfm_client is None:
            return []
        tags = await with_retry(
            lambda: self.lastfm_client.get_track_top_tags(artist, track),
            f"track.getTopTags {artist} - {track}",
            self.retry_policy
        )
        return [RawSignal(SourceId.LASTFM_TRACK, tag.name, float(tag.count)) for tag in tags]

    async def _artist_info(self, artist: str) -> List[RawSignal]:
        if self.lastfm_client is None:
            return []
        info = await with_retry(
            lambda: self.lastfm_client.get_artist_info(artist),
            f"artist.getInfo {artist}",
            self.retry_policy
        )
        if info is None:
            return []

        signals = [
            RawSignal(SourceId.LASTFM_ARTIST_INFO, tag.name, float(tag.count))
            for tag in info.tags
        ]
        if info.bio:
            # Biography text carries no popularity count
            signals.append(RawSignal(SourceId.LASTFM_ARTIST_BIO, info.bio, 0.0))
        return signals

    async def _lyrics_analysis(self, artist: str, track: str) -> List[RawSignal]:
        if self.genius_client is None or self.deepseek_client is None:
            self.logger.debug("Lyric analysis disabled", artist=artist, track=track)
            return []

        lyrics = await with_retry(
            lambda: self.genius_client.get_lyrics(track, artist),
            f"genius lyrics {artist} - {track}",
            self.retry_policy
        )
        if not lyrics:
            return []

        genres = await with_retry(
            lambda: self.deepseek_client.classify_genres(track, artist, lyrics),
            f"deepseek genres {artist} - {track}",
            self.retry_policy
        )
        return [RawSignal(SourceId.LYRICS_ANALYSIS, genre, 1.0) for genre in genres]
