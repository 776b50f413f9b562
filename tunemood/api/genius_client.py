"""
Genius API Client

Lyric/text provider: searches a song, then fetches and parses the
song page for its lyric block.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from bs4 import BeautifulSoup

from .base_client import BaseAPIClient
from .rate_limiter import UnifiedRateLimiter
from ..utils.errors import ProviderError, ProviderRejected

logger = structlog.get_logger(__name__)

# Lyric text is truncated before it is sent to the completion provider
MAX_LYRICS_CHARS = 4000

_WHITESPACE = re.compile(r"\s+")


@dataclass
class SongHit:
    """First search hit for a song."""
    song_id: Optional[int]
    title: str
    url: str


def extract_lyrics(html: str) -> Optional[str]:
    """
    Extract the lyric text block from a Genius song page.

    Args:
        html: Song page HTML

    Returns:
        Whitespace-normalized lyrics, or None if no lyric block was found
    """
    soup = BeautifulSoup(html, "html.parser")
    containers = soup.select('div[data-lyrics-container="true"]')
    if not containers:
        containers = soup.select('div[class^="Lyrics__Container"]')
    if not containers:
        return None

    text = " ".join(container.get_text(" ") for container in containers)
    text = _WHITESPACE.sub(" ", text).strip()
    return text or None


class GeniusClient(BaseAPIClient):
    """
    Genius API client with unified rate limiting and error handling.
    """

    BASE_URL = "https://api.genius.com"

    def __init__(
        self,
        access_token: str,
        rate_limiter: Optional[UnifiedRateLimiter] = None,
        base_url: Optional[str] = None,
        timeout: int = 10
    ):
        """
        Initialize Genius client.

        Args:
            access_token: Genius API bearer token
            rate_limiter: Rate limiter instance (optional)
            base_url: Override for the API root
            timeout: Request timeout in seconds
        """
        if rate_limiter is None:
            rate_limiter = UnifiedRateLimiter.for_genius()

        super().__init__(
            base_url=base_url or self.BASE_URL,
            rate_limiter=rate_limiter,
            timeout=timeout,
            service_name="Genius"
        )
        self.access_token = access_token

    def _extract_api_error(self, data: Dict[str, Any]) -> Optional[ProviderError]:
        if not isinstance(data, dict):
            return ProviderRejected(self.service_name, "unexpected payload")
        if "error" in data:
            error = data["error"]
            if isinstance(error, dict):
                error = error.get("message", error)
            return ProviderRejected(
                self.service_name,
                str(data.get("error_description") or error)
            )
        return None

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def search_song(self, track: str, artist: str) -> Optional[SongHit]:
        """
        Search for a song and return the first hit.

        Args:
            track: Track name
            artist: Artist name

        Returns:
            First hit, or None when Genius has no match
        """
        data = await self._make_request(
            "/search",
            params={"q": f"{track} {artist}"},
            headers=self._auth_headers()
        )
        hits = (data.get("response") or {}).get("hits") or []
        if not hits:
            self.logger.debug("No Genius hits", track=track, artist=artist)
            return None

        result = hits[0].get("result") or {}
        url = result.get("url")
        if not url:
            return None
        return SongHit(song_id=result.get("id"), title=result.get("title", ""), url=url)

    async def get_lyrics(self, track: str, artist: str) -> Optional[str]:
        """
        Get the lyric text for a song.

        Args:
            track: Track name
            artist: Artist name

        Returns:
            Lyrics truncated to MAX_LYRICS_CHARS, or None if not found
        """
        hit = await self.search_song(track, artist)
        if hit is None:
            return None

        html = await self._fetch_text(hit.url)
        lyrics = extract_lyrics(html)
        if lyrics is None:
            self.logger.debug("No lyric block on song page", url=hit.url)
            return None
        return lyrics[:MAX_LYRICS_CHARS]
