"""
Last.fm API Client

Tag provider for the genre pipeline: artist top tags, track top tags
and artist info (tags plus biography summary).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from .base_client import BaseAPIClient
from .rate_limiter import UnifiedRateLimiter
from ..utils.errors import ProviderError, ProviderRejected, ProviderUnavailable

logger = structlog.get_logger(__name__)

# Last.fm error codes worth another attempt:
# 11 service offline, 16 temporary error, 29 rate limit exceeded
RETRYABLE_ERROR_CODES = frozenset({11, 16, 29})


@dataclass
class LastFmTag:
    """A Last.fm tag with its popularity count (0-100)."""
    name: str
    count: int = 0


@dataclass
class ArtistInfo:
    """Last.fm artist info relevant to genre detection."""
    name: str
    tags: List[LastFmTag] = field(default_factory=list)
    bio: str = ""


def _as_list(value: Any) -> List[Any]:
    # Last.fm returns a bare object instead of a list for single results
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    return list(value)


def parse_tags(container: Optional[Dict[str, Any]]) -> List[LastFmTag]:
    """
    Parse a Last.fm ``{"tag": [...]}`` container into tags.

    Entries without a name are skipped; a missing or malformed count
    becomes 0.
    """
    tags = []
    for tag in _as_list((container or {}).get("tag")):
        if not isinstance(tag, dict):
            continue
        name = (tag.get("name") or "").strip()
        if not name:
            continue
        try:
            count = int(tag.get("count", 0))
        except (TypeError, ValueError):
            count = 0
        tags.append(LastFmTag(name=name, count=count))
    return tags


class LastFmClient(BaseAPIClient):
    """
    Last.fm API client with unified rate limiting and error handling.
    """

    BASE_URL = "https://ws.audioscrobbler.com/2.0/"

    def __init__(
        self,
        api_key: str,
        rate_limiter: Optional[UnifiedRateLimiter] = None,
        base_url: Optional[str] = None,
        timeout: int = 10
    ):
        """
        Initialize Last.fm client.

        Args:
            api_key: Last.fm API key (required)
            rate_limiter: Rate limiter instance (optional, will create default if not provided)
            base_url: Override for the API root
            timeout: Request timeout in seconds
        """
        if rate_limiter is None:
            rate_limiter = UnifiedRateLimiter.for_lastfm()

        super().__init__(
            base_url=base_url or self.BASE_URL,
            rate_limiter=rate_limiter,
            timeout=timeout,
            service_name="LastFM"
        )
        self.api_key = api_key

    def _extract_api_error(self, data: Dict[str, Any]) -> Optional[ProviderError]:
        """
        Extract Last.fm API error information from response data.

        Args:
            data: Parsed response data

        Returns:
            Provider error if the payload reports one, None otherwise
        """
        if not isinstance(data, dict) or "error" not in data:
            return None

        message = data.get("message", f"Error {data['error']}")
        try:
            code = int(data["error"])
        except (TypeError, ValueError):
            code = None

        if code in RETRYABLE_ERROR_CODES:
            return ProviderUnavailable(self.service_name, message)
        return ProviderRejected(self.service_name, message)

    async def _make_lastfm_request(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make Last.fm API request with automatic parameter injection.

        Args:
            method: Last.fm API method
            params: Additional parameters

        Returns:
            API response data
        """
        request_params = {
            "method": method,
            "api_key": self.api_key,
            "format": "json",
            "autocorrect": 1,
            **(params or {})
        }
        return await self._make_request(endpoint="", params=request_params)

    async def get_artist_top_tags(self, artist: str) -> List[LastFmTag]:
        """
        Get the top tags of an artist.

        Args:
            artist: Artist name

        Returns:
            Tags ordered as returned by Last.fm
        """
        data = await self._make_lastfm_request("artist.getTopTags", {"artist": artist})
        tags = parse_tags(data.get("toptags"))
        self.logger.debug("Artist tags fetched", artist=artist, tag_count=len(tags))
        return tags

    async def get_track_top_tags(self, artist: str, track: str) -> List[LastFmTag]:
        """
        Get the top tags of a track.

        Args:
            artist: Artist name
            track: Track name

        Returns:
            Tags ordered as returned by Last.fm
        """
        data = await self._make_lastfm_request(
            "track.getTopTags",
            {"artist": artist, "track": track}
        )
        tags = parse_tags(data.get("toptags"))
        self.logger.debug("Track tags fetched", artist=artist, track=track, tag_count=len(tags))
        return tags

    async def get_artist_info(self, artist: str) -> Optional[ArtistInfo]:
        """
        Get artist tags and biography summary.

        Args:
            artist: Artist name

        Returns:
            Artist info, or None if Last.fm has no artist block
        """
        data = await self._make_lastfm_request("artist.getInfo", {"artist": artist})
        artist_data = data.get("artist")
        if not isinstance(artist_data, dict):
            return None

        bio = artist_data.get("bio") or {}
        return ArtistInfo(
            name=artist_data.get("name", artist),
            tags=parse_tags(artist_data.get("tags")),
            bio=(bio.get("summary") or "") if isinstance(bio, dict) else str(bio)
        )
