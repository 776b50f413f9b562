"""
API Module

External provider clients with shared rate limiting and error mapping.
"""

from .base_client import BaseAPIClient
from .rate_limiter import UnifiedRateLimiter
from .lastfm_client import LastFmClient, LastFmTag, ArtistInfo
from .genius_client import GeniusClient, SongHit
from .deepseek_client import DeepSeekClient
from .client_factory import APIClientFactory

__all__ = [
    # Base infrastructure
    "BaseAPIClient",
    "UnifiedRateLimiter",

    # Provider clients and models
    "LastFmClient",
    "LastFmTag",
    "ArtistInfo",
    "GeniusClient",
    "SongHit",
    "DeepSeekClient",

    # Client factory
    "APIClientFactory",
]
