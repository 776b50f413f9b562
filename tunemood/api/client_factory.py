"""
API Client Factory

Creates the provider clients from the system configuration. Rate limiters
are created once per provider and shared by every client of that provider.
"""

from typing import Dict, Optional

import structlog

from .deepseek_client import DeepSeekClient
from .genius_client import GeniusClient
from .lastfm_client import LastFmClient
from .rate_limiter import UnifiedRateLimiter
from ..models.config import SystemConfig

logger = structlog.get_logger(__name__)


class APIClientFactory:
    """
    Factory for creating configured API clients.

    Clients whose credentials are missing are not created; the signal
    collector treats them as disabled sources.
    """

    def __init__(self, system_config: SystemConfig):
        """
        Initialize client factory.

        Args:
            system_config: System configuration
        """
        self.system_config = system_config
        self.logger = logger.bind(service="APIClientFactory")
        self._rate_limiters: Dict[str, UnifiedRateLimiter] = {}

    def _get_rate_limiter(self, provider: str) -> UnifiedRateLimiter:
        if provider not in self._rate_limiters:
            config = self.system_config
            if provider == "lastfm":
                limiter = UnifiedRateLimiter.for_lastfm(config.lastfm_rate_limit)
            elif provider == "genius":
                limiter = UnifiedRateLimiter.for_genius(config.genius_rate_limit)
            elif provider == "deepseek":
                limiter = UnifiedRateLimiter.for_deepseek(config.deepseek_rate_limit)
            else:
                raise ValueError(f"Unknown provider: {provider}")
            self._rate_limiters[provider] = limiter
        return self._rate_limiters[provider]

    def create_lastfm_client(self) -> Optional[LastFmClient]:
        """Create the Last.fm client, or None without an API key."""
        if not self.system_config.lastfm_api_key:
            self.logger.warning("Last.fm API key missing, tag sources disabled")
            return None
        return LastFmClient(
            api_key=self.system_config.lastfm_api_key,
            rate_limiter=self._get_rate_limiter("lastfm"),
            timeout=self.system_config.http_timeout
        )

    def create_genius_client(self) -> Optional[GeniusClient]:
        """Create the Genius client, or None without an access token."""
        if not self.system_config.genius_access_token:
            self.logger.warning("Genius access token missing, lyric source disabled")
            return None
        return GeniusClient(
            access_token=self.system_config.genius_access_token,
            rate_limiter=self._get_rate_limiter("genius"),
            timeout=self.system_config.http_timeout
        )

    def create_deepseek_client(self) -> Optional[DeepSeekClient]:
        """Create the DeepSeek client, or None without an API key."""
        if not self.system_config.deepseek_api_key:
            self.logger.warning("DeepSeek API key missing, lyric analysis disabled")
            return None
        return DeepSeekClient(
            api_key=self.system_config.deepseek_api_key,
            rate_limiter=self._get_rate_limiter("deepseek"),
            model=self.system_config.deepseek_model,
            timeout=max(self.system_config.http_timeout, 30)
        )
