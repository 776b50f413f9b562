"""
System Configuration

Pydantic configuration for the genre pipeline, resolved from environment
variables.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


class SystemConfig(BaseModel):
    """Overall system configuration"""

    # API credentials (a missing key disables that signal source)
    lastfm_api_key: Optional[str] = Field(default=None, description="Last.fm API key")
    genius_access_token: Optional[str] = Field(default=None, description="Genius API bearer token")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API key")
    deepseek_model: str = Field(default="deepseek-chat", description="DeepSeek chat model")

    # Rate limiting (token bucket refill per second)
    lastfm_rate_limit: float = Field(default=5.0, gt=0, description="Last.fm requests per second")
    genius_rate_limit: float = Field(default=5.0, gt=0, description="Genius requests per second")
    deepseek_rate_limit: float = Field(default=5.0, gt=0, description="DeepSeek requests per second")

    # Resilience
    retry_max_attempts: int = Field(default=3, ge=1, description="Attempts per external operation")
    retry_base_delay: float = Field(default=1.0, ge=0, description="Backoff base delay in seconds")
    http_timeout: int = Field(default=10, gt=0, description="HTTP request timeout in seconds")

    # Storage
    cache_directory: str = Field(default="data/cache", description="Durable record store directory")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_dir: str = Field(default="logs", description="Log file directory")

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Build configuration from environment variables."""
        return cls(
            lastfm_api_key=os.getenv("LASTFM_API_KEY") or None,
            genius_access_token=os.getenv("GENIUS_API_KEY") or None,
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY") or None,
            deepseek_model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
            lastfm_rate_limit=_env_float("LASTFM_RATE_LIMIT", 5.0),
            genius_rate_limit=_env_float("GENIUS_RATE_LIMIT", 5.0),
            deepseek_rate_limit=_env_float("DEEPSEEK_RATE_LIMIT", 5.0),
            retry_max_attempts=_env_int("RETRY_MAX_ATTEMPTS", 3),
            retry_base_delay=_env_float("RETRY_BASE_DELAY", 1.0),
            http_timeout=_env_int("HTTP_TIMEOUT", 10),
            cache_directory=os.getenv("CACHE_DIR", "data/cache"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )
