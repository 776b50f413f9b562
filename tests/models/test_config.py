"""
Tests for SystemConfig.
"""

import pytest
from pydantic import ValidationError

from tunemood.models.config import SystemConfig


class TestSystemConfig:
    """Test configuration defaults and environment loading."""

    def test_defaults(self):
        config = SystemConfig()

        assert config.lastfm_api_key is None
        assert config.lastfm_rate_limit == 5.0
        assert config.genius_rate_limit == 5.0
        assert config.deepseek_rate_limit == 5.0
        assert config.retry_max_attempts == 3
        assert config.http_timeout == 10
        assert config.deepseek_model == "deepseek-chat"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LASTFM_API_KEY", "lfm")
        monkeypatch.setenv("GENIUS_API_KEY", "gen")
        monkeypatch.setenv("DEEPSEEK_API_KEY", "ds")
        monkeypatch.setenv("LASTFM_RATE_LIMIT", "2.5")
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("CACHE_DIR", "/tmp/tunemood")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = SystemConfig.from_env()

        assert config.lastfm_api_key == "lfm"
        assert config.genius_access_token == "gen"
        assert config.deepseek_api_key == "ds"
        assert config.lastfm_rate_limit == 2.5
        assert config.retry_max_attempts == 5
        assert config.cache_directory == "/tmp/tunemood"
        assert config.log_level == "DEBUG"

    def test_empty_keys_are_treated_as_missing(self, monkeypatch):
        monkeypatch.setenv("LASTFM_API_KEY", "")
        monkeypatch.delenv("GENIUS_API_KEY", raising=False)

        config = SystemConfig.from_env()

        assert config.lastfm_api_key is None
        assert config.genius_access_token is None

    def test_rate_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            SystemConfig(lastfm_rate_limit=0)
