"""
Shared fixtures for the TuneMood test suite.

External HTTP is never hit: provider clients get a fake aiohttp session
and the record store lives under pytest's ``tmp_path``.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tunemood.api.rate_limiter import UnifiedRateLimiter
from tunemood.services.record_store import DiskRecordStore
from tunemood.services.retry import RetryPolicy


class FakeResponse:
    """Stands in for ``aiohttp.ClientResponse`` inside ``async with``."""

    def __init__(self, status=200, payload=None, text="", json_error=None):
        self.status = status
        self.payload = payload
        self._text = text
        self.json_error = json_error

    async def json(self, content_type=None):
        if self.json_error is not None:
            raise self.json_error
        return self.payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def request(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed = True


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, delta: timedelta):
        self.now = self.now + delta


@pytest.fixture
def make_response():
    """Factory for fake HTTP responses."""
    return FakeResponse


@pytest.fixture
def fake_session():
    """Factory for fake sessions preloaded with responses."""
    return FakeSession


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_limiter():
    """Rate limiter that never makes a test wait."""
    return UnifiedRateLimiter(calls_per_second=1000.0, burst_size=1000, service_name="test")


@pytest.fixture
def no_wait_policy():
    """Retry policy with the default attempt budget and no backoff sleep."""
    return RetryPolicy(max_attempts=3, base_delay=0.0)


@pytest.fixture
def record_store(tmp_path):
    store = DiskRecordStore(str(tmp_path / "cache"))
    yield store
    for cache in store.caches.values():
        cache.close()
