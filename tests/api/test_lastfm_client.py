"""
Tests for LastFmClient and the shared BaseAPIClient request handling.

The aiohttp session is replaced by a fake that replays responses.
"""

import asyncio
import json

import aiohttp
import pytest

from tunemood.api.lastfm_client import LastFmClient, LastFmTag, parse_tags
from tunemood.utils.errors import ProviderRejected, ProviderUnavailable


@pytest.fixture
def client(fast_limiter):
    return LastFmClient(api_key="test_key", rate_limiter=fast_limiter)


def attach(client, session):
    client.session = session
    return session


class TestParseTags:
    """Test tag payload parsing."""

    def test_list_of_tags(self):
        tags = parse_tags({"tag": [{"name": "jazz", "count": 100}, {"name": "soul", "count": "40"}]})
        assert tags == [LastFmTag("jazz", 100), LastFmTag("soul", 40)]

    def test_single_tag_object(self):
        assert parse_tags({"tag": {"name": "jazz", "count": 7}}) == [LastFmTag("jazz", 7)]

    def test_bad_entries_are_skipped_or_zeroed(self):
        tags = parse_tags({"tag": [{"name": ""}, "junk", {"name": "rock", "count": "n/a"}]})
        assert tags == [LastFmTag("rock", 0)]

    def test_missing_container(self):
        assert parse_tags(None) == []


class TestLastFmClient:
    """Test Last.fm requests and error mapping."""

    @pytest.mark.asyncio
    async def test_artist_top_tags(self, client, fake_session, make_response):
        session = attach(client, fake_session([make_response(payload={
            "toptags": {"tag": [{"name": "trap", "count": 80}, {"name": "pop", "count": 20}]}
        })]))

        tags = await client.get_artist_top_tags("Artist")

        assert tags == [LastFmTag("trap", 80), LastFmTag("pop", 20)]
        params = session.calls[0]["params"]
        assert params["method"] == "artist.getTopTags"
        assert params["artist"] == "Artist"
        assert params["api_key"] == "test_key"
        assert params["format"] == "json"

    @pytest.mark.asyncio
    async def test_track_top_tags(self, client, fake_session, make_response):
        session = attach(client, fake_session([make_response(payload={
            "toptags": {"tag": [{"name": "indie rock", "count": 50}]}
        })]))

        tags = await client.get_track_top_tags("Artist", "Song")

        assert tags == [LastFmTag("indie rock", 50)]
        assert session.calls[0]["params"]["method"] == "track.getTopTags"
        assert session.calls[0]["params"]["track"] == "Song"

    @pytest.mark.asyncio
    async def test_artist_info(self, client, fake_session, make_response):
        attach(client, fake_session([make_response(payload={
            "artist": {
                "name": "Artist",
                "tags": {"tag": [{"name": "jazz"}]},
                "bio": {"summary": "A jazz trio from Oslo."},
            }
        })]))

        info = await client.get_artist_info("Artist")

        assert info.name == "Artist"
        assert info.tags == [LastFmTag("jazz", 0)]
        assert info.bio == "A jazz trio from Oslo."

    @pytest.mark.asyncio
    async def test_artist_info_without_artist_block(self, client, fake_session, make_response):
        attach(client, fake_session([make_response(payload={})]))
        assert await client.get_artist_info("Nobody") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code,expected", [
        (11, ProviderUnavailable),
        (16, ProviderUnavailable),
        (29, ProviderUnavailable),
        (6, ProviderRejected),
        (10, ProviderRejected),
    ])
    async def test_error_payload_mapping(self, client, fake_session, make_response, code, expected):
        attach(client, fake_session([make_response(payload={"error": code, "message": "nope"})]))

        with pytest.raises(expected):
            await client.get_artist_top_tags("Artist")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,retryable", [
        (429, True),
        (500, True),
        (503, True),
        (504, True),
        (400, False),
        (404, False),
    ])
    async def test_http_status_mapping(self, client, fake_session, make_response, status, retryable):
        attach(client, fake_session([make_response(status=status, text="error body")]))

        with pytest.raises((ProviderUnavailable, ProviderRejected)) as exc_info:
            await client.get_artist_top_tags("Artist")

        assert exc_info.value.retryable is retryable
        assert exc_info.value.status == status

    @pytest.mark.asyncio
    async def test_invalid_json_is_rejected(self, client, fake_session, make_response):
        attach(client, fake_session([
            make_response(json_error=json.JSONDecodeError("bad", "doc", 0))
        ]))

        with pytest.raises(ProviderRejected):
            await client.get_artist_top_tags("Artist")

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self, client, fake_session):
        attach(client, fake_session([asyncio.TimeoutError()]))

        with pytest.raises(ProviderUnavailable):
            await client.get_artist_top_tags("Artist")

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self, client, fake_session):
        attach(client, fake_session([aiohttp.ClientConnectionError("reset")]))

        with pytest.raises(ProviderUnavailable):
            await client.get_artist_top_tags("Artist")

    @pytest.mark.asyncio
    async def test_request_waits_on_rate_limiter(self, client, fake_session, make_response):
        attach(client, fake_session([make_response(payload={"toptags": {}})]))

        await client.get_artist_top_tags("Artist")

        assert client.rate_limiter.total_requests == 1

    @pytest.mark.asyncio
    async def test_request_without_session_fails(self, client):
        with pytest.raises(RuntimeError):
            await client.get_artist_top_tags("Artist")

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes_session(self, client):
        async with client:
            assert client.session is not None
        assert client.session is None
