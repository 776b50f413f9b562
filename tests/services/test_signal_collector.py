"""
Tests for the SignalCollector.

Provider clients are mocked at the method level.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from tunemood.api.lastfm_client import ArtistInfo, LastFmTag
from tunemood.models.genre_models import RawSignal, SourceId
from tunemood.services.signal_collector import SignalCollector
from tunemood.utils.errors import ProviderRejected, ProviderUnavailable


@pytest.fixture
def mock_lastfm_client():
    client = Mock()
    client.get_artist_top_tags = AsyncMock(return_value=[LastFmTag("trap", 80), LastFmTag("pop", 20)])
    client.get_track_top_tags = AsyncMock(return_value=[LastFmTag("indie rock", 50)])
    client.get_artist_info = AsyncMock(return_value=ArtistInfo(
        name="Artist",
        tags=[LastFmTag("jazz", 40)],
        bio="A jazz trio."
    ))
    client.start = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_genius_client():
    client = Mock()
    client.get_lyrics = AsyncMock(return_value="some lyrics")
    client.start = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_deepseek_client():
    client = Mock()
    client.classify_genres = AsyncMock(return_value=["folk", "indie"])
    client.start = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def collector(mock_lastfm_client, mock_genius_client, mock_deepseek_client, no_wait_policy):
    return SignalCollector(
        lastfm_client=mock_lastfm_client,
        genius_client=mock_genius_client,
        deepseek_client=mock_deepseek_client,
        retry_policy=no_wait_policy
    )


class TestSignalCollector:
    """Test raw signal collection per source."""

    @pytest.mark.asyncio
    async def test_artist_tags_keep_raw_counts(self, collector):
        signals = await collector.fetch_tags(SourceId.LASTFM_ARTIST, "Artist")

        assert signals == [
            RawSignal(SourceId.LASTFM_ARTIST, "trap", 80.0),
            RawSignal(SourceId.LASTFM_ARTIST, "pop", 20.0),
        ]

    @pytest.mark.asyncio
    async def test_track_tags_need_a_track(self, collector, mock_lastfm_client):
        assert await collector.fetch_tags(SourceId.LASTFM_TRACK, "Artist") == []
        mock_lastfm_client.get_track_top_tags.assert_not_awaited()

        signals = await collector.fetch_tags(SourceId.LASTFM_TRACK, "Artist", "Song")
        assert signals == [RawSignal(SourceId.LASTFM_TRACK, "indie rock", 50.0)]
        mock_lastfm_client.get_track_top_tags.assert_awaited_once_with("Artist", "Song")

    @pytest.mark.asyncio
    async def test_artist_info_returns_tags_and_bio(self, collector):
        signals = await collector.fetch_tags(SourceId.LASTFM_ARTIST_INFO, "Artist")

        assert signals == [
            RawSignal(SourceId.LASTFM_ARTIST_INFO, "jazz", 40.0),
            RawSignal(SourceId.LASTFM_ARTIST_BIO, "A jazz trio.", 0.0),
        ]

    @pytest.mark.asyncio
    async def test_artist_info_missing(self, collector, mock_lastfm_client):
        mock_lastfm_client.get_artist_info.return_value = None
        assert await collector.fetch_tags(SourceId.LASTFM_ARTIST_INFO, "Artist") == []

    @pytest.mark.asyncio
    async def test_lyrics_analysis(self, collector, mock_genius_client, mock_deepseek_client):
        signals = await collector.fetch_tags(SourceId.LYRICS_ANALYSIS, "Artist", "Song")

        assert signals == [
            RawSignal(SourceId.LYRICS_ANALYSIS, "folk", 1.0),
            RawSignal(SourceId.LYRICS_ANALYSIS, "indie", 1.0),
        ]
        mock_genius_client.get_lyrics.assert_awaited_once_with("Song", "Artist")
        mock_deepseek_client.classify_genres.assert_awaited_once_with("Song", "Artist", "some lyrics")

    @pytest.mark.asyncio
    async def test_no_lyrics_skips_completion(self, collector, mock_genius_client, mock_deepseek_client):
        mock_genius_client.get_lyrics.return_value = None

        assert await collector.fetch_tags(SourceId.LYRICS_ANALYSIS, "Artist", "Song") == []
        mock_deepseek_client.classify_genres.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_clients_disable_sources(self, no_wait_policy):
        collector = SignalCollector(retry_policy=no_wait_policy)

        assert collector.clients == []
        for source in (SourceId.LASTFM_ARTIST, SourceId.LASTFM_ARTIST_INFO):
            assert await collector.fetch_tags(source, "Artist") == []
        for source in (SourceId.LASTFM_TRACK, SourceId.LYRICS_ANALYSIS):
            assert await collector.fetch_tags(source, "Artist", "Song") == []

    @pytest.mark.asyncio
    async def test_retryable_failure_is_retried(self, collector, mock_lastfm_client):
        mock_lastfm_client.get_artist_top_tags.side_effect = [
            ProviderUnavailable("LastFM", "busy", status=503),
            [LastFmTag("jazz", 100)],
        ]

        signals = await collector.fetch_tags(SourceId.LASTFM_ARTIST, "Artist")

        assert signals == [RawSignal(SourceId.LASTFM_ARTIST, "jazz", 100.0)]
        assert mock_lastfm_client.get_artist_top_tags.await_count == 2

    @pytest.mark.asyncio
    async def test_permanent_failure_propagates(self, collector, mock_lastfm_client):
        mock_lastfm_client.get_artist_top_tags.side_effect = ProviderRejected("LastFM", "bad key")

        with pytest.raises(ProviderRejected):
            await collector.fetch_tags(SourceId.LASTFM_ARTIST, "Artist")
        assert mock_lastfm_client.get_artist_top_tags.await_count == 1

    @pytest.mark.asyncio
    async def test_non_provider_sources_are_rejected(self, collector):
        with pytest.raises(ValueError):
            await collector.fetch_tags(SourceId.NAME_ANALYSIS, "Artist")

    @pytest.mark.asyncio
    async def test_start_and_close_every_client(
        self, collector, mock_lastfm_client, mock_genius_client, mock_deepseek_client
    ):
        await collector.start()
        await collector.close()

        for client in (mock_lastfm_client, mock_genius_client, mock_deepseek_client):
            client.start.assert_awaited_once()
            client.close.assert_awaited_once()
