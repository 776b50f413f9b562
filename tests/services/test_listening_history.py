"""
Tests for ListeningHistory.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tunemood.models.genre_models import ListeningEvent
from tunemood.services.listening_history import ListeningHistory
from tunemood.services.record_store import LISTENING_HISTORY

BASE = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def play(user_id="u1", track_id="t1", minutes=0, genre="rock"):
    return ListeningEvent(
        user_id=user_id,
        track_id=track_id,
        artist_name="Artist",
        track_name="Song",
        played_at=BASE + timedelta(minutes=minutes),
        genre=genre
    )


@pytest.fixture
def history(record_store, no_wait_policy):
    return ListeningHistory(record_store, no_wait_policy)


class TestListeningHistory:
    """Test event storage and retrieval."""

    @pytest.mark.asyncio
    async def test_record_stores_event(self, history, record_store):
        assert await history.record(play()) is True
        assert await record_store.count(LISTENING_HISTORY) == 1

    @pytest.mark.asyncio
    async def test_duplicate_play_is_not_stored_twice(self, history, record_store):
        assert await history.record(play()) is True
        assert await history.record(play(genre="jazz")) is False

        stored = await history.find(play())
        assert stored.genre == "rock"
        assert await record_store.count(LISTENING_HISTORY) == 1

    @pytest.mark.asyncio
    async def test_same_track_at_another_time_is_a_new_play(self, history):
        assert await history.record(play(minutes=0)) is True
        assert await history.record(play(minutes=5)) is True

    @pytest.mark.asyncio
    async def test_events_between_filters_user_and_window(self, history):
        for event in [
            play(track_id="late", minutes=30),
            play(track_id="early", minutes=-30),
            play(track_id="outside", minutes=-120),
            play(user_id="u2", track_id="other-user", minutes=0),
        ]:
            await history.record(event)

        events = await history.events_between("u1", BASE - timedelta(hours=1), BASE + timedelta(minutes=30))

        assert [event.track_id for event in events] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_window_bounds_are_inclusive(self, history):
        await history.record(play(track_id="start", minutes=0))
        await history.record(play(track_id="end", minutes=10))

        events = await history.events_between("u1", BASE, BASE + timedelta(minutes=10))

        assert [event.track_id for event in events] == ["start", "end"]
