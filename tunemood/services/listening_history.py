"""
Listening History

Stores deduplicated listening events in the ``listening_history``
collection and loads them back per user and time window.
"""

from datetime import datetime
from typing import List, Optional

import structlog

from .record_store import LISTENING_HISTORY, RecordStore
from .retry import DEFAULT_POLICY, RetryPolicy, with_retry
from ..models.genre_models import ListeningEvent, ensure_utc, parse_timestamp

logger = structlog.get_logger(__name__)


class ListeningHistory:
    """Event log of plays, one record per (user, track, played_at)."""

    def __init__(self, store: RecordStore, retry_policy: RetryPolicy = DEFAULT_POLICY):
        self.store = store
        self.retry_policy = retry_policy
        self.logger = logger.bind(component="ListeningHistory")

    async def find(self, event: ListeningEvent) -> Optional[ListeningEvent]:
        """Stored event with the same dedup key, if any."""
        record = await with_retry(
            lambda: self.store.find_one(LISTENING_HISTORY, event.dedup_key),
            f"listening history lookup {event.dedup_key}",
            self.retry_policy
        )
        return ListeningEvent.from_record(record) if record else None

    async def record(self, event: ListeningEvent) -> bool:
        """
        Store a listening event.

        Args:
            event: The play to store

        Returns:
            False if the same play was already stored

        Raises:
            DurableStoreError: The store failed after the retry budget
        """
        if await self.find(event) is not None:
            self.logger.debug(
                "Listening event already stored",
                user_id=event.user_id,
                track_id=event.track_id
            )
            return False

        await with_retry(
            lambda: self.store.upsert(LISTENING_HISTORY, event.dedup_key, event.to_record()),
            f"listening history write {event.dedup_key}",
            self.retry_policy
        )
        self.logger.info(
            "Listening event stored",
            user_id=event.user_id,
            track_id=event.track_id,
            genre=event.genre
        )
        return True

    async def events_between(
        self,
        user_id: str,
        start: datetime,
        end: datetime
    ) -> List[ListeningEvent]:
        """Events of ``user_id`` with ``start <= played_at <= end``, oldest first."""
        start, end = ensure_utc(start), ensure_utc(end)

        def in_window(record) -> bool:
            if record.get("user_id") != user_id:
                return False
            return start <= parse_timestamp(record["played_at"]) <= end

        records = await with_retry(
            lambda: self.store.find_many(LISTENING_HISTORY, in_window),
            f"listening history scan {user_id}",
            self.retry_policy
        )
        events = [ListeningEvent.from_record(record) for record in records]
        return sorted(events, key=lambda event: event.played_at)
