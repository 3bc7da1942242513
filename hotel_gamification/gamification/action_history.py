"""
Action History Log

Append-only log of processed actions. It is the single source of truth for
rate limiting and for same-day login idempotence. Entries are never updated
or deleted, and there is no API to do so.
"""

import logging
from datetime import datetime
from typing import List, Optional

from hotel_gamification.db.store import (
    ACTION_HISTORY_COLLECTION,
    DocumentStore,
    RecordFilter,
)
from hotel_gamification.models.stats import ActionHistoryEntry

logger = logging.getLogger(__name__)


class ActionHistoryLog:
    """Append/query access to the action history collection"""

    def __init__(self, store: DocumentStore, collection: str = ACTION_HISTORY_COLLECTION):
        self.store = store
        self.collection = collection

    async def append(self, entry: ActionHistoryEntry) -> str:
        """Record a processed action and return its id"""
        record_id = await self.store.append_record(self.collection, entry.to_record())
        logger.info(f"Recorded action history: {entry.action_type} for user {entry.user_id}")
        return record_id

    def _filters(self, user_id: str, action_type: str, since: Optional[datetime]) -> List[RecordFilter]:
        filters = [
            RecordFilter("user_id", "==", user_id),
            RecordFilter("action_type", "==", str(action_type)),
        ]
        if since is not None:
            filters.append(RecordFilter("timestamp", ">=", since))
        return filters

    async def query(
        self,
        user_id: str,
        action_type: str,
        since: Optional[datetime] = None,
    ) -> List[ActionHistoryEntry]:
        """Entries of one action type for a user, oldest first"""
        records = await self.store.query_records(
            self.collection,
            self._filters(user_id, action_type, since),
            order_by="timestamp",
        )
        return [ActionHistoryEntry.from_record(r) for r in records]

    async def count(self, user_id: str, action_type: str, since: Optional[datetime] = None) -> int:
        return await self.store.count_records(
            self.collection,
            self._filters(user_id, action_type, since),
        )

    async def has_action_since(self, user_id: str, action_type: str, since: datetime) -> bool:
        records = await self.store.query_records(
            self.collection,
            self._filters(user_id, action_type, since),
            limit=1,
        )
        return len(records) > 0

    async def latest(self, user_id: str, action_type: str, limit: int = 10) -> List[ActionHistoryEntry]:
        """Most recent entries of one action type, newest first"""
        records = await self.store.query_records(
            self.collection,
            self._filters(user_id, action_type, None),
            order_by="timestamp",
            descending=True,
            limit=limit,
        )
        return [ActionHistoryEntry.from_record(r) for r in records]
