"""
In-memory document store

Used by the test suite and by local runs (STORE_BACKEND=memory). Nothing is
persisted across restarts.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from hotel_gamification.db.store import (
    DocumentStore,
    FILTER_OPERATORS,
    RecordFilter,
    normalize_value,
)

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed DocumentStore"""

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._records: Dict[str, List[Dict[str, Any]]] = {}
        logger.debug("InMemoryDocumentStore initialized (data is NOT persisted)")

    async def get_document(self, key: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def set_document(self, key: str, value: Dict[str, Any], merge: bool = True) -> None:
        if merge and key in self._documents:
            self._documents[key].update(copy.deepcopy(value))
        else:
            self._documents[key] = copy.deepcopy(value)
        logger.debug(f"Saved document {key}")

    async def append_record(self, collection: str, record: Dict[str, Any]) -> str:
        record_id = str(uuid4())
        stored = copy.deepcopy(record)
        stored["id"] = record_id
        self._records.setdefault(collection, []).append(stored)
        return record_id

    async def query_records(
        self,
        collection: str,
        filters: Sequence[RecordFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        matches = [
            record for record in self._records.get(collection, [])
            if all(self._matches(record, f) for f in filters)
        ]

        if order_by:
            matches.sort(
                key=lambda r: normalize_value(r.get(order_by)),
                reverse=descending,
            )

        if limit is not None:
            matches = matches[:limit]

        return [copy.deepcopy(r) for r in matches]

    @staticmethod
    def _matches(record: Dict[str, Any], record_filter: RecordFilter) -> bool:
        if record_filter.field not in record:
            return False
        stored = normalize_value(record[record_filter.field])
        expected = normalize_value(record_filter.value)
        try:
            return FILTER_OPERATORS[record_filter.op](stored, expected)
        except TypeError:
            # Incomparable types (e.g. str vs datetime) never match
            return False

    def clear(self) -> None:
        self._documents.clear()
        self._records.clear()
