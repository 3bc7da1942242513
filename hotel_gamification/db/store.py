"""
Document store interface

The engine only needs four operations from its host store: read a document,
merge-write a document, append a record, and run a filtered query over
records. Stores with a native count can also override count_records. Any
document or relational store with indexed fields can implement them; no
operation spans more than one document.

Keys are "<collection>/<document id>".
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
import operator
from typing import Any, Callable, Dict, List, Optional, Sequence

USER_STATS_COLLECTION = "user_gamification_stats"
ACTION_HISTORY_COLLECTION = "gamification_action_history"
COMPLETED_CHALLENGES_COLLECTION = "gamification_completed_challenges"

FILTER_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def document_key(collection: str, document_id: str) -> str:
    return f"{collection}/{document_id}"


@dataclass(frozen=True)
class RecordFilter:
    """field <op> value"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


class DocumentStore(ABC):
    """Persistence collaborator used by the gamification engine"""

    @abstractmethod
    async def get_document(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None when absent"""

    @abstractmethod
    async def set_document(self, key: str, value: Dict[str, Any], merge: bool = True) -> None:
        """Write a document; merge=True keeps fields missing from value"""

    @abstractmethod
    async def append_record(self, collection: str, record: Dict[str, Any]) -> str:
        """Append an immutable record and return its id"""

    @abstractmethod
    async def query_records(
        self,
        collection: str,
        filters: Sequence[RecordFilter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Records matching every filter, optionally ordered and limited"""

    async def count_records(
        self,
        collection: str,
        filters: Sequence[RecordFilter] = (),
    ) -> int:
        """Number of records matching every filter; stores with a native count override this"""
        return len(await self.query_records(collection, filters))


def normalize_value(value: Any) -> Any:
    """
    Make stored and filter values comparable

    Timestamps are stored as ISO strings in documents, so both sides are
    turned back into datetimes before comparing.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and len(value) >= 19 and value[4] == "-" and value[10] == "T":
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value
