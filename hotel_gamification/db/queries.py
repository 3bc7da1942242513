"""Gamification document queries"""
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from hotel_gamification.db.store import (
    COMPLETED_CHALLENGES_COLLECTION,
    USER_STATS_COLLECTION,
    DocumentStore,
    document_key,
)
from hotel_gamification.exceptions import ValidationError
from hotel_gamification.models.stats import UserStats


# ==========================================
# User Stats
# ==========================================

async def get_user_stats(store: DocumentStore, user_id: str) -> Optional[UserStats]:
    """
    Get stored stats for a user

    Returns:
        UserStats, or None when the user has no stats yet

    Raises:
        ValidationError: The stored document exists but is not valid stats
        Whatever the store raises when it is unavailable
    """
    document = await store.get_document(document_key(USER_STATS_COLLECTION, user_id))
    if document is None:
        return None

    try:
        return UserStats.from_document({**document, "user_id": user_id})
    except PydanticValidationError as e:
        raise ValidationError(
            message=f"Stored stats for user {user_id} are invalid: {e.error_count()} errors",
            field="user_stats",
            user_id=user_id,
            operation="get_user_stats",
            cause=e,
        )


async def save_user_stats(store: DocumentStore, stats: UserStats) -> None:
    """Merge-write the stats document"""
    await store.set_document(
        document_key(USER_STATS_COLLECTION, stats.user_id),
        stats.to_document(),
        merge=True,
    )


# ==========================================
# Weekly Challenge Ledger
# ==========================================

async def get_completed_challenges(store: DocumentStore, user_id: str) -> Dict[str, Any]:
    """
    Get the user's completed-challenge ledger

    Returns:
        {'week': str | None, 'completed': [challenge ids]}
    """
    document = await store.get_document(document_key(COMPLETED_CHALLENGES_COLLECTION, user_id))
    if not document:
        return {"week": None, "completed": []}
    return {
        "week": document.get("week"),
        "completed": list(document.get("completed", [])),
    }


async def save_completed_challenges(
    store: DocumentStore,
    user_id: str,
    week: str,
    completed: List[str],
) -> None:
    await store.set_document(
        document_key(COMPLETED_CHALLENGES_COLLECTION, user_id),
        {"user_id": user_id, "week": week, "completed": list(completed)},
        merge=False,
    )
