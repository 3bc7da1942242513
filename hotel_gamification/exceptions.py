"""
Standardized exception hierarchy for the gamification engine
Provides rich context, consistent logging, and user-friendly error messages

None of these errors ever reach the host application from the dispatcher:
they are raised at the store boundary and converted to safe defaults by the
engine.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

import psycopg

logger = logging.getLogger(__name__)


class GamificationError(Exception):
    """
    Base exception for all gamification engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise GamificationError(
            message="Failed to save user stats",
            user_id="user-42",
            operation="save_user_stats",
            context={"key": "user_gamification_stats/user-42"}
        )
    """

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Progress could not be recorded this time."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Action Payloads)
# ==========================================

class ValidationError(GamificationError):
    """
    Raised when an action payload fails validation

    Example:
        raise ValidationError(
            message="Score must be between 0 and 100",
            field="score",
            value=140,
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Store Errors
# ==========================================

class DatabaseError(GamificationError):
    """
    Base class for document store errors
    """
    pass


class PersistenceUnavailableError(DatabaseError):
    """Store read or write failed (connection lost, timeout, rejected query)"""

    def __init__(
        self,
        message: str = "Document store unavailable",
        key: Optional[str] = None,
        **kwargs
    ):
        self.key = key
        kwargs.setdefault("context", {"key": key})
        super().__init__(
            message=message,
            user_message="Your progress could not be saved right now. It will not block your work.",
            **kwargs
        )


# ==========================================
# Authentication
# ==========================================

class AuthenticationMismatchError(GamificationError):
    """Absent session or session user differs from the requested user id"""

    def __init__(
        self,
        message: str = "Session user does not own the requested stats",
        requested_user_id: Optional[str] = None,
        **kwargs
    ):
        self.requested_user_id = requested_user_id
        super().__init__(
            message=message,
            user_message="You can only view and update your own progress.",
            context={"requested_user_id": requested_user_id},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    key: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> GamificationError:
    """
    Wrap external exceptions (psycopg, etc.) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        key: Document key or collection name involved
        context: Additional context

    Returns:
        Appropriate GamificationError subclass

    Example:
        try:
            await cur.execute(query, params)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="set_document", key=key)
    """
    if isinstance(error, GamificationError):
        return error

    merged_context = {"key": key, **(context or {})}

    if isinstance(error, psycopg.OperationalError):
        return PersistenceUnavailableError(
            message=f"Database connection failed: {str(error)}",
            key=key,
            user_id=user_id,
            operation=operation,
            context=merged_context,
            cause=error
        )
    elif isinstance(error, (psycopg.Error, OSError, TimeoutError)):
        return PersistenceUnavailableError(
            message=f"{operation} failed: {str(error)}",
            key=key,
            user_id=user_id,
            operation=operation,
            context=merged_context,
            cause=error
        )

    # Generic fallback
    return GamificationError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=merged_context,
        cause=error
    )
