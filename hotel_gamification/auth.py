"""Session context for gamification calls

The host application resolves the authenticated user and passes it to every
engine call. Stats may only be read or changed by their owner.
"""
from dataclasses import dataclass
from typing import Optional

from hotel_gamification.exceptions import AuthenticationMismatchError


@dataclass(frozen=True)
class SessionContext:
    """Authenticated identity for one request"""
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def require(self, user_id: Optional[str]) -> str:
        """
        Check that the session may access user_id's stats

        Raises:
            AuthenticationMismatchError: Anonymous session, missing user id,
                or a user id other than the session's
        """
        if not self.is_authenticated:
            raise AuthenticationMismatchError(
                message="User not authenticated for gamification operations",
                requested_user_id=user_id,
                operation="session_check",
            )
        if not user_id or self.user_id != user_id:
            raise AuthenticationMismatchError(
                message=f"Session user {self.user_id} cannot access gamification data of user {user_id}",
                requested_user_id=user_id,
                user_id=self.user_id,
                operation="session_check",
            )
        return user_id

    def owns(self, user_id: Optional[str]) -> bool:
        """True when the session is authenticated as user_id; mismatches are logged by the error"""
        try:
            self.require(user_id)
        except AuthenticationMismatchError:
            return False
        return True


ANONYMOUS = SessionContext()
