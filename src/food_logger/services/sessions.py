"""Session lookup for API requests."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from food_logger.domain.errors import ErrorKind, FoodLogError
from food_logger.domain.sessions import SessionRecord
from food_logger.services.fitbit_tokens import FitbitTokenRepository


class SessionRepository(Protocol):
    """Persistence interface for login sessions."""

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""


@dataclass
class SessionService:
    """Resolves the acting user for a request."""

    session_repository: SessionRepository
    token_repository: FitbitTokenRepository

    def require_user(self, session_id: str | None, *, require_fitbit: bool) -> UUID:
        """Return the user id for a live session or raise a classified error."""
        if not session_id:
            raise FoodLogError(ErrorKind.AUTH_MISSING_SESSION)
        session = self.session_repository.get_session(session_id)
        if session is None:
            raise FoodLogError(ErrorKind.AUTH_MISSING_SESSION)
        if session.expires_at <= datetime.now(tz=UTC):
            raise FoodLogError(ErrorKind.AUTH_SESSION_EXPIRED)
        if require_fitbit and self.token_repository.get_tokens(session.user_id) is None:
            raise FoodLogError(ErrorKind.FITBIT_NOT_CONNECTED)
        return session.user_id
