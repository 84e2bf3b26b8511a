"""Session domain models."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class SessionRecord:
    """Represents a login session stored in the database."""

    id: str
    user_id: UUID
    expires_at: datetime
