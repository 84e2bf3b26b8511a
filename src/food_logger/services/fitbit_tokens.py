"""Fitbit access token management."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from food_logger.adapters.fitbit_client import FitbitClient
from food_logger.domain.errors import ErrorKind, FitbitError
from food_logger.domain.fitbit import FitbitCredentials, FitbitTokens

_logger = logging.getLogger(__name__)


class FitbitTokenRepository(Protocol):
    """Persistence interface for Fitbit credentials and tokens."""

    def get_credentials(self, user_id: UUID) -> FitbitCredentials | None:
        """Return the user's Fitbit client credentials, if stored."""

    def get_tokens(self, user_id: UUID) -> FitbitTokens | None:
        """Return the user's Fitbit tokens, if stored."""

    def upsert_tokens(self, user_id: UUID, tokens: FitbitTokens) -> None:
        """Insert or replace the user's Fitbit tokens."""


class TokenProvider(Protocol):
    """Interface for obtaining a usable Fitbit access token."""

    async def ensure_fresh_token(self, user_id: UUID) -> str:
        """Return an access token that will not expire imminently."""


@dataclass
class FitbitTokenService(TokenProvider):
    """Refreshes Fitbit tokens shortly before they expire."""

    repository: FitbitTokenRepository
    client: FitbitClient
    refresh_margin_seconds: int = 3600
    _in_flight: dict[UUID, "asyncio.Task[str]"] = field(
        default_factory=dict, init=False, repr=False
    )

    async def ensure_fresh_token(self, user_id: UUID) -> str:
        """Return an access token, refreshing it when close to expiry.

        Concurrent callers for the same user share a single refresh so the
        refresh token is spent only once.
        """
        credentials = self.repository.get_credentials(user_id)
        if credentials is None:
            raise FitbitError(ErrorKind.FITBIT_CREDENTIALS_MISSING)
        tokens = self.repository.get_tokens(user_id)
        if tokens is None:
            raise FitbitError(ErrorKind.FITBIT_TOKEN_INVALID)

        deadline = datetime.now(tz=UTC) + timedelta(
            seconds=self.refresh_margin_seconds
        )
        if tokens.expires_at > deadline:
            return tokens.access_token

        task = self._in_flight.get(user_id)
        if task is None:
            task = asyncio.ensure_future(self._refresh(user_id, tokens, credentials))
            self._in_flight[user_id] = task
            task.add_done_callback(lambda _: self._in_flight.pop(user_id, None))
        return await asyncio.shield(task)

    async def _refresh(
        self, user_id: UUID, tokens: FitbitTokens, credentials: FitbitCredentials
    ) -> str:
        _logger.info("Refreshing Fitbit token", extra={"user_id": str(user_id)})
        grant = await self.client.refresh_token(tokens.refresh_token, credentials)
        refreshed = FitbitTokens(
            fitbit_user_id=grant.fitbit_user_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=datetime.now(tz=UTC) + timedelta(seconds=grant.expires_in),
        )
        try:
            self.repository.upsert_tokens(user_id, refreshed)
        except Exception:
            _logger.warning("Fitbit token save failed, retrying once", exc_info=True)
            try:
                self.repository.upsert_tokens(user_id, refreshed)
            except Exception as exc:
                _logger.exception("Fitbit token save retry failed")
                raise FitbitError(
                    ErrorKind.FITBIT_API_ERROR, "Failed to save refreshed Fitbit token"
                ) from exc
        return refreshed.access_token
