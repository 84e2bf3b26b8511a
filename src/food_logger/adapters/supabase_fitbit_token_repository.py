"""Supabase repository for Fitbit credentials and tokens."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from food_logger.domain.fitbit import FitbitCredentials, FitbitTokens
from food_logger.services.fitbit_tokens import FitbitTokenRepository


@dataclass
class SupabaseFitbitTokenRepository(FitbitTokenRepository):
    """Supabase implementation for Fitbit OAuth state."""

    client: Client

    def get_credentials(self, user_id: UUID) -> FitbitCredentials | None:
        """Return the user's Fitbit client credentials, if stored."""
        response = (
            self.client.table("fitbit_credentials")
            .select("client_id, client_secret")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return FitbitCredentials(
            client_id=str(row["client_id"]), client_secret=str(row["client_secret"])
        )

    def get_tokens(self, user_id: UUID) -> FitbitTokens | None:
        """Return the user's Fitbit tokens, if stored."""
        response = (
            self.client.table("fitbit_tokens")
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return FitbitTokens(
            fitbit_user_id=str(row["fitbit_user_id"]),
            access_token=str(row["access_token"]),
            refresh_token=str(row["refresh_token"]),
            expires_at=datetime.fromisoformat(str(row["expires_at"])),
        )

    def upsert_tokens(self, user_id: UUID, tokens: FitbitTokens) -> None:
        """Insert or replace the user's Fitbit tokens."""
        self.client.table("fitbit_tokens").upsert(
            {
                "user_id": str(user_id),
                "fitbit_user_id": tokens.fitbit_user_id,
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "expires_at": tokens.expires_at.isoformat(),
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="user_id",
        ).execute()
