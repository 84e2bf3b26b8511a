"""Fitbit account domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class FitbitCredentials:
    """OAuth client credentials registered by the user."""

    client_id: str
    client_secret: str


@dataclass(frozen=True)
class FitbitTokens:
    """Stored OAuth tokens for a user's Fitbit account."""

    fitbit_user_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime


@dataclass(frozen=True)
class FoodMatch:
    """Result of resolving a food in the Fitbit catalog."""

    food_id: int
    reused: bool
