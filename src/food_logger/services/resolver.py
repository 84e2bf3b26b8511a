"""Resolution of the food to log for a request."""

import logging
from dataclasses import dataclass
from uuid import UUID

from food_logger.adapters.fitbit_client import FitbitClient
from food_logger.domain.errors import ValidationError
from food_logger.domain.food_log import (
    LogRequest,
    NewFoodLogRequest,
    ResolvedFood,
    ReuseFoodLogRequest,
)
from food_logger.services.custom_foods import FoodLogRepository
from food_logger.services.fitbit_tokens import TokenProvider

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Resolved food plus the access token used to reach Fitbit."""

    food: ResolvedFood
    access_token: str | None


@dataclass
class FoodResolver:
    """Chooses between creating a catalog entry and reusing one."""

    tokens: TokenProvider
    fitbit_client: FitbitClient
    repository: FoodLogRepository

    async def resolve(
        self, user_id: UUID, request: LogRequest, *, dry_run: bool
    ) -> Resolution:
        """Resolve the food identity for a validated request."""
        if isinstance(request, ReuseFoodLogRequest):
            return await self._resolve_reuse(user_id, request, dry_run=dry_run)
        return await self._resolve_new(user_id, request, dry_run=dry_run)

    async def _resolve_new(
        self, user_id: UUID, request: NewFoodLogRequest, *, dry_run: bool
    ) -> Resolution:
        profile = request.profile
        if dry_run:
            food = ResolvedFood(
                fitbit_food_id=None,
                custom_food_id=None,
                reused=False,
                amount=profile.amount,
                unit_id=profile.unit_id,
            )
            return Resolution(food=food, access_token=None)

        access_token = await self.tokens.ensure_fresh_token(user_id)
        match = await self.fitbit_client.find_or_create_food(access_token, profile)
        food = ResolvedFood(
            fitbit_food_id=match.food_id,
            custom_food_id=None,
            reused=match.reused,
            amount=profile.amount,
            unit_id=profile.unit_id,
        )
        return Resolution(food=food, access_token=access_token)

    async def _resolve_reuse(
        self, user_id: UUID, request: ReuseFoodLogRequest, *, dry_run: bool
    ) -> Resolution:
        existing = self.repository.get_custom_food(
            user_id, request.reuse_custom_food_id
        )
        if existing is None:
            raise ValidationError("Custom food not found")
        if dry_run:
            food = ResolvedFood(
                fitbit_food_id=None,
                custom_food_id=existing.id,
                reused=True,
                amount=existing.amount,
                unit_id=existing.unit_id,
            )
            return Resolution(food=food, access_token=None)
        if existing.fitbit_food_id is None:
            _logger.warning(
                "Custom food has no Fitbit id: custom_food_id=%s", existing.id
            )
            raise ValidationError("Custom food has no Fitbit food ID")

        access_token = await self.tokens.ensure_fresh_token(user_id)
        food = ResolvedFood(
            fitbit_food_id=existing.fitbit_food_id,
            custom_food_id=existing.id,
            reused=True,
            amount=existing.amount,
            unit_id=existing.unit_id,
        )
        return Resolution(food=food, access_token=access_token)
