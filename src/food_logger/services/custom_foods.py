"""Persistence interface for the custom food catalog and food log."""

from typing import Protocol
from uuid import UUID

from food_logger.domain.food_log import (
    CustomFoodInput,
    CustomFoodMetadataPatch,
    CustomFoodRecord,
    FoodLogEntryInput,
)


class FoodLogRepository(Protocol):
    """Local store for custom foods and food log entries."""

    def insert_custom_food(self, user_id: UUID, record: CustomFoodInput) -> int:
        """Create a custom food row and return its id."""

    def insert_food_log_entry(self, user_id: UUID, record: FoodLogEntryInput) -> int:
        """Create a food log entry row and return its id."""

    def get_custom_food(
        self, user_id: UUID, custom_food_id: int
    ) -> CustomFoodRecord | None:
        """Return a custom food owned by the user, if present."""

    def update_custom_food_metadata(
        self, user_id: UUID, custom_food_id: int, patch: CustomFoodMetadataPatch
    ) -> None:
        """Update descriptive metadata on a custom food."""
