"""Supabase repository for custom foods and food log entries."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from food_logger.domain.food_log import (
    CustomFoodInput,
    CustomFoodMetadataPatch,
    CustomFoodRecord,
    FoodLogEntryInput,
)
from food_logger.services.custom_foods import FoodLogRepository


@dataclass
class SupabaseFoodLogRepository(FoodLogRepository):
    """Supabase implementation for the local food catalog."""

    client: Client

    def insert_custom_food(self, user_id: UUID, record: CustomFoodInput) -> int:
        """Create a custom food row and return its id."""
        profile = record.profile
        response = (
            self.client.table("custom_foods")
            .insert(
                {
                    "user_id": str(user_id),
                    "food_name": profile.food_name,
                    "amount": profile.amount,
                    "unit_id": profile.unit_id,
                    "calories": round(profile.calories),
                    "protein_g": profile.protein_g,
                    "carbs_g": profile.carbs_g,
                    "fat_g": profile.fat_g,
                    "fiber_g": profile.fiber_g,
                    "sodium_mg": profile.sodium_mg,
                    "saturated_fat_g": profile.saturated_fat_g,
                    "trans_fat_g": profile.trans_fat_g,
                    "sugars_g": profile.sugars_g,
                    "calories_from_fat": profile.calories_from_fat,
                    "confidence": profile.confidence,
                    "notes": profile.notes or None,
                    "description": profile.description or None,
                    "keywords": profile.keywords,
                    "fitbit_food_id": record.fitbit_food_id,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to insert custom food: no row returned")
        return int(response.data[0]["id"])

    def insert_food_log_entry(self, user_id: UUID, record: FoodLogEntryInput) -> int:
        """Create a food log entry row and return its id."""
        response = (
            self.client.table("food_log_entries")
            .insert(
                {
                    "user_id": str(user_id),
                    "custom_food_id": record.custom_food_id,
                    "meal_type_id": record.meal_type_id,
                    "amount": record.amount,
                    "unit_id": record.unit_id,
                    "date": record.date,
                    "time": record.time,
                    "fitbit_log_id": record.fitbit_log_id,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to insert food log entry: no row returned")
        return int(response.data[0]["id"])

    def get_custom_food(
        self, user_id: UUID, custom_food_id: int
    ) -> CustomFoodRecord | None:
        """Return a custom food owned by the user, if present."""
        response = (
            self.client.table("custom_foods")
            .select("*")
            .eq("id", custom_food_id)
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_custom_food(response.data[0])

    def update_custom_food_metadata(
        self, user_id: UUID, custom_food_id: int, patch: CustomFoodMetadataPatch
    ) -> None:
        """Update descriptive metadata on a custom food."""
        payload = patch.as_payload()
        if not payload:
            return
        self.client.table("custom_foods").update(payload).eq(
            "id", custom_food_id
        ).eq("user_id", str(user_id)).execute()


def _parse_custom_food(row: dict[str, object]) -> CustomFoodRecord:
    """Parse a custom food row into a domain model."""
    fitbit_food_id = row.get("fitbit_food_id")
    keywords = row.get("keywords")
    return CustomFoodRecord(
        id=int(row["id"]),
        food_name=str(row.get("food_name", "")),
        amount=float(row.get("amount", 0.0)),
        unit_id=int(row.get("unit_id", 0)),
        calories=int(row.get("calories", 0)),
        fitbit_food_id=int(fitbit_food_id) if fitbit_food_id is not None else None,
        confidence=str(row.get("confidence", "")),
        notes=row.get("notes"),
        description=row.get("description"),
        keywords=list(keywords) if isinstance(keywords, list) else None,
    )
