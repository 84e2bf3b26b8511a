"""Domain models for food logging."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Literal

Confidence = Literal["high", "medium", "low"]


class MealType(IntEnum):
    """Fitbit meal type identifiers accepted for logging."""

    BREAKFAST = 1
    MORNING_SNACK = 2
    LUNCH = 3
    AFTERNOON_SNACK = 4
    DINNER = 5
    ANYTIME = 7


@dataclass(frozen=True)
class NutrientProfile:
    """Nutrition facts for one analyzed food."""

    food_name: str
    amount: float
    unit_id: int
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float
    sodium_mg: float
    confidence: Confidence
    saturated_fat_g: float | None = None
    trans_fat_g: float | None = None
    sugars_g: float | None = None
    calories_from_fat: float | None = None
    notes: str | None = None
    description: str | None = None
    keywords: list[str] | None = None


@dataclass(frozen=True)
class CustomFoodMetadataPatch:
    """Metadata overrides for an existing custom food."""

    description: str | None = None
    notes: str | None = None
    keywords: list[str] | None = None
    confidence: Confidence | None = None

    def as_payload(self) -> dict[str, object]:
        """Return only the fields that were supplied."""
        payload: dict[str, object] = {}
        if self.description is not None:
            payload["description"] = self.description
        if self.notes is not None:
            payload["notes"] = self.notes
        if self.keywords is not None:
            payload["keywords"] = self.keywords
        if self.confidence is not None:
            payload["confidence"] = self.confidence
        return payload

    def is_empty(self) -> bool:
        """Return true when no override was supplied."""
        return not self.as_payload()


@dataclass(frozen=True)
class NewFoodLogRequest:
    """Validated request that logs a freshly analyzed food."""

    profile: NutrientProfile
    meal_type_id: MealType
    date: str
    time: str


@dataclass(frozen=True)
class ReuseFoodLogRequest:
    """Validated request that logs an existing custom food again."""

    reuse_custom_food_id: int
    meal_type_id: MealType
    date: str
    time: str
    metadata: CustomFoodMetadataPatch = field(default_factory=CustomFoodMetadataPatch)


LogRequest = NewFoodLogRequest | ReuseFoodLogRequest


@dataclass(frozen=True)
class ResolvedFood:
    """Which catalog entry, with which Fitbit id, is being logged."""

    fitbit_food_id: int | None
    custom_food_id: int | None
    reused: bool
    amount: float
    unit_id: int


@dataclass(frozen=True)
class RemoteLogResult:
    """Fitbit identifier of a newly created food log line."""

    fitbit_log_id: int


@dataclass(frozen=True)
class CustomFoodRecord:
    """Custom food row from the local catalog."""

    id: int
    food_name: str
    amount: float
    unit_id: int
    calories: int
    fitbit_food_id: int | None
    confidence: str
    notes: str | None = None
    description: str | None = None
    keywords: list[str] | None = None


@dataclass(frozen=True)
class CustomFoodInput:
    """Values for a new custom food row."""

    profile: NutrientProfile
    fitbit_food_id: int | None


@dataclass(frozen=True)
class FoodLogEntryInput:
    """Values for a new food log entry row."""

    custom_food_id: int
    meal_type_id: int
    amount: float
    unit_id: int
    date: str
    time: str
    fitbit_log_id: int | None


@dataclass(frozen=True)
class LogOutcome:
    """Successful result of a food logging request."""

    reused_food: bool
    food_log_id: int
    fitbit_food_id: int | None = None
    fitbit_log_id: int | None = None
    dry_run: bool = False
    success: bool = True
