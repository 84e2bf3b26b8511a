"""Validation of raw food log request bodies."""

import math
import re
from datetime import date as calendar_date
from typing import cast

from food_logger.domain.errors import ValidationError
from food_logger.domain.food_log import (
    Confidence,
    CustomFoodMetadataPatch,
    LogRequest,
    MealType,
    NewFoodLogRequest,
    NutrientProfile,
    ReuseFoodLogRequest,
)

MAX_FOOD_NAME_LENGTH = 500
MAX_TEXT_LENGTH = 2000
MAX_KEYWORDS = 20
MAX_KEYWORD_LENGTH = 100

_CONFIDENCE_LEVELS = ("high", "medium", "low")
_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_PATTERN = re.compile(r"([0-9]{2}):([0-9]{2})(?::([0-9]{2}))?")
_NON_NEGATIVE_FIELDS = (
    "calories",
    "protein_g",
    "carbs_g",
    "fat_g",
    "fiber_g",
    "sodium_mg",
)
_TIER1_FIELDS = ("saturated_fat_g", "trans_fat_g", "sugars_g", "calories_from_fat")
_MEAL_TYPE_MESSAGE = (
    "Invalid mealTypeId. Must be 1 (Breakfast), 2 (Morning Snack), 3 (Lunch), "
    "4 (Afternoon Snack), 5 (Dinner), or 7 (Anytime)"
)


def parse_log_request(body: object) -> LogRequest:
    """Validate a raw request body and return a typed log request.

    The flow is chosen by the presence of ``reuseCustomFoodId``. Checks run in a
    fixed order and the first failing field is reported.
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be an object")
    data = cast("dict[str, object]", body)

    reuse_id = data.get("reuseCustomFoodId")
    if reuse_id is not None:
        if not _is_int(reuse_id):
            raise ValidationError("reuseCustomFoodId must be an integer")
        return _parse_reuse_request(data, cast("int", reuse_id))
    return _parse_new_food_request(data)


def _parse_new_food_request(data: dict[str, object]) -> NewFoodLogRequest:
    food_name = data.get("food_name")
    if not isinstance(food_name, str) or not food_name:
        raise ValidationError("food_name is required")
    amount = data.get("amount")
    if not _is_number(amount) or cast("float", amount) <= 0:
        raise ValidationError("amount must be a positive number")
    if not _is_int(data.get("unit_id")):
        raise ValidationError("unit_id is required")
    for name in _NON_NEGATIVE_FIELDS:
        value = data.get(name)
        if not _is_number(value) or cast("float", value) < 0:
            raise ValidationError(f"{name} must be a non-negative number")
    for name in _TIER1_FIELDS:
        value = data.get(name)
        if value is not None and (not _is_number(value) or cast("float", value) < 0):
            raise ValidationError(f"{name} must be a non-negative number or null")
    confidence = data.get("confidence")
    if confidence not in _CONFIDENCE_LEVELS:
        raise ValidationError("confidence must be one of high, medium, low")
    for name in ("notes", "description"):
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name} must be a string")
    keywords = data.get("keywords")
    if keywords is not None and not _is_string_list(keywords):
        raise ValidationError("keywords must be an array of strings")

    meal_type = _parse_meal_type(data.get("mealTypeId"))
    log_date = _parse_date(data.get("date"))
    log_time = _parse_time(data.get("time"))

    if len(food_name) > MAX_FOOD_NAME_LENGTH:
        raise ValidationError(
            f"food_name must be at most {MAX_FOOD_NAME_LENGTH} characters"
        )
    for name in ("description", "notes"):
        _check_text_length(name, data.get(name))
    _check_keywords("keywords", keywords)

    profile = NutrientProfile(
        food_name=food_name,
        amount=float(cast("float", amount)),
        unit_id=cast("int", data["unit_id"]),
        calories=float(cast("float", data["calories"])),
        protein_g=float(cast("float", data["protein_g"])),
        carbs_g=float(cast("float", data["carbs_g"])),
        fat_g=float(cast("float", data["fat_g"])),
        fiber_g=float(cast("float", data["fiber_g"])),
        sodium_mg=float(cast("float", data["sodium_mg"])),
        saturated_fat_g=_optional_float(data.get("saturated_fat_g")),
        trans_fat_g=_optional_float(data.get("trans_fat_g")),
        sugars_g=_optional_float(data.get("sugars_g")),
        calories_from_fat=_optional_float(data.get("calories_from_fat")),
        confidence=cast("Confidence", confidence),
        notes=cast("str | None", data.get("notes")),
        description=cast("str | None", data.get("description")),
        keywords=cast("list[str] | None", keywords),
    )
    return NewFoodLogRequest(
        profile=profile, meal_type_id=meal_type, date=log_date, time=log_time
    )


def _parse_reuse_request(
    data: dict[str, object], reuse_id: int
) -> ReuseFoodLogRequest:
    for name in ("newDescription", "newNotes"):
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name} must be a string")
    new_keywords = data.get("newKeywords")
    if new_keywords is not None and not _is_string_list(new_keywords):
        raise ValidationError("newKeywords must be an array of strings")
    new_confidence = data.get("newConfidence")
    if new_confidence is not None and new_confidence not in _CONFIDENCE_LEVELS:
        raise ValidationError("newConfidence must be one of high, medium, low")

    meal_type = _parse_meal_type(data.get("mealTypeId"))
    log_date = _parse_date(data.get("date"))
    log_time = _parse_time(data.get("time"))

    for name in ("newDescription", "newNotes"):
        _check_text_length(name, data.get(name))
    _check_keywords("newKeywords", new_keywords)
    if reuse_id <= 0:
        raise ValidationError("reuseCustomFoodId must be a positive integer")

    metadata = CustomFoodMetadataPatch(
        description=cast("str | None", data.get("newDescription")),
        notes=cast("str | None", data.get("newNotes")),
        keywords=cast("list[str] | None", new_keywords),
        confidence=cast("Confidence | None", new_confidence),
    )
    return ReuseFoodLogRequest(
        reuse_custom_food_id=reuse_id,
        meal_type_id=meal_type,
        date=log_date,
        time=log_time,
        metadata=metadata,
    )


def _parse_meal_type(value: object) -> MealType:
    if value is None:
        raise ValidationError("mealTypeId is required")
    if not _is_int(value) or value not in {meal.value for meal in MealType}:
        raise ValidationError(_MEAL_TYPE_MESSAGE)
    return MealType(cast("int", value))


def _parse_date(value: object) -> str:
    if not isinstance(value, str) or not is_valid_date(value):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    return value


def _parse_time(value: object) -> str:
    if not isinstance(value, str) or not is_valid_time(value):
        raise ValidationError("Invalid time format. Use HH:mm or HH:mm:ss")
    return value


def is_valid_date(value: str) -> bool:
    """Return true for a YYYY-MM-DD string naming a real calendar date."""
    if not _DATE_PATTERN.fullmatch(value):
        return False
    try:
        calendar_date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value: str) -> bool:
    """Return true for an HH:mm or HH:mm:ss string naming a real time of day."""
    match = _TIME_PATTERN.fullmatch(value)
    if not match:
        return False
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    return hours <= 23 and minutes <= 59 and seconds <= 59


def _check_text_length(name: str, value: object) -> None:
    if isinstance(value, str) and len(value) > MAX_TEXT_LENGTH:
        raise ValidationError(f"{name} must be at most {MAX_TEXT_LENGTH} characters")


def _check_keywords(name: str, value: object) -> None:
    if not isinstance(value, list):
        return
    if len(value) > MAX_KEYWORDS:
        raise ValidationError(f"{name} must have at most {MAX_KEYWORDS} entries")
    if any(len(keyword) > MAX_KEYWORD_LENGTH for keyword in value):
        raise ValidationError(
            f"Each entry in {name} must be at most {MAX_KEYWORD_LENGTH} characters"
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, int)


def _is_string_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(cast("float", value))
