"""Pydantic models for API response bodies."""

from pydantic import BaseModel, Field


class FoodLogData(BaseModel):
    """Payload returned after a food is logged."""

    success: bool = True
    fitbit_food_id: int | None = Field(default=None, serialization_alias="fitbitFoodId")
    fitbit_log_id: int | None = Field(default=None, serialization_alias="fitbitLogId")
    reused_food: bool = Field(serialization_alias="reusedFood")
    food_log_id: int | None = Field(default=None, serialization_alias="foodLogId")
    dry_run: bool | None = Field(default=None, serialization_alias="dryRun")


class ErrorDetail(BaseModel):
    """Error code and message."""

    code: str
    message: str


class SuccessEnvelope(BaseModel):
    """Successful API response."""

    success: bool = True
    data: FoodLogData
    timestamp: int


class ErrorEnvelope(BaseModel):
    """Failed API response."""

    success: bool = False
    error: ErrorDetail
    timestamp: int
