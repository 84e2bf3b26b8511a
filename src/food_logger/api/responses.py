"""Mapping of saga results to HTTP responses."""

import time

from food_logger.api.schemas import (
    ErrorDetail,
    ErrorEnvelope,
    FoodLogData,
    SuccessEnvelope,
)
from food_logger.domain.errors import ErrorKind, FoodLogError
from food_logger.domain.food_log import LogOutcome
from food_logger.services.food_log import SagaResult, SagaState


def build_response(result: SagaResult) -> tuple[int, dict[str, object]]:
    """Return the HTTP status and JSON body for a terminal saga result."""
    if result.state is SagaState.DONE and result.outcome is not None:
        return 200, success_body(result.outcome)
    error = result.error or FoodLogError(ErrorKind.INTERNAL_ERROR)
    return error_response(error)


def success_body(outcome: LogOutcome) -> dict[str, object]:
    """Serialize a successful outcome, omitting absent identifiers."""
    if outcome.dry_run:
        data = FoodLogData(
            success=outcome.success,
            reused_food=outcome.reused_food,
            food_log_id=outcome.food_log_id,
            dry_run=True,
        )
    else:
        data = FoodLogData(
            success=outcome.success,
            fitbit_food_id=outcome.fitbit_food_id,
            fitbit_log_id=outcome.fitbit_log_id,
            reused_food=outcome.reused_food,
            food_log_id=outcome.food_log_id,
        )
    envelope = SuccessEnvelope(data=data, timestamp=_now_ms())
    return envelope.model_dump(by_alias=True, exclude_none=True)


def error_response(error: FoodLogError) -> tuple[int, dict[str, object]]:
    """Return the HTTP status and JSON body for a classified error."""
    envelope = ErrorEnvelope(
        error=ErrorDetail(code=error.kind.value, message=error.message),
        timestamp=_now_ms(),
    )
    return error.http_status, envelope.model_dump()


def _now_ms() -> int:
    return int(time.time() * 1000)
