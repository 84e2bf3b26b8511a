"""Food logging saga across Fitbit and the local catalog."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeVar
from uuid import UUID

from food_logger.adapters.fitbit_client import FitbitClient
from food_logger.domain.errors import ErrorKind, FoodLogError
from food_logger.domain.food_log import (
    CustomFoodInput,
    FoodLogEntryInput,
    LogOutcome,
    LogRequest,
    NewFoodLogRequest,
    RemoteLogResult,
    ResolvedFood,
    ReuseFoodLogRequest,
)
from food_logger.services.custom_foods import FoodLogRepository
from food_logger.services.resolver import FoodResolver, Resolution
from food_logger.services.validation import parse_log_request

_logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class SagaState(StrEnum):
    """Named steps of a food logging run."""

    VALIDATING = "validating"
    RESOLVING = "resolving"
    DRY_RUN_PERSIST = "dry_run_persist"
    REMOTE_LOGGING = "remote_logging"
    PERSISTING = "persisting"
    COMPENSATING = "compensating"
    DONE = "done"
    FAILED = "failed"
    FAILED_INTERNAL = "failed_internal"
    FAILED_PARTIAL = "failed_partial"


_TRANSITIONS: dict[SagaState, frozenset[SagaState]] = {
    SagaState.VALIDATING: frozenset({SagaState.RESOLVING, SagaState.FAILED}),
    SagaState.RESOLVING: frozenset(
        {SagaState.DRY_RUN_PERSIST, SagaState.REMOTE_LOGGING, SagaState.FAILED}
    ),
    SagaState.DRY_RUN_PERSIST: frozenset({SagaState.DONE, SagaState.FAILED_INTERNAL}),
    SagaState.REMOTE_LOGGING: frozenset({SagaState.PERSISTING, SagaState.FAILED}),
    SagaState.PERSISTING: frozenset({SagaState.DONE, SagaState.COMPENSATING}),
    SagaState.COMPENSATING: frozenset(
        {SagaState.FAILED_INTERNAL, SagaState.FAILED_PARTIAL}
    ),
}

TERMINAL_STATES = frozenset(
    {
        SagaState.DONE,
        SagaState.FAILED,
        SagaState.FAILED_INTERNAL,
        SagaState.FAILED_PARTIAL,
    }
)


class WriteKind(StrEnum):
    """Whether a local write decides the outcome of the saga."""

    PRIMARY = "primary"
    BEST_EFFORT = "best_effort"


class IllegalTransitionError(RuntimeError):
    """Raised when the saga attempts a transition its table forbids."""


@dataclass(frozen=True)
class FoodLogConfig:
    """Runtime switches for the food logging saga."""

    dry_run: bool = False


@dataclass(frozen=True)
class SagaResult:
    """Terminal state of a run with its outcome or error."""

    state: SagaState
    history: tuple[SagaState, ...]
    outcome: LogOutcome | None = None
    error: FoodLogError | None = None


@dataclass
class _SagaRun:
    user_id: UUID
    state: SagaState = SagaState.VALIDATING
    history: list[SagaState] = field(
        default_factory=lambda: [SagaState.VALIDATING]
    )

    def advance(self, target: SagaState) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            raise IllegalTransitionError(f"{self.state} -> {target}")
        _logger.info(
            "Food log saga transition: %s -> %s",
            self.state,
            target,
            extra={"user_id": str(self.user_id)},
        )
        self.state = target
        self.history.append(target)

    def fail(self, target: SagaState, error: FoodLogError) -> SagaResult:
        self.advance(target)
        return SagaResult(state=self.state, history=tuple(self.history), error=error)

    def finish(self, outcome: LogOutcome) -> SagaResult:
        self.advance(SagaState.DONE)
        return SagaResult(
            state=self.state, history=tuple(self.history), outcome=outcome
        )


@dataclass
class FoodLogService:
    """Coordinates Fitbit and local writes for one food log request.

    Local persistence is always the last write. Once Fitbit has accepted the
    log line, a failed primary local write triggers deletion of that line.
    """

    resolver: FoodResolver
    fitbit_client: FitbitClient
    repository: FoodLogRepository
    config: FoodLogConfig = field(default_factory=FoodLogConfig)

    async def log_food(self, user_id: UUID, body: object) -> SagaResult:
        """Run the saga for a raw request body."""
        run = _SagaRun(user_id=user_id)
        try:
            request = parse_log_request(body)
        except FoodLogError as exc:
            _logger.warning("Food log validation failed: %s", exc.message)
            return run.fail(SagaState.FAILED, exc)

        run.advance(SagaState.RESOLVING)
        try:
            resolution = await self.resolver.resolve(
                user_id, request, dry_run=self.config.dry_run
            )
        except FoodLogError as exc:
            _logger.warning("Food resolution failed: %s (%s)", exc.kind, exc.message)
            return run.fail(SagaState.FAILED, exc)
        except Exception:
            _logger.exception("Unexpected error while resolving food")
            return run.fail(SagaState.FAILED, FoodLogError(ErrorKind.INTERNAL_ERROR))

        if self.config.dry_run:
            return self._persist_dry_run(run, request, resolution.food)

        run.advance(SagaState.REMOTE_LOGGING)
        try:
            remote = await self._log_remote(request, resolution)
        except FoodLogError as exc:
            _logger.warning("Fitbit food log failed: %s (%s)", exc.kind, exc.message)
            return run.fail(SagaState.FAILED, exc)

        run.advance(SagaState.PERSISTING)
        try:
            food_log_id = self._persist(
                user_id, request, resolution.food, remote.fitbit_log_id
            )
        except Exception:
            _logger.exception(
                "Local save failed after Fitbit log, attempting compensation",
                extra={"fitbit_log_id": remote.fitbit_log_id},
            )
            return await self._compensate(run, resolution, remote)

        _logger.info(
            "Food logged: fitbit_food_id=%s fitbit_log_id=%s reused=%s",
            resolution.food.fitbit_food_id,
            remote.fitbit_log_id,
            resolution.food.reused,
        )
        return run.finish(
            LogOutcome(
                reused_food=resolution.food.reused,
                food_log_id=food_log_id,
                fitbit_food_id=resolution.food.fitbit_food_id,
                fitbit_log_id=remote.fitbit_log_id,
            )
        )

    def _persist_dry_run(
        self, run: _SagaRun, request: LogRequest, food: ResolvedFood
    ) -> SagaResult:
        run.advance(SagaState.DRY_RUN_PERSIST)
        try:
            food_log_id = self._persist(run.user_id, request, food, None)
        except Exception:
            _logger.exception("Local save failed in dry-run mode")
            return run.fail(
                SagaState.FAILED_INTERNAL, FoodLogError(ErrorKind.INTERNAL_ERROR)
            )
        _logger.info("Food logged in dry-run mode: food_log_id=%s", food_log_id)
        return run.finish(
            LogOutcome(reused_food=food.reused, food_log_id=food_log_id, dry_run=True)
        )

    async def _log_remote(
        self, request: LogRequest, resolution: Resolution
    ) -> RemoteLogResult:
        food = resolution.food
        if food.fitbit_food_id is None or resolution.access_token is None:
            raise FoodLogError(
                ErrorKind.INTERNAL_ERROR, "Resolved food is missing a Fitbit food ID"
            )
        return await self.fitbit_client.log_food(
            resolution.access_token,
            food.fitbit_food_id,
            request.meal_type_id,
            food.amount,
            food.unit_id,
            request.date,
            request.time,
        )

    def _persist(
        self,
        user_id: UUID,
        request: LogRequest,
        food: ResolvedFood,
        fitbit_log_id: int | None,
    ) -> int:
        if isinstance(request, NewFoodLogRequest):
            custom_food_id = self._primary_write(
                "insert_custom_food",
                lambda: self.repository.insert_custom_food(
                    user_id,
                    CustomFoodInput(
                        profile=request.profile, fitbit_food_id=food.fitbit_food_id
                    ),
                ),
            )
        else:
            custom_food_id = request.reuse_custom_food_id

        entry = FoodLogEntryInput(
            custom_food_id=custom_food_id,
            meal_type_id=int(request.meal_type_id),
            amount=food.amount,
            unit_id=food.unit_id,
            date=request.date,
            time=request.time,
            fitbit_log_id=fitbit_log_id,
        )
        food_log_id = self._primary_write(
            "insert_food_log_entry",
            lambda: self.repository.insert_food_log_entry(user_id, entry),
        )

        if isinstance(request, ReuseFoodLogRequest) and not request.metadata.is_empty():
            self._best_effort_write(
                "update_custom_food_metadata",
                lambda: self.repository.update_custom_food_metadata(
                    user_id, request.reuse_custom_food_id, request.metadata
                ),
            )
        return food_log_id

    def _primary_write(self, action: str, func: Callable[[], _T]) -> _T:
        result = func()
        _logger.debug(
            "Local write %s succeeded", action, extra={"write_kind": WriteKind.PRIMARY}
        )
        return result

    def _best_effort_write(self, action: str, func: Callable[[], object]) -> None:
        try:
            func()
        except Exception:
            _logger.warning(
                "Best-effort write %s failed",
                action,
                exc_info=True,
                extra={"write_kind": WriteKind.BEST_EFFORT},
            )

    async def _compensate(
        self, run: _SagaRun, resolution: Resolution, remote: RemoteLogResult
    ) -> SagaResult:
        run.advance(SagaState.COMPENSATING)
        try:
            if resolution.access_token is None:
                raise FoodLogError(ErrorKind.INTERNAL_ERROR, "No Fitbit access token")
            await self.fitbit_client.delete_food_log(
                resolution.access_token, remote.fitbit_log_id
            )
        except Exception:
            _logger.exception(
                "CRITICAL: Fitbit log exists but local save and cleanup both failed",
                extra={"fitbit_log_id": remote.fitbit_log_id},
            )
            return run.fail(
                SagaState.FAILED_PARTIAL, FoodLogError(ErrorKind.PARTIAL_ERROR)
            )
        _logger.info(
            "Compensation deleted Fitbit log: fitbit_log_id=%s", remote.fitbit_log_id
        )
        return run.fail(
            SagaState.FAILED_INTERNAL, FoodLogError(ErrorKind.INTERNAL_ERROR)
        )
