"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from food_logger.api.responses import build_response, error_response
from food_logger.app_logging import configure_logging
from food_logger.containers import AppContainer
from food_logger.domain.errors import FoodLogError, ValidationError
from food_logger.services.food_log import SagaResult


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    running_sagas: set[asyncio.Task[SagaResult]] = set()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if container.settings.fitbit_dry_run:
            logger.warning("Fitbit dry-run mode enabled: remote writes are skipped")
        yield
        if running_sagas:
            await asyncio.gather(*running_sagas, return_exceptions=True)
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/log-food")
    async def log_food(
        request: Request, x_session_token: str | None = Header(default=None)
    ) -> JSONResponse:
        """Log a food to Fitbit and mirror it in the local catalog."""
        state_container: AppContainer = request.app.state.container
        try:
            user_id = state_container.session_service.require_user(
                x_session_token, require_fitbit=True
            )
        except FoodLogError as exc:
            logger.warning("Log food request rejected: %s", exc.kind)
            return _json_error(exc)

        try:
            body = await request.json()
        except ValueError:
            return _json_error(ValidationError("Invalid JSON body"))

        # The saga must finish even if the client goes away mid-request.
        saga = asyncio.ensure_future(
            state_container.food_log_service.log_food(user_id, body)
        )
        running_sagas.add(saga)
        saga.add_done_callback(running_sagas.discard)
        result = await asyncio.shield(saga)

        status_code, payload = build_response(result)
        return JSONResponse(payload, status_code=status_code)

    return app


def _json_error(error: FoodLogError) -> JSONResponse:
    status_code, payload = error_response(error)
    return JSONResponse(payload, status_code=status_code)
