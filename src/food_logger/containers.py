"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from food_logger.adapters.fitbit_client import HttpxFitbitClient
from food_logger.adapters.supabase_fitbit_token_repository import (
    SupabaseFitbitTokenRepository,
)
from food_logger.adapters.supabase_food_log_repository import (
    SupabaseFoodLogRepository,
)
from food_logger.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from food_logger.config import Settings
from food_logger.services.fitbit_tokens import FitbitTokenService
from food_logger.services.food_log import FoodLogConfig, FoodLogService
from food_logger.services.resolver import FoodResolver
from food_logger.services.sessions import SessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    food_log_service: FoodLogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    token_repository = SupabaseFitbitTokenRepository(supabase_client)
    food_log_repository = SupabaseFoodLogRepository(supabase_client)
    fitbit_client = HttpxFitbitClient.create(
        base_url=resolved_settings.fitbit_api_base,
        timeout_seconds=resolved_settings.fitbit_request_timeout_seconds,
    )
    token_service = FitbitTokenService(
        repository=token_repository,
        client=fitbit_client,
        refresh_margin_seconds=resolved_settings.fitbit_token_refresh_margin_seconds,
    )
    session_service = SessionService(
        session_repository=session_repository,
        token_repository=token_repository,
    )
    food_log_service = FoodLogService(
        resolver=FoodResolver(
            tokens=token_service,
            fitbit_client=fitbit_client,
            repository=food_log_repository,
        ),
        fitbit_client=fitbit_client,
        repository=food_log_repository,
        config=FoodLogConfig(dry_run=resolved_settings.fitbit_dry_run),
    )

    async def close_resources() -> None:
        await fitbit_client.close()

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        food_log_service=food_log_service,
        close_resources=close_resources,
    )
