"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from food_logger.adapters.fitbit_client import FitbitClient, TokenGrant
from food_logger.config import Settings
from food_logger.containers import AppContainer
from food_logger.domain.fitbit import FitbitCredentials, FitbitTokens, FoodMatch
from food_logger.domain.food_log import (
    CustomFoodInput,
    CustomFoodMetadataPatch,
    CustomFoodRecord,
    FoodLogEntryInput,
    NutrientProfile,
    RemoteLogResult,
)
from food_logger.domain.sessions import SessionRecord
from food_logger.services.custom_foods import FoodLogRepository
from food_logger.services.fitbit_tokens import FitbitTokenRepository, TokenProvider
from food_logger.services.food_log import FoodLogConfig, FoodLogService
from food_logger.services.resolver import FoodResolver
from food_logger.services.sessions import SessionRepository, SessionService


@dataclass
class FakeFitbitClient(FitbitClient):
    """Fake Fitbit client that records calls and can be told to fail."""

    food_id: int = 123
    log_id: int = 456
    reused: bool = False
    grant: TokenGrant = field(
        default_factory=lambda: TokenGrant(
            fitbit_user_id="FB1",
            access_token="new-access",
            refresh_token="new-refresh",
            expires_in=28800,
        )
    )
    failures: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, tuple[object, ...]]] = field(default_factory=list)

    def calls_to(self, name: str) -> list[tuple[object, ...]]:
        return [args for call, args in self.calls if call == name]

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    async def find_or_create_food(
        self, access_token: str, profile: NutrientProfile
    ) -> FoodMatch:
        self._record("find_or_create_food", access_token, profile)
        return FoodMatch(food_id=self.food_id, reused=self.reused)

    async def log_food(  # noqa: PLR0913
        self,
        access_token: str,
        food_id: int,
        meal_type_id: int,
        amount: float,
        unit_id: int,
        date: str,
        time: str | None = None,
    ) -> RemoteLogResult:
        self._record(
            "log_food", access_token, food_id, meal_type_id, amount, unit_id, date, time
        )
        return RemoteLogResult(fitbit_log_id=self.log_id)

    async def delete_food_log(self, access_token: str, fitbit_log_id: int) -> None:
        self._record("delete_food_log", access_token, fitbit_log_id)

    async def refresh_token(
        self, refresh_token: str, credentials: FitbitCredentials
    ) -> TokenGrant:
        self._record("refresh_token", refresh_token, credentials)
        return self.grant


@dataclass
class FakeTokenProvider(TokenProvider):
    """Token provider returning a fixed token."""

    token: str = "access-token"
    error: Exception | None = None
    calls: list[UUID] = field(default_factory=list)

    async def ensure_fresh_token(self, user_id: UUID) -> str:
        self.calls.append(user_id)
        if self.error is not None:
            raise self.error
        return self.token


@dataclass
class InMemoryFoodLogRepository(FoodLogRepository):
    """In-memory food catalog with switchable write failures."""

    custom_foods: dict[int, CustomFoodRecord] = field(default_factory=dict)
    custom_food_inputs: list[CustomFoodInput] = field(default_factory=list)
    entries: list[FoodLogEntryInput] = field(default_factory=list)
    metadata_updates: list[tuple[int, CustomFoodMetadataPatch]] = field(
        default_factory=list
    )
    fail_insert_custom_food: bool = False
    fail_insert_entry: bool = False
    fail_update_metadata: bool = False
    next_id: int = 1

    def _allocate_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def insert_custom_food(self, user_id: UUID, record: CustomFoodInput) -> int:
        self.custom_food_inputs.append(record)
        if self.fail_insert_custom_food:
            raise RuntimeError("custom_foods insert failed")
        custom_food_id = self._allocate_id()
        profile = record.profile
        self.custom_foods[custom_food_id] = CustomFoodRecord(
            id=custom_food_id,
            food_name=profile.food_name,
            amount=profile.amount,
            unit_id=profile.unit_id,
            calories=round(profile.calories),
            fitbit_food_id=record.fitbit_food_id,
            confidence=profile.confidence,
        )
        return custom_food_id

    def insert_food_log_entry(self, user_id: UUID, record: FoodLogEntryInput) -> int:
        self.entries.append(record)
        if self.fail_insert_entry:
            raise RuntimeError("food_log_entries insert failed")
        return self._allocate_id() + 1000

    def get_custom_food(
        self, user_id: UUID, custom_food_id: int
    ) -> CustomFoodRecord | None:
        return self.custom_foods.get(custom_food_id)

    def update_custom_food_metadata(
        self, user_id: UUID, custom_food_id: int, patch: CustomFoodMetadataPatch
    ) -> None:
        self.metadata_updates.append((custom_food_id, patch))
        if self.fail_update_metadata:
            raise RuntimeError("custom_foods update failed")

    def add_custom_food(self, fitbit_food_id: int | None) -> CustomFoodRecord:
        custom_food_id = self._allocate_id()
        record = CustomFoodRecord(
            id=custom_food_id,
            food_name="Oatmeal",
            amount=150.0,
            unit_id=147,
            calories=250,
            fitbit_food_id=fitbit_food_id,
            confidence="high",
        )
        self.custom_foods[custom_food_id] = record
        return record


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[str, SessionRecord] = field(default_factory=dict)

    def get_session(self, session_id: str) -> SessionRecord | None:
        return self.sessions.get(session_id)

    def add_session(self, user_id: UUID, expires_in: timedelta) -> SessionRecord:
        session = SessionRecord(
            id=str(uuid4()),
            user_id=user_id,
            expires_at=datetime.now(tz=UTC) + expires_in,
        )
        self.sessions[session.id] = session
        return session


@dataclass
class InMemoryFitbitTokenRepository(FitbitTokenRepository):
    """In-memory Fitbit OAuth state for tests."""

    credentials: dict[UUID, FitbitCredentials] = field(default_factory=dict)
    tokens: dict[UUID, FitbitTokens] = field(default_factory=dict)
    upsert_failures: int = 0
    upsert_attempts: int = 0

    def get_credentials(self, user_id: UUID) -> FitbitCredentials | None:
        return self.credentials.get(user_id)

    def get_tokens(self, user_id: UUID) -> FitbitTokens | None:
        return self.tokens.get(user_id)

    def upsert_tokens(self, user_id: UUID, tokens: FitbitTokens) -> None:
        self.upsert_attempts += 1
        if self.upsert_failures > 0:
            self.upsert_failures -= 1
            raise RuntimeError("fitbit_tokens upsert failed")
        self.tokens[user_id] = tokens

    def connect(self, user_id: UUID, expires_in: timedelta) -> None:
        self.credentials[user_id] = FitbitCredentials(
            client_id="client-id", client_secret="client-secret"
        )
        self.tokens[user_id] = FitbitTokens(
            fitbit_user_id="FB1",
            access_token="stored-access",
            refresh_token="stored-refresh",
            expires_at=datetime.now(tz=UTC) + expires_in,
        )


def new_food_body(**overrides: object) -> dict[str, object]:
    """Return a valid new-food request body."""
    body: dict[str, object] = {
        "food_name": "Grilled chicken breast",
        "amount": 150,
        "unit_id": 147,
        "calories": 247.6,
        "protein_g": 46.5,
        "carbs_g": 0,
        "fat_g": 5.4,
        "fiber_g": 0,
        "sodium_mg": 110,
        "saturated_fat_g": 1.5,
        "trans_fat_g": None,
        "sugars_g": 0,
        "calories_from_fat": None,
        "confidence": "high",
        "notes": "Skinless",
        "description": "Chicken breast, grilled",
        "keywords": ["chicken", "grilled"],
        "mealTypeId": 3,
        "date": "2024-01-15",
        "time": "12:30:00",
    }
    body.update(overrides)
    return body


def reuse_body(custom_food_id: int, **overrides: object) -> dict[str, object]:
    """Return a valid reuse request body."""
    body: dict[str, object] = {
        "reuseCustomFoodId": custom_food_id,
        "mealTypeId": 1,
        "date": "2024-01-15",
        "time": "08:15",
    }
    body.update(overrides)
    return body


def build_food_log_service(
    fitbit_client: FakeFitbitClient,
    token_provider: FakeTokenProvider,
    repository: InMemoryFoodLogRepository,
    *,
    dry_run: bool = False,
) -> FoodLogService:
    """Wire a food log service around fakes."""
    return FoodLogService(
        resolver=FoodResolver(
            tokens=token_provider,
            fitbit_client=fitbit_client,
            repository=repository,
        ),
        fitbit_client=fitbit_client,
        repository=repository,
        config=FoodLogConfig(dry_run=dry_run),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="test-header.test-payload.test-signature",
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def fitbit_client() -> FakeFitbitClient:
    return FakeFitbitClient()


@pytest.fixture
def token_provider() -> FakeTokenProvider:
    return FakeTokenProvider()


@pytest.fixture
def food_log_repository() -> InMemoryFoodLogRepository:
    return InMemoryFoodLogRepository()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def token_repository() -> InMemoryFitbitTokenRepository:
    return InMemoryFitbitTokenRepository()


@pytest.fixture
def food_log_service(
    fitbit_client: FakeFitbitClient,
    token_provider: FakeTokenProvider,
    food_log_repository: InMemoryFoodLogRepository,
) -> FoodLogService:
    return build_food_log_service(fitbit_client, token_provider, food_log_repository)


@pytest.fixture
def container(
    settings: Settings,
    session_repository: InMemorySessionRepository,
    token_repository: InMemoryFitbitTokenRepository,
    food_log_service: FoodLogService,
) -> AppContainer:
    session_service = SessionService(
        session_repository=session_repository,
        token_repository=token_repository,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_service=session_service,
        food_log_service=food_log_service,
        close_resources=close_resources,
    )
