"""Tests for Fitbit token refresh."""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from food_logger.domain.errors import ErrorKind, FitbitError
from food_logger.services.fitbit_tokens import FitbitTokenService
from tests.conftest import FakeFitbitClient, InMemoryFitbitTokenRepository


def test_returns_stored_token_when_not_near_expiry() -> None:
    repository = InMemoryFitbitTokenRepository()
    client = FakeFitbitClient()
    user_id = uuid4()
    repository.connect(user_id, expires_in=timedelta(hours=5))
    service = FitbitTokenService(repository=repository, client=client)

    token = asyncio.run(service.ensure_fresh_token(user_id))

    assert token == "stored-access"
    assert client.calls == []


def test_refreshes_token_within_margin() -> None:
    repository = InMemoryFitbitTokenRepository()
    client = FakeFitbitClient()
    user_id = uuid4()
    repository.connect(user_id, expires_in=timedelta(minutes=30))
    service = FitbitTokenService(repository=repository, client=client)

    token = asyncio.run(service.ensure_fresh_token(user_id))

    assert token == "new-access"
    assert repository.tokens[user_id].refresh_token == "new-refresh"
    assert client.calls_to("refresh_token")[0][0] == "stored-refresh"


def test_concurrent_callers_share_one_refresh() -> None:
    repository = InMemoryFitbitTokenRepository()
    client = FakeFitbitClient()
    user_id = uuid4()
    repository.connect(user_id, expires_in=timedelta(minutes=5))
    service = FitbitTokenService(repository=repository, client=client)

    async def run_both() -> list[str]:
        return await asyncio.gather(
            service.ensure_fresh_token(user_id), service.ensure_fresh_token(user_id)
        )

    tokens = asyncio.run(run_both())

    assert tokens == ["new-access", "new-access"]
    assert len(client.calls_to("refresh_token")) == 1


def test_missing_credentials_and_tokens_are_classified() -> None:
    repository = InMemoryFitbitTokenRepository()
    service = FitbitTokenService(repository=repository, client=FakeFitbitClient())
    user_id = uuid4()

    with pytest.raises(FitbitError) as missing_credentials:
        asyncio.run(service.ensure_fresh_token(user_id))
    repository.connect(user_id, expires_in=timedelta(hours=5))
    del repository.tokens[user_id]
    with pytest.raises(FitbitError) as missing_tokens:
        asyncio.run(service.ensure_fresh_token(user_id))

    assert missing_credentials.value.kind is ErrorKind.FITBIT_CREDENTIALS_MISSING
    assert missing_tokens.value.kind is ErrorKind.FITBIT_TOKEN_INVALID


def test_token_save_is_retried_once() -> None:
    repository = InMemoryFitbitTokenRepository(upsert_failures=1)
    user_id = uuid4()
    repository.connect(user_id, expires_in=timedelta(minutes=5))
    service = FitbitTokenService(repository=repository, client=FakeFitbitClient())

    token = asyncio.run(service.ensure_fresh_token(user_id))

    assert token == "new-access"
    assert repository.upsert_attempts == 2


def test_token_save_failing_twice_raises() -> None:
    repository = InMemoryFitbitTokenRepository(upsert_failures=2)
    user_id = uuid4()
    repository.connect(user_id, expires_in=timedelta(minutes=5))
    service = FitbitTokenService(repository=repository, client=FakeFitbitClient())

    with pytest.raises(FitbitError) as excinfo:
        asyncio.run(service.ensure_fresh_token(user_id))
    assert excinfo.value.kind is ErrorKind.FITBIT_API_ERROR
