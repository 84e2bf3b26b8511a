"""Fitbit Web API client."""

import base64
import logging
import re
from dataclasses import dataclass
from typing import Protocol

import httpx

from food_logger.domain.errors import ErrorKind, FitbitError
from food_logger.domain.fitbit import FitbitCredentials, FoodMatch
from food_logger.domain.food_log import NutrientProfile, RemoteLogResult

_logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]*>")
_MAX_ERROR_BODY = 500


@dataclass(frozen=True)
class TokenGrant:
    """Tokens returned by the Fitbit OAuth token endpoint."""

    fitbit_user_id: str
    access_token: str
    refresh_token: str
    expires_in: int


class FitbitClient(Protocol):
    """Interface for Fitbit API interactions used by food logging."""

    async def find_or_create_food(
        self, access_token: str, profile: NutrientProfile
    ) -> FoodMatch:
        """Return a Fitbit food id for the profile, creating the food if needed."""

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
        """Create a food log line and return its id."""

    async def delete_food_log(self, access_token: str, fitbit_log_id: int) -> None:
        """Delete a food log line."""

    async def refresh_token(
        self, refresh_token: str, credentials: FitbitCredentials
    ) -> TokenGrant:
        """Exchange a refresh token for new tokens."""


@dataclass
class HttpxFitbitClient(FitbitClient):
    """HTTPX-backed Fitbit client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10.0

    @classmethod
    def create(cls, base_url: str, timeout_seconds: float) -> "HttpxFitbitClient":
        """Create a Fitbit client with a managed httpx session."""
        return cls(
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def find_or_create_food(
        self, access_token: str, profile: NutrientProfile
    ) -> FoodMatch:
        """Create the food in the user's Fitbit catalog."""
        food_id = await self.create_food(access_token, profile)
        _logger.info("Created Fitbit food: food_id=%s", food_id)
        return FoodMatch(food_id=food_id, reused=False)

    async def create_food(self, access_token: str, profile: NutrientProfile) -> int:
        """Create a custom food and return its Fitbit id."""
        params = {
            "name": profile.food_name,
            "defaultFoodMeasurementUnitId": str(profile.unit_id),
            "defaultServingSize": _format_number(profile.amount),
            "calories": _format_number(profile.calories),
            "protein": _format_number(profile.protein_g),
            "totalCarbohydrate": _format_number(profile.carbs_g),
            "totalFat": _format_number(profile.fat_g),
            "dietaryFiber": _format_number(profile.fiber_g),
            "sodium": _format_number(profile.sodium_mg),
            "formType": "DRY",
            "description": profile.food_name,
        }
        optional = {
            "saturatedFat": profile.saturated_fat_g,
            "transFat": profile.trans_fat_g,
            "sugars": profile.sugars_g,
            "caloriesFromFat": profile.calories_from_fat,
        }
        for key, value in optional.items():
            if value is not None:
                params[key] = _format_number(value)

        response = await self._send(
            "POST",
            "/1/user/-/foods.json",
            access_token,
            action="create_food",
            data=params,
        )
        payload = _json_or_error(response, action="create_food")
        food = payload.get("food")
        food_id = food.get("foodId") if isinstance(food, dict) else None
        if not isinstance(food_id, int):
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR,
                "Invalid Fitbit create food response: missing food.foodId",
            )
        return food_id

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
        """Log a food to the user's Fitbit diary."""
        params = {
            "foodId": str(food_id),
            "mealTypeId": str(meal_type_id),
            "unitId": str(unit_id),
            "amount": _format_number(amount),
            "date": date,
        }
        if time:
            params["time"] = time
        response = await self._send(
            "POST",
            "/1/user/-/foods/log.json",
            access_token,
            action="log_food",
            data=params,
        )
        payload = _json_or_error(response, action="log_food")
        food_log = payload.get("foodLog")
        log_id = food_log.get("logId") if isinstance(food_log, dict) else None
        if not isinstance(log_id, int):
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR,
                "Invalid Fitbit log food response: missing foodLog.logId",
            )
        return RemoteLogResult(fitbit_log_id=log_id)

    async def delete_food_log(self, access_token: str, fitbit_log_id: int) -> None:
        """Delete a food log line; a missing log counts as deleted."""
        response = await self._send(
            "DELETE",
            f"/1/user/-/food/log/{fitbit_log_id}.json",
            access_token,
            action="delete_food_log",
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            _logger.warning(
                "Fitbit food log not found, treating as already deleted: log_id=%s",
                fitbit_log_id,
            )
            return
        _raise_for_status(response, action="delete_food_log")

    async def refresh_token(
        self, refresh_token: str, credentials: FitbitCredentials
    ) -> TokenGrant:
        """Refresh OAuth tokens using the user's client credentials."""
        basic = base64.b64encode(
            f"{credentials.client_id}:{credentials.client_secret}".encode()
        ).decode()
        try:
            response = await self.http_client.post(
                f"{self.base_url}/oauth2/token",
                headers={"Authorization": f"Basic {basic}"},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            _logger.error("Fitbit token refresh timed out")
            raise FitbitError(ErrorKind.FITBIT_TIMEOUT) from exc
        except httpx.HTTPError as exc:
            _logger.error("Fitbit token refresh transport error: %s", exc)
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR, "Fitbit token refresh failed"
            ) from exc
        if response.status_code in {httpx.codes.BAD_REQUEST, httpx.codes.UNAUTHORIZED}:
            _logger.error(
                "Fitbit token refresh rejected: status=%s", response.status_code
            )
            raise FitbitError(ErrorKind.FITBIT_TOKEN_INVALID)
        if response.is_error:
            _logger.error(
                "Fitbit token refresh failed: status=%s", response.status_code
            )
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR, "Fitbit token refresh failed"
            )
        try:
            payload = response.json()
            return TokenGrant(
                fitbit_user_id=str(payload["user_id"]),
                access_token=str(payload["access_token"]),
                refresh_token=str(payload["refresh_token"]),
                expires_in=int(payload["expires_in"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR, "Invalid Fitbit token response"
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        action: str,
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {access_token}"},
                data=data,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            _logger.error("Fitbit %s timed out", action)
            raise FitbitError(ErrorKind.FITBIT_TIMEOUT) from exc
        except httpx.HTTPError as exc:
            _logger.error("Fitbit %s transport error: %s", action, exc)
            raise FitbitError(ErrorKind.FITBIT_API_ERROR) from exc
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise FitbitError(ErrorKind.FITBIT_TOKEN_INVALID)
        if response.status_code == httpx.codes.FORBIDDEN:
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR,
                "Fitbit permissions need updating. "
                "Please reconnect your Fitbit account.",
            )
        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise FitbitError(
                ErrorKind.FITBIT_API_ERROR,
                "Fitbit API rate limited. Please try again later.",
            )
        return response


def _json_or_error(response: httpx.Response, *, action: str) -> dict[str, object]:
    _raise_for_status(response, action=action)
    try:
        payload = response.json()
    except ValueError as exc:
        raise FitbitError(ErrorKind.FITBIT_API_ERROR) from exc
    if not isinstance(payload, dict):
        raise FitbitError(ErrorKind.FITBIT_API_ERROR)
    return payload


def _raise_for_status(response: httpx.Response, *, action: str) -> None:
    if not response.is_error:
        return
    _logger.error(
        "Fitbit %s failed: status=%s body=%s",
        action,
        response.status_code,
        sanitize_error_body(response.text),
    )
    raise FitbitError(ErrorKind.FITBIT_API_ERROR)


def sanitize_error_body(body: str) -> str:
    """Strip HTML tags and truncate an error body for logging."""
    return _HTML_TAG.sub("", body)[:_MAX_ERROR_BODY]


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)
