"""
infrastructure.fitbit.client - HTTP client for the Fitbit Web API.

Implements DietApi (structural typing — no explicit inheritance). Blocking
requests calls; tools run them through run_in_executor.

Any 401 answer raises CredentialExpiredError so callers can distinguish an
expired token from every other failure and suggest logging in again.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import requests

from domain.exceptions import CredentialExpiredError, FitbitApiError
from domain.models import CanonicalFoodItem, FitbitCredentials, MealCategory

logger = logging.getLogger(__name__)

FITBIT_API_URL = "https://api.fitbit.com"

# Fitbit's "serving" unit; the real unit is kept in the food name context.
GENERIC_UNIT_ID = "147"

MEAL_TYPE_IDS: dict[MealCategory, str] = {
    MealCategory.BREAKFAST: "1",
    MealCategory.LUNCH: "3",
    MealCategory.DINNER: "4",
    MealCategory.SNACK: "7",
}
DEFAULT_MEAL_TYPE_ID = "7"


def meal_type_id(category: MealCategory) -> str:
    """Fixed numeric Fitbit id for a meal category (snack for anything unknown)."""
    return MEAL_TYPE_IDS.get(category, DEFAULT_MEAL_TYPE_ID)


class FitbitClient:
    """Authenticated calls against the Fitbit nutrition and profile endpoints."""

    def __init__(
        self,
        base_url: str = FITBIT_API_URL,
        timeout: float = 30.0,
        validation_timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._validation_timeout = validation_timeout
        self._session = session or requests.Session()

    def log_food(
        self,
        credentials: FitbitCredentials,
        item: CanonicalFoodItem,
        category: MealCategory,
        day: date,
    ) -> dict[str, Any]:
        """Log one food item.

        Raises:
            CredentialExpiredError: On HTTP 401.
            FitbitApiError: On any other non-2xx status or transport failure.
        """
        form = {
            "foodName": item.name,
            "mealTypeId": meal_type_id(category),
            "unitId": GENERIC_UNIT_ID,
            "amount": f"{item.quantity:.2f}",
            "date": day.isoformat(),
            "calories": f"{item.calories:.0f}",
        }
        url = f"{self._base_url}/1/user/{credentials.user_id or '-'}/foods/log.json"

        try:
            response = self._session.post(
                url, data=form, headers=_bearer(credentials.access_token), timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise FitbitApiError(
                f"failed to log {item.name} to Fitbit: {e}", food_name=item.name,
            ) from e

        _raise_for_status(response, f"failed to log {item.name}", item.name)
        logger.info("Logged %s (%s, %s) to Fitbit", item.name, category.value, day)
        return _json_or_empty(response)

    def validate_token(self, access_token: str) -> bool:
        """True when the token can read the profile (short timeout, never raises)."""
        try:
            response = self._session.get(
                f"{self._base_url}/1/user/-/profile.json",
                headers=_bearer(access_token),
                timeout=self._validation_timeout,
            )
        except requests.RequestException as e:
            logger.warning("Token validation request failed: %s", e)
            return False
        return response.status_code == 200

    def get_profile(self, credentials: FitbitCredentials) -> dict[str, Any]:
        return self._get(credentials, f"/1/user/{credentials.user_id or '-'}/profile.json")

    def get_food_log(self, credentials: FitbitCredentials, day: date) -> dict[str, Any]:
        return self._get(
            credentials,
            f"/1/user/{credentials.user_id or '-'}/foods/log/date/{day.isoformat()}.json",
        )

    def _get(self, credentials: FitbitCredentials, path: str) -> dict[str, Any]:
        try:
            response = self._session.get(
                self._base_url + path,
                headers=_bearer(credentials.access_token),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise FitbitApiError(f"Fitbit request failed: {e}") from e
        _raise_for_status(response, f"GET {path} failed")
        return _json_or_empty(response)


def _bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def _raise_for_status(response: requests.Response, context: str, food_name: str = "") -> None:
    if response.status_code == 401:
        raise CredentialExpiredError("unauthorized: access token may be expired (401)")
    if not 200 <= response.status_code < 300:
        raise FitbitApiError(
            f"{context}: HTTP {response.status_code}",
            status_code=response.status_code,
            food_name=food_name,
        )


def _json_or_empty(response: requests.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
