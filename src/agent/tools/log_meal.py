"""
agent.tools.log_meal - Log a described meal to Fitbit.

The model's JSON is normalized by meal_normalizer (synonym fields, word
quantities, split food lists) and then each food item is logged with its
own API call. There is no rollback: if item 3 of 3 fails, items 1 and 2
stay logged and the error says so.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from application.services.meal_normalizer import normalize_meal
from agent.tools.base import BaseTool, ToolResult, resolve_day
from domain.exceptions import CredentialExpiredError, FitbitApiError, InputValidationError
from domain.models import CanonicalMeal, FitbitCredentials
from domain.ports import DietApi

logger = logging.getLogger(__name__)

INPUT_PREVIEW_CHARS = 100

AUTH_REQUIRED_MESSAGE = """🔐 Authentication Required!

To log meals to Fitbit, you need to authenticate first. Let me help you with that.

TOOL_CALL: fitbit_login({})

After authentication, I'll log your meal automatically."""

AUTH_EXPIRED_MESSAGE = """🔐 Authentication Expired!

Your Fitbit access token has expired. Let me help you re-authenticate.

TOOL_CALL: fitbit_login({"force_reauth": true})

After re-authentication, I'll log your meal automatically."""

PARTIAL_EXPIRED_MESSAGE = """🔐 Authentication Expired!

Your Fitbit access token expired while logging this meal: {logged} of {total} items were logged before the failure ({done}).
Still to log: {remaining}.

TOOL_CALL: fitbit_login({{"force_reauth": true}})

After re-authentication, log only the remaining items so nothing is logged twice."""


class FoodItemInput(BaseModel):
    name: str = Field(description="Name of the food item")
    quantity: float = Field(description="Quantity/amount of the food")
    unit: str = Field(description="Unit of measurement (e.g., cups, slices, pieces, oz)")
    calories: float = Field(description="Estimated calories for this food item")


class LogMealInput(BaseModel):
    """Input shape shown to the model.

    Actual arguments are not validated against this model: they go through
    normalize_meal, which accepts many more spellings than it advertises.
    """

    meal_type: Literal["breakfast", "lunch", "dinner", "snack"] = Field(
        description="Type of meal: breakfast, lunch, dinner, or snack"
    )
    foods: list[FoodItemInput] = Field(description="List of foods in the meal")
    meal_time: Optional[str] = Field(
        default=None, description="Time when meal was consumed (optional, defaults to now)"
    )
    notes: Optional[str] = Field(default=None, description="Additional notes about the meal")
    date: Optional[str] = Field(
        default=None, description="Date to log the meal on (YYYY-MM-DD, defaults to today)"
    )


class LogMealTool(BaseTool):
    """Normalize a meal description and log every item to Fitbit."""

    name = "fitbit_log_meal"
    description = (
        "Log a meal to Fitbit with automatic calorie estimation. Accepts natural "
        "language descriptions and converts to structured meal data."
    )

    def __init__(self, api: DietApi, today: Callable[[], date] = date.today):
        self._api = api
        self._today = today

    def get_schema(self) -> type[BaseModel]:
        return LogMealInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        raw = unwrap_fallback_payload(arguments)
        meal = normalize_meal(raw)
        day = resolve_day(raw.get("date"), self._today)

        if not ctx.is_authenticated:
            logger.info("Meal not logged: no Fitbit credentials in session")
            return ToolResult(output=AUTH_REQUIRED_MESSAGE)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._log_items, ctx.credentials, meal, day)
        except CredentialExpiredError as e:
            logger.warning("Fitbit rejected the stored token (401) after %d item(s)", e.logged_items)
            return ToolResult(output=expired_message(meal, e.logged_items))

        return ToolResult(
            output=format_logged_meal(meal, day),
            data=meal,
            store_as="last_logged_meal",
        )

    def _log_items(self, credentials: FitbitCredentials, meal: CanonicalMeal, day: date) -> None:
        for position, item in enumerate(meal.items):
            try:
                self._api.log_food(credentials, item, meal.meal_category, day)
            except CredentialExpiredError as e:
                raise CredentialExpiredError(str(e), logged_items=position) from e
            except FitbitApiError as e:
                already = f" ({position} of {len(meal.items)} items were logged before the failure)"
                raise FitbitApiError(
                    f"failed to log meal to Fitbit: {e}{already if position else ''}",
                    status_code=e.status_code,
                    food_name=item.name,
                ) from e


def unwrap_fallback_payload(arguments: dict[str, Any]) -> Any:
    """Undo the parser's {"input": "<text>"} wrapping when the text is JSON after all.

    Raises:
        InputValidationError: when the wrapped text is still not JSON
            (usually a reply cut off mid-object).
    """
    wrapped = arguments.get("input")
    if not isinstance(wrapped, str) or not wrapped:
        return arguments
    try:
        return json.loads(wrapped)
    except ValueError:
        preview = wrapped
        if len(preview) > INPUT_PREVIEW_CHARS:
            preview = preview[:INPUT_PREVIEW_CHARS] + "..."
        raise InputValidationError(
            "received truncated or invalid JSON input. Please ensure the complete "
            f"meal data is provided. Got: {preview}",
            field="input",
        ) from None


def expired_message(meal: CanonicalMeal, logged_items: int) -> str:
    """Re-authentication prompt that names what already reached Fitbit."""
    if not logged_items:
        return AUTH_EXPIRED_MESSAGE
    return PARTIAL_EXPIRED_MESSAGE.format(
        logged=logged_items,
        total=len(meal.items),
        done=", ".join(item.name for item in meal.items[:logged_items]),
        remaining=", ".join(item.name for item in meal.items[logged_items:]),
    )


def format_quantity(quantity: float) -> str:
    if quantity == int(quantity):
        return str(int(quantity))
    return f"{quantity:.1f}"


def format_logged_meal(meal: CanonicalMeal, day: date) -> str:
    lines = [
        f"✅ Successfully logged {meal.meal_category.value} to Fitbit "
        f"({meal.timestamp_label}, {day.isoformat()}):"
    ]
    for item in meal.items:
        lines.append(
            f"- {item.name} ({format_quantity(item.quantity)} {item.unit}): ~{item.calories:.0f} cal"
        )
    lines += [
        "",
        f"💯 Total: ~{meal.total_calories:.0f} calories",
        "",
        "🎉 Meal logged to your Fitbit account! Check your Fitbit app to see the nutrition data.",
    ]
    if meal.notes:
        lines.append(f"📝 Notes: {meal.notes}")
    return "\n".join(lines)
