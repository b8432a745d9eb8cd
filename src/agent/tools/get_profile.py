"""
agent.tools.get_profile - Fitbit profile and daily nutrition progress.

Reads the user's display name and the food log for one date, and reports
calories consumed against the Fitbit calorie goal with a per-meal breakdown.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult, resolve_day
from agent.tools.log_meal import AUTH_EXPIRED_MESSAGE
from domain.exceptions import CredentialExpiredError
from domain.models import FitbitCredentials
from domain.ports import DietApi

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = (
    "❌ Not authenticated with Fitbit. Please run fitbit_login first to connect your account."
)

# mealTypeId -> label, matching the ids fitbit_log_meal writes. Display order.
_MEAL_LABELS = {1: "Breakfast", 3: "Lunch", 4: "Dinner", 7: "Snack"}
_OTHER_LABEL = "Other"


class ProfileInput(BaseModel):
    """Input schema for the fitbit_get_profile tool."""

    date: Optional[str] = Field(
        default=None,
        description="Date to get nutrition info for (YYYY-MM-DD format, defaults to today)",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
    )


class GetProfileTool(BaseTool):
    """Show profile and calorie progress for a day."""

    name = "fitbit_get_profile"
    description = (
        "Get user's Fitbit profile information and daily nutrition progress "
        "including calorie goals and current intake."
    )

    def __init__(self, api: DietApi, today: Callable[[], date] = date.today):
        self._api = api
        self._today = today

    def get_schema(self) -> type[BaseModel]:
        return ProfileInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        params = self.parse_arguments(arguments)
        day = resolve_day(params.date, self._today)

        if not ctx.is_authenticated:
            return ToolResult(output=NOT_AUTHENTICATED_MESSAGE)

        loop = asyncio.get_running_loop()
        try:
            profile, food_log = await loop.run_in_executor(None, self._fetch, ctx.credentials, day)
        except CredentialExpiredError:
            return ToolResult(output=AUTH_EXPIRED_MESSAGE)

        return ToolResult(
            output=format_progress(profile, food_log, day),
            data=food_log,
            store_as="food_log",
        )

    def _fetch(self, credentials: FitbitCredentials, day: date) -> tuple[dict, dict]:
        return self._api.get_profile(credentials), self._api.get_food_log(credentials, day)


def format_progress(profile: dict[str, Any], food_log: dict[str, Any], day: date) -> str:
    user = profile.get("user") or {}
    summary = food_log.get("summary") or {}
    goal = (food_log.get("goals") or {}).get("calories")
    consumed = float(summary.get("calories") or 0)

    lines = [f"👤 Fitbit Profile & Daily Progress ({day.isoformat()})"]
    if user.get("displayName"):
        lines.append(f"Name: {user['displayName']}")
    lines.append("")

    if goal:
        percent = consumed / goal * 100
        lines += [
            f"🎯 Daily calorie goal: {goal:,.0f} cal",
            f"📊 Calories consumed: {consumed:,.0f} / {goal:,.0f} ({percent:.0f}%)",
        ]
        remaining = goal - consumed
        if remaining >= 0:
            lines.append(f"- Remaining: {remaining:,.0f} calories")
        else:
            lines.append(f"- Over goal: {-remaining:,.0f} calories")
    else:
        lines.append(f"📊 Calories consumed: {consumed:,.0f}")

    macros = [
        f"{label}: {summary[key]:.0f}g"
        for key, label in (("protein", "Protein"), ("carbs", "Carbs"), ("fat", "Fat"))
        if isinstance(summary.get(key), (int, float))
    ]
    if macros:
        lines.append("- " + ", ".join(macros))

    per_meal: dict[str, float] = {}
    for entry in food_log.get("foods") or []:
        logged = entry.get("loggedFood") or {}
        calories = (entry.get("nutritionalValues") or {}).get("calories", logged.get("calories", 0))
        label = _MEAL_LABELS.get(logged.get("mealTypeId", 7), _OTHER_LABEL)
        per_meal[label] = per_meal.get(label, 0.0) + float(calories or 0)

    lines.append("")
    if per_meal:
        lines.append("🍽️ Meals:")
        for label in (*_MEAL_LABELS.values(), _OTHER_LABEL):
            if label in per_meal:
                lines.append(f"- {label}: {per_meal[label]:,.0f} cal")
    else:
        lines.append("🍽️ No foods logged for this date yet.")
    return "\n".join(lines)
