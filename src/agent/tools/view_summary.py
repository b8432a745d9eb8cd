"""
agent.tools.view_summary - Daily meal summary from local storage.

Groups the day's saved meals by meal type (breakfast, lunch, dinner, snack)
and totals calories. Stored meal objects are whatever the model saved, so
names and calories are read with the same synonym rules as meal logging.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from application.services.meal_normalizer import (
    best_effort_name,
    collect_food_items,
    item_calories,
    meal_category_of,
)
from agent.tools.base import BaseTool, ToolResult, resolve_day
from domain.models import MealCategory, MealRecord
from domain.ports import MealStore

# Rough reference intake for the remaining/over estimate.
REFERENCE_GOAL = 2000.0
# Totals outside this range are likely incomplete or mislogged; no estimate.
_ESTIMATE_RANGE = (500.0, 3000.0)


class ViewSummaryInput(BaseModel):
    """Input schema for the view_daily_summary tool."""

    date: Optional[str] = Field(
        default=None,
        description="Date to view summary for (YYYY-MM-DD format, defaults to today)",
    )


class ViewSummaryTool(BaseTool):
    """Summarize one day of locally saved meals."""

    name = "view_daily_summary"
    description = (
        "View daily meal summary and calorie totals from local storage. "
        "Shows breakdown by meal type."
    )

    def __init__(self, store: MealStore, today: Callable[[], date] = date.today):
        self._store = store
        self._today = today

    def get_schema(self) -> type[BaseModel]:
        return ViewSummaryInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        params = self.parse_arguments(arguments)
        day = resolve_day(params.date, self._today)

        meals = self._store.load(day)
        if not meals:
            return ToolResult(
                output=(
                    f"📅 No meals logged for {day.isoformat()}\n"
                    "💡 Start by saying: 'I had [food] for [meal type]'"
                )
            )

        return ToolResult(output=format_summary(meals, day, self._store.path_for(day)))


def _meal_foods(record: MealRecord) -> tuple[list[str], float]:
    names: list[str] = []
    calories = 0.0
    for item in collect_food_items(record.meal_data):
        name = best_effort_name(item)
        if name:
            names.append(name)
        calories += item_calories(item) or 0.0
    return names, calories


def format_summary(meals: list[MealRecord], day: date, path: str) -> str:
    by_category: dict[MealCategory, list[MealRecord]] = {}
    for record in meals:
        category = meal_category_of(record.meal_data)
        if category is not None:
            by_category.setdefault(category, []).append(record)

    total_calories = sum(_meal_foods(record)[1] for record in meals)

    lines = [f"📅 Daily Summary for {day.isoformat()}", "================================", ""]

    for category in MealCategory:
        records = by_category.get(category)
        if not records:
            continue
        plural = "" if len(records) == 1 else "s"
        lines.append(f"🍽️  **{category.value.capitalize()}** ({len(records)} meal{plural}):")
        for position, record in enumerate(records, start=1):
            names, calories = _meal_foods(record)
            line = f"   {position}. {record.timestamp.strftime('%H:%M')}"
            if names:
                line += f" - {', '.join(names)}"
            if calories > 0:
                line += f" (~{calories:.0f} cal)"
            lines.append(line)
        lines.append("")

    lines += ["📊 **Daily Totals:**", f"   Total meals: {len(meals)}"]
    if total_calories > 0:
        lines.append(f"   Total calories: ~{total_calories:.0f} cal")
        low, high = _ESTIMATE_RANGE
        if low < total_calories < high:
            remaining = REFERENCE_GOAL - total_calories
            if remaining > 0:
                lines.append(f"   Remaining (est.): ~{remaining:.0f} cal")
            else:
                lines.append(f"   Over goal (est.): ~{-remaining:.0f} cal")

    lines += ["", f"📂 Data stored in: {path}"]
    return "\n".join(lines)
