"""
agent.tools.save_meal - Save meal data to local storage.

Useful when Fitbit is unavailable, or as a backup. The meal object is kept
as given; view_daily_summary reads it back leniently.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult, resolve_day
from domain.models import MealRecord
from domain.ports import MealStore

logger = logging.getLogger(__name__)


class SaveMealInput(BaseModel):
    """Input schema for the save_meal_locally tool."""

    meal_data: dict[str, Any] = Field(description="Complete meal data to save")
    date: Optional[str] = Field(
        default=None, description="Date for the meal (YYYY-MM-DD format, defaults to today)"
    )


class SaveMealTool(BaseTool):
    """Append a meal record to the local per-date collection."""

    name = "save_meal_locally"
    description = (
        "Save meal data to local file storage. "
        "Useful when Fitbit is not available or for backup purposes."
    )

    def __init__(self, store: MealStore, clock: Callable[[], datetime] = datetime.now):
        self._store = store
        self._clock = clock

    def get_schema(self) -> type[BaseModel]:
        return SaveMealInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        params = self.parse_arguments(arguments)
        now = self._clock()
        day = resolve_day(params.date, now.date)

        record = MealRecord(timestamp=now, date=day, meal_data=params.meal_data)
        count = self._store.append(record)

        return ToolResult(
            output=(
                f"✅ Meal saved locally to {day.isoformat()}\n"
                f"📂 File: {self._store.path_for(day)}\n"
                f"🕒 Total meals today: {count}"
            ),
            data=record,
            store_as="last_saved_meal",
        )
