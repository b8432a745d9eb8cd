"""
domain.models - Value objects for the meal-logging agent.

These are immutable data containers with no business logic and no
dependencies on infrastructure (no HTTP, no LLM clients, no filesystem).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


TOOL_RESULT_PREFIX = "Tool result: "


@dataclass(frozen=True)
class ConversationTurn:
    """One entry of the append-only conversation history."""
    role: Role
    content: str

    @property
    def is_tool_result(self) -> bool:
        """True for user turns that carry a tool result back to the model."""
        return self.role is Role.USER and self.content.startswith(TOOL_RESULT_PREFIX)

    @property
    def tool_result(self) -> str:
        """The tool result text without the prefix ('' for ordinary turns)."""
        if not self.is_tool_result:
            return ""
        return self.content[len(TOOL_RESULT_PREFIX):]


@dataclass(frozen=True)
class ToolInvocationRequest:
    """A tool call found in one assistant response.

    raw_arguments is always valid JSON text: either the model's own argument
    block, or that block wrapped as {"input": "<original text>"}.
    """
    id: str
    name: str
    raw_arguments: str


# ---------------------------------------------------------------------------
# Meals
# ---------------------------------------------------------------------------

class MealCategory(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class CanonicalFoodItem:
    """A single food item after normalization."""
    name: str
    quantity: float
    unit: str
    calories: float


@dataclass(frozen=True)
class CanonicalMeal:
    """The strictly-typed meal handed to persistence or the diet API.

    expected_total is the total the caller declared (if any); it has already
    been cross-checked against the item calories.
    """
    meal_category: MealCategory
    items: tuple[CanonicalFoodItem, ...]
    timestamp_label: str = "now"
    notes: str = ""
    expected_total: float | None = None

    @property
    def total_calories(self) -> float:
        return sum(item.calories for item in self.items)


@dataclass(frozen=True)
class MealRecord:
    """A meal saved to local storage."""
    timestamp: datetime
    date: date
    meal_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "date": self.date.isoformat(),
            "meal_data": self.meal_data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MealRecord:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            date=date.fromisoformat(data["date"]),
            meal_data=data.get("meal_data") or {},
        )


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FitbitCredentials:
    """OAuth credentials for the diet-tracking API.

    user_id "-" means "the user that owns the token", which the API accepts
    anywhere a user id is expected.
    """
    access_token: str
    user_id: str = "-"
    refresh_token: str = ""
    expires_at: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "access_token": self.access_token,
            "user_id": self.user_id,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
        }
