"""
agent.tools.food_lookup - Calorie estimates for common foods.

A small static table: enough for the model to ground its estimates on
everyday foods, not a nutrition database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult

MAX_MATCHES = 3


@dataclass(frozen=True)
class FoodInfo:
    name: str
    calories_per: str
    calories: float
    unit: str
    common_units: tuple[str, ...] = ()


FOODS: tuple[FoodInfo, ...] = (
    # Eggs & dairy
    FoodInfo("egg", "1 large egg", 70, "each", ("piece", "large", "medium")),
    FoodInfo("milk", "1 cup", 150, "cup", ("glass", "8oz")),
    FoodInfo("cheese", "1 oz", 110, "oz", ("slice", "cube")),
    FoodInfo("yogurt", "1 cup", 150, "cup", ("container",)),
    FoodInfo("butter", "1 tbsp", 100, "tbsp", ("pat",)),
    # Grains & bread
    FoodInfo("bread", "1 slice", 80, "slice", ("piece",)),
    FoodInfo("toast", "1 slice", 80, "slice", ("piece",)),
    FoodInfo("rice", "1 cup cooked", 205, "cup", ("serving",)),
    FoodInfo("pasta", "1 cup cooked", 220, "cup", ("serving",)),
    FoodInfo("oatmeal", "1 cup cooked", 150, "cup", ("bowl",)),
    FoodInfo("bagel", "1 medium", 250, "each", ("whole",)),
    # Proteins
    FoodInfo("chicken breast", "3 oz cooked", 140, "3oz", ("piece", "serving")),
    FoodInfo("ground beef", "3 oz cooked", 230, "3oz", ("serving",)),
    FoodInfo("salmon", "3 oz cooked", 175, "3oz", ("fillet", "serving")),
    FoodInfo("tuna", "3 oz", 100, "3oz", ("can", "serving")),
    FoodInfo("beans", "1/2 cup", 120, "1/2 cup", ("serving",)),
    # Fruits
    FoodInfo("apple", "1 medium", 80, "each", ("whole", "medium")),
    FoodInfo("banana", "1 medium", 105, "each", ("whole", "medium")),
    FoodInfo("orange", "1 medium", 60, "each", ("whole", "medium")),
    FoodInfo("berries", "1 cup", 80, "cup", ("handful",)),
    FoodInfo("grapes", "1 cup", 60, "cup", ("handful",)),
    # Vegetables
    FoodInfo("broccoli", "1 cup", 25, "cup", ("serving",)),
    FoodInfo("carrots", "1 cup", 50, "cup", ("serving",)),
    FoodInfo("lettuce", "1 cup", 10, "cup", ("serving",)),
    FoodInfo("potato", "1 medium", 160, "each", ("whole", "medium")),
    FoodInfo("tomato", "1 medium", 25, "each", ("whole",)),
    # Snacks & others
    FoodInfo("peanut butter", "2 tbsp", 190, "2 tbsp", ("serving",)),
    FoodInfo("nuts", "1 oz", 170, "oz", ("handful", "small bag")),
    FoodInfo("chips", "1 oz", 150, "oz", ("small bag", "handful")),
    FoodInfo("chocolate", "1 oz", 150, "oz", ("square", "piece")),
    FoodInfo("ice cream", "1/2 cup", 140, "1/2 cup", ("scoop",)),
    # Beverages
    FoodInfo("coffee", "1 cup black", 5, "cup", ("mug",)),
    FoodInfo("orange juice", "8 oz", 110, "glass", ("cup", "8oz")),
    FoodInfo("soda", "12 oz", 150, "can", ("bottle",)),
    FoodInfo("beer", "12 oz", 150, "bottle", ("can",)),
    FoodInfo("wine", "5 oz", 125, "glass", ("serving",)),
)

_ALIASES = {"eggs": "egg"}


class FoodLookupInput(BaseModel):
    """Input schema for the lookup_food_calories tool."""

    food_name: str = Field(min_length=1, description="Name of the food to look up")
    search_terms: Optional[list[str]] = Field(
        default=None, description="Alternative search terms if exact match not found"
    )


class FoodLookupTool(BaseTool):
    """Look up per-serving calories in the static food table."""

    name = "lookup_food_calories"
    description = (
        "Look up calorie estimates for common foods. Provides calories per "
        "standard serving size and common units."
    )

    def __init__(self, foods: tuple[FoodInfo, ...] = FOODS):
        self._foods = {food.name: food for food in foods}
        for alias, target in _ALIASES.items():
            if target in self._foods:
                self._foods.setdefault(alias, self._foods[target])

    def get_schema(self) -> type[BaseModel]:
        return FoodLookupInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        params = self.parse_arguments(arguments)
        query = params.food_name.strip().lower()

        exact = self._foods.get(query)
        if exact is not None:
            return ToolResult(output=format_food(exact), data=[exact])

        matches = self.search(query, params.search_terms or [])
        if not matches:
            return ToolResult(
                output=(
                    f"❌ No calorie data found for '{params.food_name}'.\n"
                    "💡 Try searching for:\n"
                    "- Basic food names (e.g., 'chicken' instead of 'grilled chicken breast')\n"
                    "- Common foods (e.g., 'egg', 'bread', 'rice')\n"
                    "- Use general estimates: 100-200 cal for small items, 300-600 cal for meals"
                )
            )

        lines = [f"🔍 Found {len(matches)} match(es) for '{params.food_name}':", ""]
        lines += [format_food(food) for food in matches[:MAX_MATCHES]]
        return ToolResult(output="\n".join(lines), data=matches[:MAX_MATCHES])

    def search(self, query: str, search_terms: list[str]) -> list[FoodInfo]:
        """Partial matches on the query, then exact matches on each search term."""
        found: list[FoodInfo] = []
        if query:
            for key, food in self._foods.items():
                if key in query or query in key:
                    found.append(food)
        for term in search_terms:
            food = self._foods.get(term.strip().lower())
            if food is not None:
                found.append(food)
        # Aliases point at the same entry; report each food once.
        return list(dict.fromkeys(found))


def format_food(food: FoodInfo) -> str:
    text = f"🍽️  **{food.name}**: {food.calories:.0f} cal per {food.calories_per}"
    if food.common_units:
        text += f"\n   Common units: {', '.join(food.common_units)}"
    return text
