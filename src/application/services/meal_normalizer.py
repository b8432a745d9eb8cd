"""
application.services.meal_normalizer - Flexible meal input → CanonicalMeal.

The model that writes meal JSON is not schema-disciplined: the same logical
field shows up under different names from one call to the next, numbers
arrive as words, and side dishes land in their own lists. Each logical field
is therefore a prioritized list of acceptable keys, and the first usable
candidate wins.

Quantity is forgiving (defaults to 1). Calories are not: a food item with
no resolvable calorie value fails the whole normalization.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from application.services.quantity import parse_number
from domain.exceptions import InputValidationError
from domain.models import CanonicalFoodItem, CanonicalMeal, MealCategory

logger = logging.getLogger(__name__)

# ── Candidate keys, highest priority first ──────────────────────────────────
MEAL_TYPE_FIELDS = ("meal_type", "meal", "meal_category", "category")
FOOD_LIST_FIELDS = ("foods", "toast", "snacks", "items", "food_items")
TIME_FIELDS = ("meal_time", "time")
NOTES_FIELDS = ("notes", "description")
TOTAL_FIELDS = ("total_calories",)

NAME_FIELDS = ("name", "food_item", "item", "food")
QUANTITY_FIELDS = ("quantity", "amount", "serving", "count")
UNIT_FIELDS = ("unit", "units", "measurement", "size")
CALORIE_FIELDS = ("calories", "cals", "cal", "energy")

CALORIE_TOLERANCE = 50.0

_MEAL_SYNONYMS: dict[str, MealCategory] = {
    "breakfast": MealCategory.BREAKFAST,
    "morning": MealCategory.BREAKFAST,
    "am": MealCategory.BREAKFAST,
    "lunch": MealCategory.LUNCH,
    "noon": MealCategory.LUNCH,
    "midday": MealCategory.LUNCH,
    "afternoon": MealCategory.LUNCH,
    "pm": MealCategory.LUNCH,
    "dinner": MealCategory.DINNER,
    "evening": MealCategory.DINNER,
    "night": MealCategory.DINNER,
    "supper": MealCategory.DINNER,
    "snack": MealCategory.SNACK,
    "snacking": MealCategory.SNACK,
    "treat": MealCategory.SNACK,
    "dessert": MealCategory.SNACK,
}

_UNIT_SYNONYMS: dict[str, str] = {
    "slice": "slices", "slices": "slices", "piece": "slices", "pieces": "slices",
    "large": "large", "medium": "large", "small": "large", "whole": "large",
    "egg": "large", "eggs": "large",
    "cup": "cups", "cups": "cups", "c": "cups",
    "tbsp": "tbsp", "tablespoon": "tbsp", "tablespoons": "tbsp",
    "tsp": "tsp", "teaspoon": "tsp", "teaspoons": "tsp",
    "oz": "oz", "ounce": "oz", "ounces": "oz",
    "lb": "lbs", "pound": "lbs", "pounds": "lbs",
    "g": "g", "gram": "g", "grams": "g",
    "serving": "servings", "servings": "servings",
    "portion": "servings", "portions": "servings",
}


def normalize_meal_category(value: object) -> Optional[MealCategory]:
    """Map a meal-type string or synonym to a MealCategory (None if unknown)."""
    if not isinstance(value, str):
        return None
    return _MEAL_SYNONYMS.get(value.strip().lower())


def normalize_unit(unit: str) -> str:
    """Collapse unit spellings onto one token; unknown units pass through lowercased."""
    normalized = unit.strip().lower()
    return _UNIT_SYNONYMS.get(normalized, normalized)


def default_unit(food_name: str) -> str:
    """Guess a unit from the food name when the input names none."""
    name = food_name.lower()
    if "toast" in name or "bread" in name or "slice" in name:
        return "slices"
    if "egg" in name:
        return "large"
    if "cup" in name or "milk" in name or "juice" in name:
        return "cups"
    return "servings"


def normalize_meal(raw: object) -> CanonicalMeal:
    """Reduce an arbitrarily-shaped meal object to a CanonicalMeal.

    Raises:
        InputValidationError: naming the field (and food item, if any)
            that could not be resolved.
    """
    if not isinstance(raw, Mapping):
        raise InputValidationError(
            f"meal input must be a JSON object, got {type(raw).__name__}",
            field="meal",
        )

    raw_meal_type = _first_text(raw, MEAL_TYPE_FIELDS)
    category = normalize_meal_category(raw_meal_type)
    if category is None:
        raise InputValidationError(
            "invalid or missing meal type. Must be one of: breakfast, lunch, "
            f"dinner, snack. Got: {raw_meal_type!r}",
            field="meal_type",
        )

    raw_items = collect_food_items(raw)
    if not raw_items:
        raise InputValidationError(
            "no food items found. Please provide at least one food item",
            field="foods",
        )

    items = tuple(
        _normalize_item(position, item)
        for position, item in enumerate(raw_items, start=1)
    )

    expected_total = _expected_total(raw)
    if expected_total is not None:
        computed = sum(item.calories for item in items)
        if abs(computed - expected_total) > CALORIE_TOLERANCE:
            raise InputValidationError(
                f"calorie mismatch: calculated {computed:.0f} calories "
                f"but expected {expected_total:.0f} calories",
                field="total_calories",
            )

    return CanonicalMeal(
        meal_category=category,
        items=items,
        timestamp_label=_first_text(raw, TIME_FIELDS) or "now",
        notes=_first_text(raw, NOTES_FIELDS) or "",
        expected_total=expected_total,
    )


def collect_food_items(raw: Mapping[str, Any]) -> list[Any]:
    """Concatenate every food list on the input, in field order then item order."""
    collected: list[Any] = []
    for key in FOOD_LIST_FIELDS:
        value = raw.get(key)
        if isinstance(value, list):
            collected.extend(value)
        elif isinstance(value, Mapping):
            collected.append(value)
    return collected


def meal_category_of(raw: Mapping[str, Any]) -> Optional[MealCategory]:
    """Category of a stored or raw meal object, None if it has no usable one."""
    return normalize_meal_category(_first_text(raw, MEAL_TYPE_FIELDS))


def item_calories(item: object) -> Optional[float]:
    """Calories of one raw food item, or None when no synonym field resolves."""
    if not isinstance(item, Mapping):
        return None
    return _first_number(item, CALORIE_FIELDS, lambda v: v >= 0)


def best_effort_name(item: object) -> str:
    if isinstance(item, Mapping):
        return _first_text(item, NAME_FIELDS) or ""
    if isinstance(item, str):
        return item.strip()
    return ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalize_item(position: int, item: object) -> CanonicalFoodItem:
    name = best_effort_name(item)

    if not isinstance(item, Mapping):
        raise _item_error(position, name, "food item must be a JSON object", "foods")
    if not name:
        raise _item_error(position, name, "food item must have a name", "name")

    calories = item_calories(item)
    if calories is None:
        raise _item_error(position, name, "calories must be specified", "calories")

    quantity = _first_number(item, QUANTITY_FIELDS, lambda v: v > 0)
    if quantity is None:
        quantity = 1.0

    unit = _first_text(item, UNIT_FIELDS)
    unit = normalize_unit(unit) if unit else default_unit(name)

    return CanonicalFoodItem(name=name, quantity=quantity, unit=unit, calories=calories)


def _item_error(position: int, name: str, reason: str, field: str) -> InputValidationError:
    return InputValidationError(
        f"error parsing food item {position} ({name}): {reason}",
        field=field,
        item_index=position,
        item_name=name,
    )


def _first_text(data: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_number(data: Mapping[str, Any], keys: Iterable[str], accept) -> Optional[float]:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        try:
            number = parse_number(value, key)
        except InputValidationError:
            logger.debug("Ignoring unparseable %s=%r", key, value)
            continue
        if accept(number):
            return number
    return None


def _expected_total(raw: Mapping[str, Any]) -> Optional[float]:
    for key in TOTAL_FIELDS:
        value = raw.get(key)
        if value is None:
            continue
        try:
            total = parse_number(value, key)
        except InputValidationError:
            logger.warning("Ignoring unparseable declared total %r", value)
            return None
        return total if total > 0 else None
    return None
