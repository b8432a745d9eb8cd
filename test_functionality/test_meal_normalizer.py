"""Tests for application.services.meal_normalizer."""

import json

import pytest

from application.services.meal_normalizer import (
    best_effort_name,
    collect_food_items,
    default_unit,
    meal_category_of,
    normalize_meal,
    normalize_meal_category,
    normalize_unit,
)
from domain.exceptions import InputValidationError
from domain.models import CanonicalFoodItem, MealCategory


def test_canonical_input_is_unchanged(breakfast) -> None:
    meal = normalize_meal(breakfast)

    assert meal.meal_category is MealCategory.BREAKFAST
    assert meal.items == (CanonicalFoodItem("eggs", 2.0, "large", 140.0),)
    assert meal.timestamp_label == "now"
    assert meal.notes == ""


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("breakfast", MealCategory.BREAKFAST),
        (" Morning ", MealCategory.BREAKFAST),
        ("am", MealCategory.BREAKFAST),
        ("midday", MealCategory.LUNCH),
        ("PM", MealCategory.LUNCH),
        ("supper", MealCategory.DINNER),
        ("night", MealCategory.DINNER),
        ("dessert", MealCategory.SNACK),
        ("brunch", None),
        (None, None),
        (3, None),
    ],
)
def test_meal_category_synonyms(raw, expected) -> None:
    assert normalize_meal_category(raw) is expected


def test_unknown_meal_type_fails() -> None:
    with pytest.raises(InputValidationError) as exc:
        normalize_meal({"meal_type": "brunch", "foods": [{"name": "x", "calories": 1}]})
    assert exc.value.field == "meal_type"
    assert "brunch" in str(exc.value)


def test_meal_type_synonym_fields() -> None:
    meal = normalize_meal({"category": "evening", "foods": [{"name": "soup", "calories": 200}]})
    assert meal.meal_category is MealCategory.DINNER


def test_missing_calories_fails_naming_item() -> None:
    raw = {"meal_type": "breakfast", "foods": [{"food_item": "eggs", "amount": "two"}]}

    with pytest.raises(InputValidationError) as exc:
        normalize_meal(raw)

    assert exc.value.field == "calories"
    assert exc.value.item_index == 1
    assert exc.value.item_name == "eggs"
    assert "food item 1 (eggs)" in str(exc.value)


def test_food_lists_are_merged_in_field_order() -> None:
    raw = {
        "meal_type": "breakfast",
        "foods": [{"name": "eggs", "calories": 140}, {"name": "bacon", "calories": 90}],
        "toast": [{"name": "rye toast", "calories": 80}],
        "snacks": [{"name": "apple", "calories": 80}, {"name": "nuts", "calories": 170}],
    }

    meal = normalize_meal(raw)

    assert [item.name for item in meal.items] == ["eggs", "bacon", "rye toast", "apple", "nuts"]


def test_single_object_food_list_is_collected() -> None:
    assert collect_food_items({"items": {"name": "bagel"}}) == [{"name": "bagel"}]


def test_no_food_items_fails() -> None:
    with pytest.raises(InputValidationError) as exc:
        normalize_meal({"meal_type": "lunch", "foods": []})
    assert exc.value.field == "foods"


def test_item_synonym_fields() -> None:
    raw = {
        "meal": "lunch",
        "items": [{"food": "rice", "serving": "1/2", "measurement": "Cup", "cals": "100 kcal"}],
    }

    item = normalize_meal(raw).items[0]

    assert item == CanonicalFoodItem("rice", 0.5, "cups", 100.0)


def test_quantity_defaults_to_one_when_unusable() -> None:
    raw = {"meal_type": "snack", "foods": [{"name": "apple", "quantity": "some", "calories": 80}]}
    assert normalize_meal(raw).items[0].quantity == 1.0


def test_zero_quantity_falls_through_to_next_candidate() -> None:
    raw = {"meal_type": "snack", "foods": [{"name": "apple", "quantity": 0, "count": 2, "calories": 80}]}
    assert normalize_meal(raw).items[0].quantity == 2.0


def test_negative_calories_are_skipped() -> None:
    raw = {"meal_type": "snack", "foods": [{"name": "gum", "calories": -5, "energy": 5}]}
    assert normalize_meal(raw).items[0].calories == 5.0


def test_zero_calories_are_accepted() -> None:
    raw = {"meal_type": "snack", "foods": [{"name": "water", "calories": 0}]}
    assert normalize_meal(raw).items[0].calories == 0.0


def test_non_finite_json_calories_are_rejected() -> None:
    raw = json.loads('{"meal_type": "lunch", "foods": [{"name": "x", "calories": Infinity}]}')

    with pytest.raises(InputValidationError, match="calories must be specified") as exc:
        normalize_meal(raw)
    assert exc.value.item_name == "x"


def test_nan_calories_fall_through_to_next_candidate() -> None:
    raw = json.loads('{"meal_type": "lunch", "foods": [{"name": "x", "calories": NaN, "energy": 90}]}')
    assert normalize_meal(raw).items[0].calories == 90.0


@pytest.mark.parametrize(
    ("unit", "expected"),
    [
        ("Slice", "slices"),
        ("pieces", "slices"),
        ("c", "cups"),
        ("Tablespoons", "tbsp"),
        ("teaspoon", "tsp"),
        ("ounces", "oz"),
        ("pound", "lbs"),
        ("grams", "g"),
        ("portion", "servings"),
        ("medium", "large"),
        ("bowl", "bowl"),
    ],
)
def test_unit_normalization(unit, expected) -> None:
    assert normalize_unit(unit) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("whole wheat toast", "slices"),
        ("Banana Bread", "slices"),
        ("scrambled eggs", "large"),
        ("chocolate milk", "cups"),
        ("orange juice", "cups"),
        ("salad", "servings"),
    ],
)
def test_default_unit_from_name(name, expected) -> None:
    assert default_unit(name) == expected


def test_default_unit_applies_when_unit_missing() -> None:
    raw = {"meal_type": "breakfast", "foods": [{"name": "toast", "quantity": 2, "calories": 160}]}
    assert normalize_meal(raw).items[0].unit == "slices"


@pytest.mark.parametrize(("declared", "ok"), [(230, True), (270, True), (279, False), (169, False)])
def test_calorie_cross_check_tolerance(declared, ok) -> None:
    raw = {
        "meal_type": "breakfast",
        "foods": [{"name": "eggs", "calories": 140}, {"name": "toast", "calories": 80}],
        "total_calories": declared,
    }
    if ok:
        assert normalize_meal(raw).expected_total == declared
    else:
        with pytest.raises(InputValidationError, match="calorie mismatch"):
            normalize_meal(raw)


def test_exactly_fifty_off_succeeds() -> None:
    raw = {
        "meal_type": "lunch",
        "foods": [{"name": "sandwich", "calories": 400}],
        "total_calories": 450,
    }
    assert normalize_meal(raw).total_calories == 400


def test_time_and_notes_are_carried() -> None:
    raw = {
        "meal_type": "dinner",
        "foods": [{"name": "pasta", "calories": 440}],
        "time": "7pm",
        "description": "at a restaurant",
    }
    meal = normalize_meal(raw)
    assert meal.timestamp_label == "7pm"
    assert meal.notes == "at a restaurant"


def test_non_object_input_fails() -> None:
    with pytest.raises(InputValidationError):
        normalize_meal(["eggs"])


def test_item_without_name_fails() -> None:
    with pytest.raises(InputValidationError) as exc:
        normalize_meal({"meal_type": "lunch", "foods": [{"calories": 100}]})
    assert exc.value.field == "name"


def test_helpers_for_stored_meals() -> None:
    assert meal_category_of({"meal": "noon"}) is MealCategory.LUNCH
    assert meal_category_of({}) is None
    assert best_effort_name({"item": " tea "}) == "tea"
    assert best_effort_name("coffee") == "coffee"
    assert best_effort_name(42) == ""
