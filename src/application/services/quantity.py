"""
application.services.quantity - Single conversion boundary for numeric fields.

LLM-produced JSON carries numbers as numbers, numeric strings, words
("two", "half"), fractions ("1/2") or number-plus-unit text ("2 large").
parse_number() reduces all of them to one float or raises
InputValidationError naming the field.
"""

from __future__ import annotations

import math
import re
from typing import Union

from domain.exceptions import InputValidationError

# A raw numeric field as decoded from JSON: number, text, or absent.
NumericField = Union[int, float, str, None]

WORD_NUMBERS: dict[str, float] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "half": 0.5, "quarter": 0.25, "third": 0.33, "couple": 2, "few": 3,
    "dozen": 12, "pair": 2, "single": 1,
}

# Fractions are checked first: "1/2" would otherwise extract as 1.
_FRACTION_RE = re.compile(r"^(\d+)/(\d+)")
_LEADING_NUMBER_RE = re.compile(r"^(\d+\.?\d*|\d*\.\d+)")


def parse_number(value: object, field_label: str) -> float:
    """Convert a JSON scalar to float.

    Args:
        value:        The decoded JSON value.
        field_label:  Field name used in error messages.

    Returns:
        The numeric value (integers widen to float).

    Raises:
        InputValidationError: For null, empty or unparseable text, and for
            any non-scalar JSON type (object, array, bool).
    """
    if value is None:
        raise InputValidationError(f"{field_label} is required", field=field_label)

    # bool is an int subclass; JSON true/false is not a quantity.
    if isinstance(value, bool):
        raise InputValidationError(
            f"{field_label} must be a number, got type: bool", field=field_label,
        )

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            number = math.inf
        if not math.isfinite(number):
            raise InputValidationError(
                f"{field_label} must be a finite number, got: {value}", field=field_label,
            )
        return number

    if not isinstance(value, str):
        raise InputValidationError(
            f"{field_label} must be a number, got type: {type(value).__name__}",
            field=field_label,
        )

    text = value.strip()
    if not text:
        raise InputValidationError(f"{field_label} cannot be empty", field=field_label)

    try:
        number = float(text)
    except ValueError:
        pass
    else:
        if math.isfinite(number):
            return number

    number = _number_from_text(text.lower())
    if number is None:
        raise InputValidationError(
            f"{field_label} must be a number, got: {text.lower()}", field=field_label,
        )
    return number


def _number_from_text(text: str) -> float | None:
    if text in WORD_NUMBERS:
        return float(WORD_NUMBERS[text])

    match = _FRACTION_RE.match(text)
    if match:
        denominator = float(match.group(2))
        if denominator == 0:
            return None
        return float(match.group(1)) / denominator

    match = _LEADING_NUMBER_RE.match(text)
    if match:
        return float(match.group(1))

    return None
