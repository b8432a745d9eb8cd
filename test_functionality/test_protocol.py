"""Tests for agent.protocol tool-call extraction."""

import json

import pytest

from agent.protocol import (
    ToolCallParser,
    clean_arguments,
    contains_directive,
    extract_tool_calls,
    scan_balanced,
)

MEAL = {
    "meal_type": "breakfast",
    "foods": [{"name": "eggs", "quantity": 2, "unit": "large", "calories": 140}],
}


def test_primary_grammar_single_call() -> None:
    text = f"Logging now.\nTOOL_CALL: fitbit_log_meal({json.dumps(MEAL)})"

    calls = extract_tool_calls(text)

    assert len(calls) == 1
    assert calls[0].name == "fitbit_log_meal"
    assert calls[0].id == "call_0"
    assert json.loads(calls[0].raw_arguments) == MEAL


def test_parentheses_and_escaped_quotes_inside_strings() -> None:
    args = {"meal_type": "lunch", "notes": 'side (extra) and a \\"quoted)\\" bit', "foods": []}
    text = f"TOOL_CALL: fitbit_log_meal({json.dumps(args)}) trailing prose (ignored)"

    calls = extract_tool_calls(text)

    assert json.loads(calls[0].raw_arguments) == args


def test_nested_parenthetical_text() -> None:
    text = 'TOOL_CALL: save_meal_locally({"meal_data": {"notes": "soup (with (extra) bread)"}})'
    calls = extract_tool_calls(text)
    assert json.loads(calls[0].raw_arguments) == {"meal_data": {"notes": "soup (with (extra) bread)"}}


def test_multiple_calls_keep_order_and_ids() -> None:
    text = (
        'TOOL_CALL: view_daily_summary({})\n'
        'then TOOL_CALL: lookup_food_calories({"food_name": "egg"})'
    )

    calls = extract_tool_calls(text)

    assert [c.name for c in calls] == ["view_daily_summary", "lookup_food_calories"]
    assert [c.id for c in calls] == ["call_0", "call_1"]


def test_trailing_semicolon_is_stripped() -> None:
    calls = extract_tool_calls('TOOL_CALL: fitbit_login({"force_reauth": true};)')
    assert json.loads(calls[0].raw_arguments) == {"force_reauth": True}


def test_invalid_json_is_wrapped_not_dropped() -> None:
    calls = extract_tool_calls("TOOL_CALL: fitbit_log_meal({meal_type: breakfast})")

    assert len(calls) == 1
    assert json.loads(calls[0].raw_arguments) == {"input": "{meal_type: breakfast}"}


def test_unclosed_call_takes_remainder() -> None:
    calls = extract_tool_calls('TOOL_CALL: fitbit_log_meal({"meal_type": "lunch", "foods": [')
    assert json.loads(calls[0].raw_arguments) == {"input": '{"meal_type": "lunch", "foods": ['}


def test_empty_arguments_become_empty_object() -> None:
    calls = extract_tool_calls("TOOL_CALL: fitbit_login()")
    assert calls[0].raw_arguments == "{}"


def test_fenced_grammar() -> None:
    text = 'Sure:\n```tool_call\nview_daily_summary({"date": "2024-03-15"})\n```'

    calls = extract_tool_calls(text)

    assert calls[0].name == "view_daily_summary"
    assert json.loads(calls[0].raw_arguments) == {"date": "2024-03-15"}


def test_prose_grammar() -> None:
    text = 'Call lookup_food_calories with {"food_name": "rice (cooked)"} please'

    calls = extract_tool_calls(text)

    assert calls[0].name == "lookup_food_calories"
    assert json.loads(calls[0].raw_arguments) == {"food_name": "rice (cooked)"}


def test_bare_grammar_requires_registered_name() -> None:
    text = 'I would run fitbit_get_profile({"date": "2024-03-15"}) for you.'

    assert extract_tool_calls(text) == []
    calls = extract_tool_calls(text, known_tools=["fitbit_get_profile"])
    assert calls[0].name == "fitbit_get_profile"


def test_bare_grammar_ignores_prose_function_text() -> None:
    text = "Use print({}) or len({'a': 1}) in Python."

    calls = extract_tool_calls(text, known_tools=["len"])

    assert calls == []


def test_primary_grammar_wins_over_fallbacks() -> None:
    text = (
        'Call lookup_food_calories with {"food_name": "egg"}\n'
        'TOOL_CALL: view_daily_summary({})'
    )
    calls = extract_tool_calls(text, known_tools=["lookup_food_calories"])
    assert [c.name for c in calls] == ["view_daily_summary"]


def test_plain_reply_has_no_calls() -> None:
    assert extract_tool_calls("Great choice! Eggs are about 70 calories each.") == []


def test_parser_reads_live_tool_names() -> None:
    names = []
    parser = ToolCallParser(lambda: names)
    text = 'echo({"text": "hi"})'

    assert parser.parse(text) == []
    names.append("echo")
    assert parser.parse(text)[0].name == "echo"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("  {}  ", "{}"), ("{};", "{}"), ("{} ; ", "{}"), ("{};;", "{};")],
)
def test_clean_arguments(raw, expected) -> None:
    assert clean_arguments(raw) == expected


def test_scan_balanced_needs_opener() -> None:
    assert scan_balanced("abc", 0) == ""
    assert scan_balanced("(a(b)c) d", 0) == "a(b)c"


def test_contains_directive() -> None:
    assert contains_directive("... TOOL_CALL: fitbit_login({}) ...")
    assert not contains_directive("tool call")
