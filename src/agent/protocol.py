"""
agent.protocol - Tool-call directives embedded in model text.

The models we talk to have no native function-calling API here, so the
prompt asks them to write

    TOOL_CALL: tool_name({...json...})

and this module finds those directives in the reply. The argument block is
found with a string-aware balanced scan rather than a regex, because the
JSON itself may contain parentheses and escaped quotes.

When the primary grammar finds nothing, three looser grammars are tried in
order, stopping at the first that matches:

    1. a fenced block:   ```tool_call\\nname(args)\\n```
    2. prose:            Call name with {...}
    3. a bare call:      name({...})   (only for registered tool names)

The rest of the agent only sees extract_tool_calls(text) -> requests, so this
can be swapped for provider-native function calling without touching the
executor.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Callable, Iterable, Optional

from domain.models import ToolInvocationRequest

logger = logging.getLogger(__name__)

TOOL_CALL_TOKEN = "TOOL_CALL:"

_PRIMARY_RE = re.compile(r"TOOL_CALL:\s*(\w+)\s*\(")
_FENCED_RE = re.compile(r"```tool_call\s*\n(\w+)\s*\(([^)]*)\)\s*\n```")
_PROSE_RE = re.compile(r"Call\s+(\w+)\s+with\s+(?=\{)")
_BARE_RE = re.compile(r"\b(\w+)\(\s*(?=\{)")


def contains_directive(text: str) -> bool:
    """True when text carries at least one primary-grammar directive token."""
    return TOOL_CALL_TOKEN in text


def extract_tool_calls(
    text: str,
    known_tools: Iterable[str] = (),
) -> list[ToolInvocationRequest]:
    """Find every tool call in a model reply, in order of appearance.

    Args:
        text:         Raw model output.
        known_tools:  Registered tool names. Only the bare-call grammar
                      consults this list.

    Returns:
        Requests with sequential ids (call_0, call_1, ...); empty if none.
    """
    for grammar, extract in (
        ("primary", _extract_primary),
        ("fenced", _extract_fenced),
        ("prose", _extract_prose),
    ):
        found = extract(text)
        if found:
            if grammar != "primary":
                logger.debug("Tool calls found with %s grammar", grammar)
            return _with_ids(found)

    found = _extract_bare(text, set(known_tools))
    if found:
        logger.debug("Tool calls found with bare-call grammar")
    return _with_ids(found)


class ToolCallParser:
    """Binds extract_tool_calls to a live source of registered tool names."""

    def __init__(self, tool_names: Callable[[], Iterable[str]]):
        self._tool_names = tool_names

    def parse(self, text: str) -> list[ToolInvocationRequest]:
        return extract_tool_calls(text, self._tool_names())


# ---------------------------------------------------------------------------
# Balanced scanning
# ---------------------------------------------------------------------------

def scan_balanced(text: str, open_pos: int, opener: str = "(", closer: str = ")") -> str:
    """Return the text between text[open_pos] and its matching closer.

    Brackets inside double-quoted strings are ignored, and a backslash
    always escapes the next character (so an escaped quote never toggles
    string state). If the closer is never found, the remainder of the text
    is returned.
    """
    if open_pos >= len(text) or text[open_pos] != opener:
        return ""
    close_pos = find_closing(text, open_pos, opener, closer)
    if close_pos is None:
        return text[open_pos + 1:].strip()
    return text[open_pos + 1:close_pos].strip()


def find_closing(text: str, open_pos: int, opener: str, closer: str) -> Optional[int]:
    """Index of the closer matching text[open_pos], or None if it never closes."""
    depth = 1
    in_string = False
    escaped = False

    for pos in range(open_pos + 1, len(text)):
        char = text[pos]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif not in_string:
            if char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return pos
    return None


def clean_arguments(raw: str) -> str:
    """Trim whitespace and one trailing semicolon. Nothing more."""
    cleaned = raw.strip()
    if cleaned.endswith(";"):
        cleaned = cleaned[:-1].strip()
    return cleaned


def to_json_arguments(raw: str) -> str:
    """Use raw verbatim if it is JSON, else wrap it as {"input": raw}."""
    if is_valid_json(raw):
        return raw
    logger.warning("Tool-call arguments are not valid JSON; wrapping: %s", raw[:200])
    return json.dumps({"input": raw})


def is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Grammars
# ---------------------------------------------------------------------------

def _extract_primary(text: str) -> list[tuple[str, str]]:
    calls = []
    for match in _PRIMARY_RE.finditer(text):
        open_pos = match.end() - 1
        arguments = clean_arguments(scan_balanced(text, open_pos))
        logger.debug("TOOL_CALL %s raw arguments: %s", match.group(1), arguments[:200])
        calls.append((match.group(1), to_json_arguments(arguments) if arguments else "{}"))
    return calls


def _extract_fenced(text: str) -> list[tuple[str, str]]:
    calls = []
    for match in _FENCED_RE.finditer(text):
        arguments = clean_arguments(match.group(2))
        calls.append((match.group(1), to_json_arguments(arguments) if arguments else "{}"))
    return calls


def _extract_prose(text: str) -> list[tuple[str, str]]:
    calls = []
    for match in _PROSE_RE.finditer(text):
        brace_pos = match.end()
        close_pos = find_closing(text, brace_pos, "{", "}")
        block = text[brace_pos:] if close_pos is None else text[brace_pos:close_pos + 1]
        calls.append((match.group(1), to_json_arguments(clean_arguments(block))))
    return calls


def _extract_bare(text: str, known_tools: set[str]) -> list[tuple[str, str]]:
    calls = []
    for match in _BARE_RE.finditer(text):
        name = match.group(1)
        if name not in known_tools:
            continue
        arguments = _bare_arguments(text, match.end())
        if arguments is None:
            continue
        calls.append((name, arguments))
    return calls


def _bare_arguments(text: str, brace_pos: int) -> Optional[str]:
    """The {...} block at brace_pos, if it closes, is valid JSON and is followed by ')'."""
    close_pos = find_closing(text, brace_pos, "{", "}")
    if close_pos is None or not text[close_pos + 1:].lstrip().startswith(")"):
        return None
    arguments = text[brace_pos:close_pos + 1]
    return arguments if is_valid_json(arguments) else None


def _with_ids(calls: list[tuple[str, str]]) -> list[ToolInvocationRequest]:
    return [
        ToolInvocationRequest(id=f"call_{index}", name=name, raw_arguments=arguments)
        for index, (name, arguments) in enumerate(calls)
    ]
