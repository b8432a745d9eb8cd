"""
agent.prompt - System prompt loading and tool-protocol instructions.

The system prompt is user-replaceable (env var, file, or one of the
well-known locations); the tool-call instructions are not, because the
parser in agent.protocol depends on the model following them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from agent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "default"

DEFAULT_PROMPT_PATHS: tuple[Path, ...] = (
    Path("system_prompt.txt"),
    Path(".fitbit-agent") / "system_prompt.txt",
    Path.home() / ".fitbit-agent" / "system_prompt.txt",
    Path("/etc/fitbit-agent/system_prompt.txt"),
)

DEFAULT_SYSTEM_PROMPT = """You are Fitbit Agent, an intelligent personal nutrition assistant with access to Fitbit API tools.

## Your Role
- Help users log meals and track nutrition using natural language
- Make meal logging as simple as saying "I had a turkey sandwich for lunch"
- Provide calorie estimates and nutritional guidance
- Support healthy eating habits through easy tracking

## Available Tools
- **Fitbit Integration**: fitbit_login, fitbit_log_meal, fitbit_get_profile
- **Local Storage**: save_meal_locally, view_daily_summary
- **Nutrition Data**: lookup_food_calories

## Guidelines
1. **Log Meals Immediately**: When users describe meals, log them right away
2. **Estimate Calories**: Provide reasonable calorie estimates for all foods
3. **Be Encouraging**: Support healthy choices and positive habits
4. **Ask for Clarification**: Only when meal descriptions are unclear
5. **Explain Estimates**: Help users learn about nutrition

## Response Style
- Be friendly and encouraging
- Provide specific calorie breakdowns
- Use emojis to make interactions fun (🥗 🍎 ✅)
- Celebrate healthy choices
- Be helpful without being preachy

Remember: Your goal is to make nutrition tracking effortless and encourage healthy eating habits."""

TOOL_CALL_EXAMPLE = (
    'TOOL_CALL: fitbit_log_meal({"meal_type": "breakfast", "foods": '
    '[{"name": "eggs", "quantity": 2, "unit": "large", "calories": 140}]})'
)

SUGGESTED_CALL_NOTICE = (
    "🚨 The tool result above contains a suggested TOOL_CALL. "
    "You MUST execute it immediately using the exact format shown!\n"
    "Copy the TOOL_CALL line exactly as written in the tool result."
)


@dataclass(frozen=True)
class SystemPrompt:
    """A resolved system prompt and where it came from."""
    content: str
    source: str = DEFAULT_SOURCE

    @property
    def is_default(self) -> bool:
        return self.source == DEFAULT_SOURCE


def load_system_prompt(
    inline: Optional[str] = None,
    prompt_file: Optional[str] = None,
    search_paths: Sequence[Path] = DEFAULT_PROMPT_PATHS,
) -> SystemPrompt:
    """Resolve the system prompt.

    Order: inline text, then prompt_file, then the first readable file in
    search_paths, then the built-in default. An unreadable prompt_file is
    skipped, not fatal.
    """
    if inline:
        return SystemPrompt(inline, "environment")

    candidates = ([Path(prompt_file)] if prompt_file else []) + list(search_paths)
    for path in candidates:
        try:
            content = path.read_text(encoding="utf-8").strip()
        except OSError:
            continue
        logger.info("Loaded system prompt from %s", path)
        return SystemPrompt(content, str(path))

    return SystemPrompt(DEFAULT_SYSTEM_PROMPT)


def create_default_system_prompt_file(path: str | Path) -> Path:
    """Write the built-in prompt to path (creating parent dirs) so it can be edited."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_SYSTEM_PROMPT, encoding="utf-8")
    return target


# ---------------------------------------------------------------------------
# Tool-protocol instructions shared by every provider
# ---------------------------------------------------------------------------

def tool_call_header() -> str:
    """First thing the model reads when tools are available."""
    return (
        "🚨🚨🚨 CRITICAL: YOU MUST USE TOOLS! 🚨🚨🚨\n"
        "When user asks to log meals, you MUST use this EXACT format:\n"
        f"{TOOL_CALL_EXAMPLE}\n\n"
        "DO NOT just say 'I'll log it' - ACTUALLY CALL THE TOOL!\n"
    )


def tool_catalog(registry: ToolRegistry) -> str:
    """One line per tool: name, description and its JSON input shape."""
    lines = ["🚨 AVAILABLE TOOLS:"]
    for definition in registry.definitions():
        properties = definition["input_schema"].get("properties", {})
        shape = json.dumps(
            {key: prop.get("type", "any") for key, prop in properties.items()},
            separators=(",", ":"),
        )
        lines.append(f"- {definition['name']}: {definition['description']} Input: {shape}")
    return "\n".join(lines) + "\n"


def format_rules() -> str:
    """Last thing the model reads before it answers."""
    return (
        "🚨🚨🚨 TOOL CALL FORMAT RULES - FOLLOW EXACTLY! 🚨🚨🚨\n"
        "1. Make ONLY ONE tool call per response\n"
        "2. Use EXACT format: TOOL_CALL: tool_name(json)\n"
        "3. NO extra text after the closing parenthesis )\n"
        "4. NO semicolons, commas, or explanations after )\n"
        "5. JSON must be valid and complete\n"
        "6. End the line immediately after the )\n"
        "7. DO NOT repeat tool calls multiple times\n"
        f"Example: {TOOL_CALL_EXAMPLE}\n"
        "WRONG: TOOL_CALL: fitbit_log_meal({...}); followed by explanation\n"
        "WRONG: Making multiple identical tool calls\n"
        "RIGHT: TOOL_CALL: fitbit_log_meal({...})\n"
    )
