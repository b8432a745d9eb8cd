"""
agent.memory - Per-session conversation history.

An append-only list of ConversationTurn. Turns are frozen, so nothing
handed out by turns() can be changed after it was appended.
"""

from __future__ import annotations

import logging

from domain.models import TOOL_RESULT_PREFIX, ConversationTurn, Role

logger = logging.getLogger(__name__)


class ConversationMemory:
    """Per-session conversation memory.

    NOT global — each session gets its own instance.
    """

    def __init__(self):
        self._turns: list[ConversationTurn] = []

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        """Snapshot of the history, oldest first — pass to LLMProvider.generate()."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def add_user(self, content: str) -> None:
        self._turns.append(ConversationTurn(Role.USER, content))

    def add_assistant(self, content: str) -> None:
        self._turns.append(ConversationTurn(Role.ASSISTANT, content))

    def add_tool_result(self, result: str) -> None:
        """Record a tool result as a user turn so the model reads it as new information."""
        self._turns.append(ConversationTurn(Role.USER, f"{TOOL_RESULT_PREFIX}{result}"))
        logger.debug("Appended tool result (%d chars)", len(result))
