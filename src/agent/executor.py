"""
agent.executor - Agent execution engine.

Runs the conversation loop: user input -> model reply -> tool calls ->
tool results -> model reply -> ... until input ends or the provider fails
fatally. No component construction, no global state, no business logic.

Everything runs strictly in order on one conversation: one LLM request at
a time, tool calls executed sequentially in parse order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Optional

from application.context import SessionContext
from agent.memory import ConversationMemory
from agent.protocol import ToolCallParser, contains_directive
from agent.tools.registry import ToolRegistry
from domain.exceptions import DomainError, ProviderError, ProviderErrorKind
from domain.models import ToolInvocationRequest
from domain.ports import ConversationReporter, InputProvider, LLMProvider

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    AWAITING_USER_INPUT = "awaiting_user_input"
    AWAITING_MODEL_RESPONSE = "awaiting_model_response"
    EXECUTING_TOOLS = "executing_tools"
    TERMINATED = "terminated"


def suggestion_for(error: ProviderError, provider_name: str = "") -> str:
    """Remediation text for a recoverable provider failure."""
    if error.kind is ProviderErrorKind.QUOTA_EXCEEDED:
        return (
            "You've exceeded your API quota. Please:\n"
            "   1. Check your billing plan\n"
            "   2. Wait for quota reset\n"
            "   3. Try using a different provider (ollama with a local model)"
        )
    if error.kind is ProviderErrorKind.RATE_LIMITED:
        return "API rate limited. Please wait a moment and try again."
    if error.kind is ProviderErrorKind.INVALID_CREDENTIAL:
        if provider_name:
            return (
                f"Invalid API key. Please check your {provider_name.upper()}_API_KEY "
                "environment variable."
            )
        return "Invalid API key. Please check your provider credentials."
    if error.kind is ProviderErrorKind.SERVICE_UNAVAILABLE:
        return "Service temporarily unavailable. Please try again later."
    return "Try again or switch to a different LLM provider."


class AgentExecutor:
    """Runs the LLM + tool dispatch loop.

    Constructed by factory.py with all dependencies injected.
    All per-session state flows through SessionContext and ConversationMemory.
    """

    def __init__(
        self,
        llm: LLMProvider,
        tools: ToolRegistry,
        memory: ConversationMemory,
        input_provider: InputProvider,
        reporter: ConversationReporter,
        parser: Optional[ToolCallParser] = None,
    ):
        self._llm = llm
        self._tools = tools
        self._memory = memory
        self._input = input_provider
        self._reporter = reporter
        self._parser = parser or ToolCallParser(tools.names)
        self._state = LoopState.AWAITING_USER_INPUT
        self._pending: list[ToolInvocationRequest] = []

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def memory(self) -> ConversationMemory:
        return self._memory

    async def run(self, ctx: SessionContext) -> None:
        """Drive the loop until end of input.

        Raises:
            ProviderError: when the model call fails with a non-recoverable
                error. The loop is TERMINATED before the error propagates.
        """
        self._reporter.welcome(self._llm.name)
        self._state = LoopState.AWAITING_USER_INPUT

        while self._state is not LoopState.TERMINATED:
            if self._state is LoopState.AWAITING_USER_INPUT:
                self._state = self._await_user_input(ctx)
            elif self._state is LoopState.AWAITING_MODEL_RESPONSE:
                self._state = await self._await_model_response()
            elif self._state is LoopState.EXECUTING_TOOLS:
                self._state = await self._execute_pending(ctx)

        logger.info("Conversation %s ended after %d turns", ctx.conversation_id, len(self._memory))

    # ── States ──────────────────────────────────────────────────────────────

    def _await_user_input(self, ctx: SessionContext) -> LoopState:
        line = self._input.read_line()
        if line is None:
            return LoopState.TERMINATED

        ctx.new_request()
        logger.info("User turn (conversation=%s, request=%s)", ctx.conversation_id, ctx.request_id)
        self._memory.add_user(line)
        return LoopState.AWAITING_MODEL_RESPONSE

    async def _await_model_response(self) -> LoopState:
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, self._llm.generate, self._memory.turns)
        except ProviderError as e:
            if not e.recoverable:
                logger.error("%s failed (%s): %s", self._llm.name, e.kind.value, e)
                self._state = LoopState.TERMINATED
                raise
            logger.warning("%s failed (%s), continuing: %s", self._llm.name, e.kind.value, e)
            self._reporter.provider_error(self._llm.name, e, suggestion_for(e, self._llm.name))
            self._reporter.acknowledge_prompt()
            self._input.read_line()
            return LoopState.AWAITING_USER_INPUT

        calls = self._parser.parse(text)
        if text:
            self._memory.add_assistant(text)
            self._reporter.assistant_message(text)

        if not calls:
            return LoopState.AWAITING_USER_INPUT

        logger.info("Model requested %d tool call(s): %s", len(calls), [c.name for c in calls])
        self._pending = calls
        return LoopState.EXECUTING_TOOLS

    async def _execute_pending(self, ctx: SessionContext) -> LoopState:
        pending, self._pending = self._pending, []

        for index, call in enumerate(pending, start=1):
            result = await self.execute_tool(ctx, call)
            self._reporter.tool_result(index, result, result.startswith("Error"))
            self._memory.add_tool_result(result)
            # Results only suggest follow-up calls; the model must issue them itself.
            if contains_directive(result):
                self._reporter.tool_suggested_action()

        return LoopState.AWAITING_MODEL_RESPONSE

    # ── Tool dispatch ───────────────────────────────────────────────────────

    async def execute_tool(self, ctx: SessionContext, call: ToolInvocationRequest) -> str:
        """Run one tool call. Failures come back as "Error ..." text, never raise."""
        if self._tools.lookup(call.name) is None:
            logger.warning("Model requested unknown tool '%s'", call.name)
            return f"Error: tool '{call.name}' not found"

        self._reporter.tool_call(call.name, call.raw_arguments)
        try:
            output = await self._tools.invoke(call.name, ctx, _decode_arguments(call.raw_arguments))
        except DomainError as e:
            logger.warning("Tool '%s' failed: %s", call.name, e)
            return f"Error executing tool '{call.name}': {e}"
        except Exception as e:
            logger.exception("Tool '%s' raised unexpectedly", call.name)
            return f"Error executing tool '{call.name}': {e}"

        logger.info("Tool '%s' executed (%s)", call.name, call.id)
        return output


def _decode_arguments(raw_arguments: str) -> dict[str, Any]:
    """Decode call arguments; non-object JSON is carried as {"input": value}."""
    value = json.loads(raw_arguments) if raw_arguments.strip() else {}
    if isinstance(value, dict):
        return value
    return {"input": value}
