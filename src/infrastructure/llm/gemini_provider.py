"""
infrastructure.llm.gemini_provider - Google Gemini via the google-genai SDK.

The system prompt and tool instructions go in as a leading user turn
followed by a canned model acknowledgement, so the conversation reads the
same way the local provider's flattened prompt does.

Implements LLMProvider (structural typing — no explicit inheritance).
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from agent.prompt import SUGGESTED_CALL_NOTICE, format_rules, tool_call_header, tool_catalog
from agent.protocol import contains_directive
from agent.tools.registry import ToolRegistry
from domain.exceptions import ProviderError, ProviderErrorKind
from domain.models import ConversationTurn, Role
from infrastructure.llm.errors import classify_http_error

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT = (
    "I understand. I'm your Fitbit nutrition assistant and I'm ready to help you "
    "log meals and track your nutrition using natural language. Just describe what you ate!"
)


class GeminiProvider:
    """Generate replies with a hosted Gemini model."""

    def __init__(
        self,
        api_key: str,
        registry: ToolRegistry,
        system_prompt: str,
        model: str = "gemini-1.5-flash",
        timeout: float = 120.0,
        client: Optional[Any] = None,
    ):
        self._registry = registry
        self._system_prompt = system_prompt
        self._model = model
        # HttpOptions.timeout is in milliseconds.
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )

    @property
    def name(self) -> str:
        return "Gemini"

    @property
    def model(self) -> str:
        return self._model

    def generate(self, history: Sequence[ConversationTurn]) -> str:
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=self.build_contents(history),
            )
        except genai_errors.APIError as e:
            raise classify_http_error(e.code, e.message or "", "gemini") from e
        except httpx.TransportError as e:
            raise ProviderError(
                ProviderErrorKind.SERVICE_UNAVAILABLE, f"service unavailable: {e}",
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, f"failed to make request to Gemini: {e}",
            ) from e

        candidates = response.candidates or []
        if not candidates:
            raise ProviderError(ProviderErrorKind.UNKNOWN, "no response candidates received")

        content = candidates[0].content
        parts = (content.parts if content is not None else None) or []
        if not parts:
            logger.debug("Gemini candidate had no parts (finish reason %s)", candidates[0].finish_reason)
            return ""
        return parts[0].text or ""

    def build_contents(self, history: Sequence[ConversationTurn]) -> list[types.Content]:
        contents: list[types.Content] = []

        if self._system_prompt:
            contents.append(_content("user", self.build_system_text()))
            contents.append(_content("model", ACKNOWLEDGEMENT))

        for turn in history:
            role = "model" if turn.role is Role.ASSISTANT else "user"
            text = turn.content
            if turn.is_tool_result:
                result = turn.tool_result
                text = f"Tool Result:\n{result}\n\nPlease present this information to the user."
                if contains_directive(result):
                    text += "\n" + SUGGESTED_CALL_NOTICE
            contents.append(_content(role, text))

        return contents

    def build_system_text(self) -> str:
        has_tools = bool(self._registry.names())
        text = tool_call_header() + "\n" if has_tools else ""
        text += f"System: {self._system_prompt}\n\n"
        if has_tools:
            text += tool_catalog(self._registry) + "\n" + format_rules() + "\n"
        return text


def _content(role: str, text: str) -> types.Content:
    return types.Content(role=role, parts=[types.Part(text=text)])
