"""
infrastructure.llm.ollama_provider - Locally hosted model via Ollama.

The local generate endpoint takes a single prompt string, so the whole
conversation is flattened into Human / Assistant / Tool Result blocks,
framed by the tool-call instructions at the start and at the end.

Implements LLMProvider (structural typing — no explicit inheritance).
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx
import ollama
import requests
from langchain_core.language_models import BaseLLM
from langchain_ollama import OllamaLLM

from agent.prompt import SUGGESTED_CALL_NOTICE, format_rules, tool_call_header, tool_catalog
from agent.protocol import contains_directive
from agent.tools.registry import ToolRegistry
from domain.exceptions import ProviderError, ProviderErrorKind
from domain.models import ConversationTurn, Role
from infrastructure.llm.errors import classify_http_error

logger = logging.getLogger(__name__)


class OllamaProvider:
    """Generate replies with a model served by a local Ollama instance."""

    def __init__(
        self,
        registry: ToolRegistry,
        system_prompt: str,
        model: str = "deepseek-r1:7b",
        base_url: str = "http://localhost:11434",
        timeout: float = 120.0,
        validation_timeout: float = 10.0,
        llm: Optional[BaseLLM] = None,
    ):
        self._registry = registry
        self._system_prompt = system_prompt
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._validation_timeout = validation_timeout
        self._llm = llm or OllamaLLM(
            model=model,
            base_url=self._base_url,
            client_kwargs={"timeout": timeout},
        )

    @property
    def name(self) -> str:
        return "Ollama"

    @property
    def model(self) -> str:
        return self._model

    def generate(self, history: Sequence[ConversationTurn]) -> str:
        prompt = self.build_prompt(history)
        logger.debug("Ollama prompt: %d chars, %d turns", len(prompt), len(history))

        try:
            return self._llm.invoke(prompt)
        except ollama.ResponseError as e:
            raise classify_http_error(e.status_code, e.error, "ollama") from e
        except httpx.TimeoutException as e:
            raise ProviderError(
                ProviderErrorKind.SERVICE_UNAVAILABLE, f"Ollama request timeout: {e}",
            ) from e
        except (ConnectionError, httpx.TransportError) as e:
            raise ProviderError(
                ProviderErrorKind.SERVICE_UNAVAILABLE,
                f"service unavailable: cannot connect to Ollama at {self._base_url}: {e}",
            ) from e

    def build_prompt(self, history: Sequence[ConversationTurn]) -> str:
        has_tools = bool(self._registry.names())
        parts: list[str] = []

        if has_tools:
            parts.append(tool_call_header() + "\n")
        if self._system_prompt:
            parts.append(f"System: {self._system_prompt}\n\n")
        if has_tools:
            parts.append(tool_catalog(self._registry) + "\n")

        for turn in history:
            if turn.is_tool_result:
                result = turn.tool_result
                parts.append(f"Tool Result:\n{result}\n\n")
                if contains_directive(result):
                    parts.append(SUGGESTED_CALL_NOTICE + "\n\n")
            elif turn.role is Role.USER:
                parts.append(f"Human: {turn.content}\n")
            else:
                parts.append(f"Assistant: {turn.content}\n")

        if has_tools:
            parts.append("\n" + format_rules())
        parts.append("Assistant: ")
        return "".join(parts)

    def validate_connection(self) -> None:
        """Check the server is reachable and serves the configured model.

        Raises:
            ProviderError: SERVICE_UNAVAILABLE when unreachable, UNKNOWN when
                the model is missing.
        """
        url = f"{self._base_url}/api/tags"
        try:
            response = requests.get(url, timeout=self._validation_timeout)
        except requests.RequestException as e:
            raise ProviderError(
                ProviderErrorKind.SERVICE_UNAVAILABLE,
                f"cannot connect to Ollama at {self._base_url}: {e}",
            ) from e

        if response.status_code != 200:
            raise classify_http_error(response.status_code, response.text, "ollama")

        try:
            models = [m["name"] for m in response.json().get("models", [])]
        except (ValueError, KeyError, TypeError) as e:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN, f"failed to parse Ollama models response: {e}",
            ) from e

        if self._model not in models and f"{self._model}:latest" not in models:
            raise ProviderError(
                ProviderErrorKind.UNKNOWN,
                f"model '{self._model}' not found. Available: {models}",
            )
        logger.info("Ollama at %s serves %s", self._base_url, self._model)
