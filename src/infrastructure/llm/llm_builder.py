"""
infrastructure.llm.llm_builder - Centralized LLM provider construction.

Single source of truth for building the conversation's LLMProvider. The
provider is controlled by the LLM_PROVIDER environment variable (or the
CLI --provider flag).

Supported providers:
    - "ollama"  → OllamaProvider (langchain_ollama.OllamaLLM); "deepseek" is an alias
    - "gemini"  → GeminiProvider (google.genai.Client.models.generate_content)
"""

from __future__ import annotations

import logging
from typing import Union

from agent.tools.registry import ToolRegistry
from infrastructure.config import SUPPORTED_PROVIDERS, Settings
from infrastructure.llm.gemini_provider import GeminiProvider
from infrastructure.llm.ollama_provider import OllamaProvider

logger = logging.getLogger(__name__)


def build_provider(
    settings: Settings,
    registry: ToolRegistry,
    system_prompt: str,
) -> Union[OllamaProvider, GeminiProvider]:
    """Build the LLM provider selected by settings.llm_provider.

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = settings.provider

    if provider == "gemini":
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required when LLM_PROVIDER='gemini'")
        logger.info("Building Gemini provider (model=%s)", settings.gemini_model)
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            registry=registry,
            system_prompt=system_prompt,
            model=settings.gemini_model,
            timeout=settings.generation_timeout,
        )

    if provider == "ollama":
        logger.info(
            "Building Ollama provider (model=%s, host=%s)",
            settings.ollama_model, settings.ollama_base_url,
        )
        return OllamaProvider(
            registry=registry,
            system_prompt=system_prompt,
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
            timeout=settings.generation_timeout,
            validation_timeout=settings.validation_timeout,
        )

    raise ValueError(
        f"Unsupported LLM_PROVIDER: '{settings.llm_provider}'. "
        f"Must be one of: {', '.join(SUPPORTED_PROVIDERS)} (or 'deepseek')."
    )
