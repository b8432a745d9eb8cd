"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment (and a
.env file) or passed explicitly in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

SUPPORTED_PROVIDERS = ("ollama", "gemini")
PROVIDER_ALIASES = {"deepseek": "ollama"}


def canonical_provider(name: str) -> str:
    """Lowercase a provider name and resolve aliases ("deepseek" -> "ollama")."""
    name = name.lower().strip()
    return PROVIDER_ALIASES.get(name, name)


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the meal-logging agent.

    No module-level globals — construct via from_env() or pass explicitly
    in tests.
    """

    # ── LLM provider ────────────────────────────────────────────
    # Allowed: "ollama" (local server) or "gemini" (cloud).
    llm_provider: str = "ollama"

    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "deepseek-r1:7b"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"

    # ── Fitbit ──────────────────────────────────────────────────
    fitbit_client_id: str = ""
    fitbit_client_secret: str = ""
    fitbit_redirect_url: str = "http://localhost:8000/redirect"

    # Local data: meals/ and credentials.json live here.
    data_dir: Path = field(default_factory=lambda: Path.home() / ".fitbit-agent")

    # ── System prompt ───────────────────────────────────────────
    system_prompt: str = ""
    system_prompt_file: str = ""

    # ── Timeouts (seconds) ──────────────────────────────────────
    validation_timeout: float = 10.0
    generation_timeout: float = 120.0
    logging_timeout: float = 30.0
    oauth_timeout: float = 300.0

    @property
    def provider(self) -> str:
        """llm_provider with aliases resolved."""
        return canonical_provider(self.llm_provider)

    @property
    def meals_dir(self) -> Path:
        return self.data_dir / "meals"

    @property
    def credentials_path(self) -> Path:
        return self.data_dir / "credentials.json"

    @property
    def fitbit_configured(self) -> bool:
        return bool(self.fitbit_client_id and self.fitbit_client_secret)

    @classmethod
    def from_env(cls, provider: Optional[str] = None) -> Settings:
        """Build Settings from the environment (after loading .env).

        Args:
            provider: Overrides LLM_PROVIDER (e.g. from a CLI flag).
        """
        from dotenv import load_dotenv
        load_dotenv()

        data_dir = os.getenv("FITBIT_AGENT_HOME") or str(Path.home() / ".fitbit-agent")

        return cls(
            llm_provider=provider or os.getenv("LLM_PROVIDER", "ollama"),
            ollama_base_url=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
            ollama_model=os.getenv("LLM_MODEL", "deepseek-r1:7b"),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            fitbit_client_id=os.getenv("FITBIT_CLIENT_ID", ""),
            fitbit_client_secret=os.getenv("FITBIT_CLIENT_SECRET", ""),
            fitbit_redirect_url=os.getenv("FITBIT_REDIRECT_URL", "http://localhost:8000/redirect"),
            data_dir=Path(data_dir).expanduser(),
            system_prompt=os.getenv("SYSTEM_PROMPT", ""),
            system_prompt_file=os.getenv("SYSTEM_PROMPT_FILE", ""),
        )
