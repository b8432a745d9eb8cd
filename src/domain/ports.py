"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the system needs without specifying HOW. Infrastructure
and adapter modules provide concrete implementations. The agent layer
depends only on these protocols, never on concrete classes.

Using typing.Protocol (structural typing) instead of ABC — any class that
implements the methods satisfies the port without explicit inheritance.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from domain.exceptions import ProviderError
from domain.models import (
    CanonicalFoodItem,
    ConversationTurn,
    FitbitCredentials,
    MealCategory,
    MealRecord,
)


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------

@runtime_checkable
class LLMProvider(Protocol):
    """Turn the conversation so far into the model's next reply text.

    Implementations raise ProviderError for every failure.
    """

    @property
    def name(self) -> str: ...

    def generate(self, history: Sequence[ConversationTurn]) -> str: ...


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

@runtime_checkable
class InputProvider(Protocol):
    """Source of user input lines. Returns None at end of input."""

    def read_line(self) -> Optional[str]: ...


@runtime_checkable
class ConversationReporter(Protocol):
    """Sink for everything the conversation loop shows to the user."""

    def welcome(self, provider_name: str) -> None: ...

    def assistant_message(self, text: str) -> None: ...

    def tool_call(self, name: str, raw_arguments: str) -> None: ...

    def tool_result(self, index: int, text: str, is_error: bool) -> None: ...

    def tool_suggested_action(self) -> None: ...

    def provider_error(self, provider_name: str, error: ProviderError, suggestion: str) -> None: ...

    def acknowledge_prompt(self) -> None: ...


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

@runtime_checkable
class MealStore(Protocol):
    """Per-date, append-only meal record collection."""

    def append(self, record: MealRecord) -> int: ...

    def load(self, day: date) -> list[MealRecord]: ...

    def path_for(self, day: date) -> str: ...


@runtime_checkable
class CredentialStore(Protocol):
    """Explicit load/save lifecycle for diet-API credentials."""

    def load(self) -> Optional[FitbitCredentials]: ...

    def save(self, credentials: FitbitCredentials) -> None: ...

    def clear(self) -> None: ...


# ---------------------------------------------------------------------------
# Diet-tracking API
# ---------------------------------------------------------------------------

@runtime_checkable
class DietApi(Protocol):
    """Authenticated diet-tracking API calls.

    A 401 answer raises CredentialExpiredError; any other failure raises
    FitbitApiError.
    """

    def log_food(
        self,
        credentials: FitbitCredentials,
        item: CanonicalFoodItem,
        category: MealCategory,
        day: date,
    ) -> dict[str, Any]: ...

    def validate_token(self, access_token: str) -> bool: ...

    def get_profile(self, credentials: FitbitCredentials) -> dict[str, Any]: ...

    def get_food_log(self, credentials: FitbitCredentials, day: date) -> dict[str, Any]: ...


@runtime_checkable
class AuthorizationFlow(Protocol):
    """Browser-delegated OAuth2 authorization-code flow."""

    def authorize(self) -> FitbitCredentials: ...
