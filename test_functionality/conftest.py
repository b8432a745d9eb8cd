"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Sequence

import pytest
from google.genai import types

from agent.memory import ConversationMemory
from agent.tools.base import BaseTool, ToolResult
from agent.tools.registry import ToolRegistry
from application.context import SessionContext
from domain.exceptions import CredentialExpiredError, FitbitApiError, ProviderError
from domain.models import CanonicalFoodItem, ConversationTurn, FitbitCredentials, MealCategory
from infrastructure.persistence.credential_store import JsonCredentialStore
from infrastructure.persistence.meal_store import JsonMealStore
from pydantic import BaseModel

FIXED_DAY = date(2024, 3, 15)


@dataclass
class ScriptedProvider:
    """LLM provider that replays canned replies (or raises canned errors)."""

    replies: list[Any] = field(default_factory=list)
    histories: list[tuple[ConversationTurn, ...]] = field(default_factory=list)
    provider_name: str = "Fake"

    @property
    def name(self) -> str:
        return self.provider_name

    def generate(self, history: Sequence[ConversationTurn]) -> str:
        self.histories.append(tuple(history))
        reply = self.replies.pop(0)
        if isinstance(reply, ProviderError):
            raise reply
        return reply


@dataclass
class ScriptedInput:
    """Input provider returning queued lines, then None (end of input)."""

    lines: list[str] = field(default_factory=list)
    reads: int = 0

    def read_line(self) -> Optional[str]:
        self.reads += 1
        if not self.lines:
            return None
        return self.lines.pop(0)


@dataclass
class RecordingReporter:
    """Reporter that records every event as a tuple."""

    events: list[tuple] = field(default_factory=list)

    def welcome(self, provider_name: str) -> None:
        self.events.append(("welcome", provider_name))

    def assistant_message(self, text: str) -> None:
        self.events.append(("assistant", text))

    def tool_call(self, name: str, raw_arguments: str) -> None:
        self.events.append(("tool_call", name, raw_arguments))

    def tool_result(self, index: int, text: str, is_error: bool) -> None:
        self.events.append(("tool_result", index, text, is_error))

    def tool_suggested_action(self) -> None:
        self.events.append(("suggested",))

    def provider_error(self, provider_name: str, error: ProviderError, suggestion: str) -> None:
        self.events.append(("provider_error", provider_name, error.kind, suggestion))

    def acknowledge_prompt(self) -> None:
        self.events.append(("acknowledge",))

    def of(self, kind: str) -> list[tuple]:
        return [event for event in self.events if event[0] == kind]


@dataclass
class FakeDietApi:
    """In-memory stand-in for the Fitbit client."""

    logged: list[tuple[str, MealCategory, date]] = field(default_factory=list)
    fail_on: Optional[str] = None
    fail_with: Optional[Exception] = None
    token_valid: bool = True
    profile: dict = field(default_factory=dict)
    food_log: dict = field(default_factory=dict)

    def log_food(
        self,
        credentials: FitbitCredentials,
        item: CanonicalFoodItem,
        category: MealCategory,
        day: date,
    ) -> dict:
        if self.fail_with is not None and (self.fail_on is None or self.fail_on == item.name):
            raise self.fail_with
        self.logged.append((item.name, category, day))
        return {"foodLog": {"logId": len(self.logged)}}

    def validate_token(self, access_token: str) -> bool:
        return self.token_valid

    def get_profile(self, credentials: FitbitCredentials) -> dict:
        if isinstance(self.fail_with, CredentialExpiredError):
            raise self.fail_with
        return self.profile

    def get_food_log(self, credentials: FitbitCredentials, day: date) -> dict:
        return self.food_log


@dataclass
class FakeGenaiModels:
    """Stands in for genai.Client().models."""

    response: Any = None
    error: Optional[Exception] = None
    calls: list[dict] = field(default_factory=list)

    def generate_content(self, model: str, contents: list) -> Any:
        self.calls.append({"model": model, "contents": contents})
        if self.error is not None:
            raise self.error
        return self.response


@dataclass
class FakeGenaiClient:
    models: FakeGenaiModels = field(default_factory=FakeGenaiModels)


def genai_reply(text: str) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=[types.Part(text=text)]))],
    )


@dataclass
class FakeFlow:
    """Authorization flow that hands out fixed credentials."""

    credentials: FitbitCredentials = field(
        default_factory=lambda: FitbitCredentials(access_token="new-token", user_id="ABC123")
    )
    calls: int = 0

    def authorize(self) -> FitbitCredentials:
        self.calls += 1
        return self.credentials


class EchoInput(BaseModel):
    text: str = ""


class EchoTool(BaseTool):
    """Returns its text argument; used to exercise dispatch."""

    name = "echo"
    description = "Echo the given text back."

    def __init__(self, name: str = "echo", reply: Optional[str] = None):
        self.name = name
        self._reply = reply

    def get_schema(self) -> type[BaseModel]:
        return EchoInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        params = self.parse_arguments(arguments)
        return ToolResult(output=self._reply or f"echo: {params.text}", data=params.text, store_as="echo")


class BrokenTool(EchoTool):
    """Raises an unexpected exception."""

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        raise RuntimeError("boom")


@pytest.fixture
def memory() -> ConversationMemory:
    return ConversationMemory()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(EchoTool())
    return registry


@pytest.fixture
def diet_api() -> FakeDietApi:
    return FakeDietApi()


@pytest.fixture
def credential_store(tmp_path) -> JsonCredentialStore:
    return JsonCredentialStore(tmp_path / "credentials.json")


@pytest.fixture
def meal_store(tmp_path) -> JsonMealStore:
    return JsonMealStore(tmp_path / "meals")


@pytest.fixture
def ctx(credential_store) -> SessionContext:
    return SessionContext(conversation_id="test", credential_store=credential_store)


@pytest.fixture
def authed_ctx(credential_store) -> SessionContext:
    return SessionContext(
        conversation_id="test",
        credentials=FitbitCredentials(access_token="token-123", user_id="ABC123"),
        credential_store=credential_store,
    )


@pytest.fixture
def breakfast() -> dict:
    return {
        "meal_type": "breakfast",
        "foods": [{"name": "eggs", "quantity": 2, "unit": "large", "calories": 140}],
    }
