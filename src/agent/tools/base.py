"""
agent.tools.base - Base tool interface and result container.

All agent tools inherit from BaseTool and return ToolResult.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from application.context import SessionContext
from domain.exceptions import InputValidationError


@dataclass
class ToolResult:
    """Result returned by a tool execution.

    output:    Text shown to the user and fed back to the model.
    data:      Structured data for inter-tool communication (not passed through LLM).
    store_as:  If set, data is automatically stored in ctx.scratch[store_as].
    """
    output: str
    data: Any = None
    store_as: Optional[str] = None


class BaseTool(ABC):
    """Abstract base for all agent tools."""

    name: str
    description: str

    @abstractmethod
    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        """Execute the tool with the session context and decoded JSON arguments."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the input shape, as presented to the model."""
        return self.get_schema().model_json_schema()

    def parse_arguments(self, arguments: dict[str, Any]) -> BaseModel:
        """Validate arguments against get_schema().

        Raises:
            InputValidationError: naming the first offending field.
        """
        try:
            return self.get_schema().model_validate(arguments)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "input"
            raise InputValidationError(
                f"failed to parse input: {field}: {first['msg']}", field=field,
            ) from e


def resolve_day(value: object, today: Callable[[], date] = date.today) -> date:
    """A YYYY-MM-DD argument as a date; today() when absent or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return today()
    if not isinstance(value, str):
        raise InputValidationError(
            f"date must be a YYYY-MM-DD string, got type: {type(value).__name__}", field="date",
        )
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise InputValidationError(
            f"date must be in YYYY-MM-DD format, got: {value}", field="date",
        ) from e
