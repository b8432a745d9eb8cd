"""
agent.tools.registry - Tool registration, lookup, and invocation.

Central registry that manages all available tools. Reads may run
concurrently with each other; registration excludes every other access,
so no reader ever sees a half-updated map.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from application.context import SessionContext
from agent.tools.base import BaseTool
from domain.exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Shared-read / exclusive-write lock (writers wait for readers to drain)."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class ToolRegistry:
    """Manages tool registration and invocation."""

    def __init__(self):
        self._tools: dict[str, BaseTool] = {}
        self._lock = ReadWriteLock()

    def register(self, tool: BaseTool) -> None:
        """Register a tool by its name. A later tool with the same name wins."""
        with self._lock.write():
            replaced = tool.name in self._tools
            self._tools[tool.name] = tool
        if replaced:
            logger.info("Replaced tool: %s", tool.name)
        else:
            logger.info("Registered tool: %s", tool.name)

    def lookup(self, name: str) -> Optional[BaseTool]:
        """Return the tool registered under name, or None."""
        with self._lock.read():
            return self._tools.get(name)

    def get(self, name: str) -> BaseTool:
        """Get a tool by name."""
        tool = self.lookup(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def all(self) -> list[BaseTool]:
        """Return all registered tools, in registration order."""
        with self._lock.read():
            return list(self._tools.values())

    def names(self) -> list[str]:
        """Return all registered tool names."""
        with self._lock.read():
            return list(self._tools.keys())

    def definitions(self) -> list[dict[str, Any]]:
        """Name, description and input shape of every tool, for the model."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.input_schema(),
            }
            for tool in self.all()
        ]

    async def invoke(self, name: str, ctx: SessionContext, arguments: dict[str, Any]) -> str:
        """Invoke a tool by name and auto-store results in ctx.scratch.

        Returns the string output (what the LLM sees).
        """
        tool = self.get(name)
        result = await tool.execute(ctx, arguments)

        if result.store_as and result.data is not None:
            ctx.scratch[result.store_as] = result.data
            logger.debug("Stored result in ctx.scratch['%s']", result.store_as)

        return result.output
