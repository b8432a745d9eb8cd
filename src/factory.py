"""
factory - Composition root for the Fitbit meal-logging agent.

ALL dependency wiring happens here. No other module constructs its own
dependencies. The CLI adapter calls this factory to get a fully configured
session, provider and agent.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    factory = ServiceFactory(Settings.from_env())
    ctx = factory.create_session()
    agent = factory.create_agent(input_provider, reporter)
    await agent.run(ctx)
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from agent.executor import AgentExecutor
from agent.memory import ConversationMemory
from agent.prompt import SystemPrompt, load_system_prompt
from agent.tools.food_lookup import FoodLookupTool
from agent.tools.get_profile import GetProfileTool
from agent.tools.log_meal import LogMealTool
from agent.tools.login import LoginTool
from agent.tools.registry import ToolRegistry
from agent.tools.save_meal import SaveMealTool
from agent.tools.view_summary import ViewSummaryTool
from application.context import SessionContext
from domain.ports import ConversationReporter, InputProvider, LLMProvider
from infrastructure.config import Settings
from infrastructure.fitbit.client import FitbitClient
from infrastructure.fitbit.oauth import FitbitOAuthFlow
from infrastructure.llm.llm_builder import build_provider
from infrastructure.persistence.credential_store import JsonCredentialStore
from infrastructure.persistence.meal_store import JsonMealStore

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root — wires all dependencies together.

    The registry, prompt and provider are built lazily and then reused, so
    the CLI can inspect them (demo) without starting a conversation.
    """

    def __init__(
        self,
        config: Settings,
        system_prompt_file: Optional[str] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self._config = config
        self._system_prompt_file = system_prompt_file
        self._notify = notify

        self._fitbit = FitbitClient(
            timeout=config.logging_timeout,
            validation_timeout=config.validation_timeout,
        )
        self._meal_store = JsonMealStore(config.meals_dir)
        self._credential_store = JsonCredentialStore(config.credentials_path)

        self._registry: Optional[ToolRegistry] = None
        self._system_prompt: Optional[SystemPrompt] = None
        self._provider: Optional[LLMProvider] = None

    @property
    def config(self) -> Settings:
        return self._config

    @property
    def credential_store(self) -> JsonCredentialStore:
        return self._credential_store

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def create_session(self) -> SessionContext:
        """New session context with stored credentials loaded."""
        ctx = SessionContext(credential_store=self._credential_store)
        if ctx.load_credentials() is not None:
            logger.info("Loaded stored Fitbit credentials")
        return ctx

    def create_oauth_flow(self) -> Optional[FitbitOAuthFlow]:
        """The OAuth flow, or None when the Fitbit app credentials are not configured."""
        if not self._config.fitbit_configured:
            return None
        return FitbitOAuthFlow(
            client_id=self._config.fitbit_client_id,
            client_secret=self._config.fitbit_client_secret,
            redirect_url=self._config.fitbit_redirect_url,
            timeout=self._config.oauth_timeout,
            http_timeout=self._config.logging_timeout,
            notify=self._notify,
        )

    def get_registry(self) -> ToolRegistry:
        """Tool registry with every tool registered."""
        if self._registry is None:
            registry = ToolRegistry()
            registry.register(LoginTool(
                api=self._fitbit,
                flow=self.create_oauth_flow(),
                redirect_url=self._config.fitbit_redirect_url,
            ))
            registry.register(LogMealTool(api=self._fitbit))
            registry.register(GetProfileTool(api=self._fitbit))
            registry.register(SaveMealTool(store=self._meal_store))
            registry.register(ViewSummaryTool(store=self._meal_store))
            registry.register(FoodLookupTool())
            self._registry = registry
        return self._registry

    def get_system_prompt(self) -> SystemPrompt:
        if self._system_prompt is None:
            self._system_prompt = load_system_prompt(
                inline=self._config.system_prompt or None,
                prompt_file=self._system_prompt_file or self._config.system_prompt_file or None,
            )
            logger.info("Using system prompt from %s", self._system_prompt.source)
        return self._system_prompt

    def get_provider(self) -> LLMProvider:
        """The configured LLM provider.

        Raises:
            ValueError: unknown provider or missing API key.
        """
        if self._provider is None:
            self._provider = build_provider(
                self._config, self.get_registry(), self.get_system_prompt().content,
            )
        return self._provider

    def create_agent(
        self,
        input_provider: InputProvider,
        reporter: ConversationReporter,
    ) -> AgentExecutor:
        """Create a fully wired AgentExecutor with fresh conversation memory."""
        return AgentExecutor(
            llm=self.get_provider(),
            tools=self.get_registry(),
            memory=ConversationMemory(),
            input_provider=input_provider,
            reporter=reporter,
        )
