"""
agent.tools.login - Fitbit OAuth login tool.

Runs the browser authorization flow and stores the resulting credentials
through the session's credential store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult
from domain.exceptions import AuthenticationError
from domain.ports import AuthorizationFlow, DietApi

logger = logging.getLogger(__name__)

ALREADY_AUTHENTICATED_MESSAGE = "✅ Already authenticated with Fitbit! You can start logging meals."

LOGIN_SUCCESS_MESSAGE = """✅ Successfully authenticated with Fitbit!

🎉 Your access token has been saved and you're now ready to log meals.
💪 Try saying: "I had oatmeal for breakfast" to test meal logging.

Your authentication will be remembered for future sessions."""


class LoginInput(BaseModel):
    """Input schema for the fitbit_login tool."""

    force_reauth: bool = Field(
        default=False, description="Force re-authentication even if already logged in"
    )


class LoginTool(BaseTool):
    """Authenticate with Fitbit through the OAuth authorization-code flow."""

    name = "fitbit_login"
    description = (
        "Authenticate with Fitbit API to enable meal logging. "
        "Guides user through OAuth flow."
    )

    def __init__(
        self,
        api: DietApi,
        flow: Optional[AuthorizationFlow],
        redirect_url: str = "http://localhost:8000/redirect",
    ):
        self._api = api
        self._flow = flow
        self._redirect_url = redirect_url

    def get_schema(self) -> type[BaseModel]:
        return LoginInput

    async def execute(self, ctx: SessionContext, arguments: dict[str, Any]) -> ToolResult:
        params = self.parse_arguments(arguments)

        if self._flow is None:
            raise AuthenticationError(
                "Fitbit credentials not configured. Please set FITBIT_CLIENT_ID and "
                "FITBIT_CLIENT_SECRET environment variables.\n\n"
                "To get these:\n"
                "1. Go to https://dev.fitbit.com/\n"
                "2. Create a new application\n"
                f"3. Set redirect URL to: {self._redirect_url}\n"
                "4. Copy your Client ID and Client Secret"
            )

        loop = asyncio.get_running_loop()

        if not params.force_reauth and ctx.is_authenticated:
            valid = await loop.run_in_executor(
                None, self._api.validate_token, ctx.credentials.access_token,
            )
            if valid:
                return ToolResult(output=ALREADY_AUTHENTICATED_MESSAGE)
            logger.info("Stored Fitbit token is no longer valid, starting OAuth flow")

        credentials = await loop.run_in_executor(None, self._flow.authorize)
        ctx.save_credentials(credentials)
        return ToolResult(output=LOGIN_SUCCESS_MESSAGE)
