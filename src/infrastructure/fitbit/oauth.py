"""
infrastructure.fitbit.oauth - Browser-delegated OAuth2 authorization-code flow.

1. Start a one-route FastAPI app under uvicorn on the redirect URL's
   host:port, in a background thread.
2. Open the Fitbit authorize page in the user's browser.
3. Wait until the browser comes back with ?code=... (or ?error=...), or
   time runs out, then stop the server.
4. Exchange the code for a token with client-credentials Basic auth.

Implements AuthorizationFlow (structural typing — no explicit inheritance).
"""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from urllib.parse import urlencode, urlparse

import requests
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse

from domain.exceptions import OAuthError
from domain.models import FitbitCredentials

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://www.fitbit.com/oauth2/authorize"
TOKEN_URL = "https://api.fitbit.com/oauth2/token"
SCOPE = "nutrition profile"

# How long uvicorn may take to bind before the flow gives up.
STARTUP_TIMEOUT = 10.0
SHUTDOWN_TIMEOUT = 5.0

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head><title>Fitbit Authentication Success</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; padding: 50px;">
    <h2 style="color: #4CAF50;">Authentication Successful!</h2>
    <p>You can now close this browser tab and return to the Fitbit Agent.</p>
</body>
</html>"""


@dataclass
class CallbackOutcome:
    """What the redirect carried. received is set once code or error is known."""
    code: Optional[str] = None
    error: Optional[str] = None
    received: threading.Event = field(default_factory=threading.Event)


def create_callback_app(callback_path: str, outcome: CallbackOutcome) -> FastAPI:
    """FastAPI app serving only the OAuth redirect path."""
    app = FastAPI(
        title="Fitbit Agent OAuth callback",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get(callback_path, response_class=HTMLResponse)
    async def oauth_redirect(code: Optional[str] = None, error: Optional[str] = None):
        if not code:
            outcome.error = error or "No authorization code received"
            outcome.received.set()
            raise HTTPException(status_code=400, detail="Authorization failed")
        outcome.code = code
        outcome.received.set()
        return HTMLResponse(SUCCESS_PAGE)

    return app


class FitbitOAuthFlow:
    """Run the authorization-code flow and return fresh credentials."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str = "http://localhost:8000/redirect",
        timeout: float = 300.0,
        http_timeout: float = 30.0,
        open_browser: Callable[[str], bool] = webbrowser.open,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_url = redirect_url
        self._timeout = timeout
        self._http_timeout = http_timeout
        self._open_browser = open_browser
        self._notify = notify or logger.info

    def authorization_url(self) -> str:
        query = urlencode({
            "response_type": "code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_url,
            "scope": SCOPE,
        })
        return f"{AUTHORIZE_URL}?{query}"

    def authorize(self) -> FitbitCredentials:
        """Raises OAuthError on denial, timeout, or a failed token exchange."""
        code = self.wait_for_code()
        return self.exchange_code(code)

    def wait_for_code(self) -> str:
        redirect = urlparse(self._redirect_url)
        host, port = redirect.hostname or "localhost", redirect.port or 80
        outcome = CallbackOutcome()
        app = create_callback_app(redirect.path or "/redirect", outcome)
        server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))

        thread = threading.Thread(target=server.run, name="oauth-callback", daemon=True)
        thread.start()
        try:
            self._wait_for_startup(server, thread, host, port)

            auth_url = self.authorization_url()
            self._notify("🌐 Opening browser for Fitbit authentication...")
            if not self._open_browser(auth_url):
                self._notify(f"⚠️  Could not open a browser. Please visit: {auth_url}")
            self._notify(f"🔄 Waiting for authorization (listening on {host}:{port})...")

            if not outcome.received.wait(self._timeout):
                raise OAuthError("authentication timeout - please try again")
        finally:
            server.should_exit = True
            thread.join(SHUTDOWN_TIMEOUT)

        if outcome.error is not None:
            raise OAuthError(f"OAuth error: {outcome.error}")
        return outcome.code

    @staticmethod
    def _wait_for_startup(server: uvicorn.Server, thread: threading.Thread, host: str, port: int) -> None:
        # uvicorn exits its thread when the bind fails.
        deadline = time.monotonic() + STARTUP_TIMEOUT
        while not server.started:
            if not thread.is_alive() or time.monotonic() > deadline:
                raise OAuthError(f"cannot listen on {host}:{port} for the OAuth redirect")
            time.sleep(0.05)
        logger.debug("OAuth callback server listening on %s:%d", host, port)

    def exchange_code(self, code: str) -> FitbitCredentials:
        try:
            response = requests.post(
                TOKEN_URL,
                data={
                    "client_id": self._client_id,
                    "grant_type": "authorization_code",
                    "redirect_uri": self._redirect_url,
                    "code": code,
                },
                auth=(self._client_id, self._client_secret),
                timeout=self._http_timeout,
            )
        except requests.RequestException as e:
            raise OAuthError(f"token request failed: {e}") from e

        if response.status_code != 200:
            raise OAuthError(f"token request failed with status {response.status_code}")

        try:
            token = response.json()
        except ValueError as e:
            raise OAuthError(f"failed to parse token response: {e}") from e
        if not token.get("access_token"):
            raise OAuthError("token response has no access_token")

        expires_at = ""
        if token.get("expires_in"):
            expiry = datetime.now(timezone.utc) + timedelta(seconds=int(token["expires_in"]))
            expires_at = expiry.isoformat()

        logger.info("Exchanged authorization code for Fitbit token (user %s)", token.get("user_id", "-"))
        return FitbitCredentials(
            access_token=token["access_token"],
            user_id=token.get("user_id") or "-",
            refresh_token=token.get("refresh_token", ""),
            expires_at=expires_at,
        )
