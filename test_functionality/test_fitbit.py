"""Tests for the Fitbit REST client and OAuth flow."""

import socket
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from fastapi.testclient import TestClient

from domain.exceptions import CredentialExpiredError, FitbitApiError, OAuthError
from domain.models import CanonicalFoodItem, FitbitCredentials, MealCategory
from infrastructure.fitbit import oauth
from infrastructure.fitbit.client import FitbitClient, meal_type_id
from infrastructure.fitbit.oauth import CallbackOutcome, FitbitOAuthFlow, create_callback_app

CREDENTIALS = FitbitCredentials(access_token="tok", user_id="ABC123")
EGGS = CanonicalFoodItem("eggs", 2.0, "large", 140.0)


@dataclass
class Response:
    status_code: int = 200
    payload: Any = field(default_factory=dict)

    def json(self) -> Any:
        if self.payload is None:
            raise ValueError("no JSON")
        return self.payload


@dataclass
class FakeSession:
    responses: list[Any] = field(default_factory=list)
    requests: list[dict] = field(default_factory=list)

    def _next(self, method: str, url: str, **kwargs) -> Response:
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url: str, **kwargs) -> Response:
        return self._next("POST", url, **kwargs)

    def get(self, url: str, **kwargs) -> Response:
        return self._next("GET", url, **kwargs)


def client_with(*responses) -> tuple[FitbitClient, FakeSession]:
    session = FakeSession(responses=list(responses))
    return FitbitClient(timeout=30, validation_timeout=10, session=session), session


# ---------------------------------------------------------------------------
# REST client
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    ("category", "expected"),
    [
        (MealCategory.BREAKFAST, "1"),
        (MealCategory.LUNCH, "3"),
        (MealCategory.DINNER, "4"),
        (MealCategory.SNACK, "7"),
    ],
)
def test_meal_type_ids(category, expected) -> None:
    assert meal_type_id(category) == expected


def test_log_food_request() -> None:
    client, session = client_with(Response(201, {"foodLog": {"logId": 1}}))

    result = client.log_food(CREDENTIALS, EGGS, MealCategory.DINNER, date(2024, 3, 15))

    assert result == {"foodLog": {"logId": 1}}
    sent = session.requests[0]
    assert sent["method"] == "POST"
    assert sent["url"] == "https://api.fitbit.com/1/user/ABC123/foods/log.json"
    assert sent["headers"] == {"Authorization": "Bearer tok"}
    assert sent["timeout"] == 30
    assert sent["data"] == {
        "foodName": "eggs",
        "mealTypeId": "4",
        "unitId": "147",
        "amount": "2.00",
        "date": "2024-03-15",
        "calories": "140",
    }


def test_401_is_credential_expired() -> None:
    client, _ = client_with(Response(401))

    with pytest.raises(CredentialExpiredError):
        client.log_food(CREDENTIALS, EGGS, MealCategory.LUNCH, date(2024, 3, 15))


def test_other_status_is_api_error() -> None:
    client, _ = client_with(Response(500))

    with pytest.raises(FitbitApiError) as exc:
        client.log_food(CREDENTIALS, EGGS, MealCategory.LUNCH, date(2024, 3, 15))

    assert not isinstance(exc.value, CredentialExpiredError)
    assert exc.value.status_code == 500
    assert exc.value.food_name == "eggs"


def test_transport_failure_is_api_error() -> None:
    client, _ = client_with(requests.ConnectionError("down"))

    with pytest.raises(FitbitApiError, match="failed to log eggs"):
        client.log_food(CREDENTIALS, EGGS, MealCategory.LUNCH, date(2024, 3, 15))


def test_non_json_success_body_is_empty() -> None:
    client, _ = client_with(Response(201, None))
    assert client.log_food(CREDENTIALS, EGGS, MealCategory.SNACK, date(2024, 3, 15)) == {}


@pytest.mark.parametrize(
    ("response", "valid"),
    [(Response(200), True), (Response(401), False), (requests.Timeout("slow"), False)],
)
def test_validate_token(response, valid) -> None:
    client, session = client_with(response)

    assert client.validate_token("tok") is valid
    assert session.requests[0]["timeout"] == 10
    assert session.requests[0]["url"].endswith("/1/user/-/profile.json")


def test_profile_and_food_log_urls() -> None:
    client, session = client_with(
        Response(200, {"user": {"displayName": "Sam"}}),
        Response(200, {"summary": {"calories": 500}}),
    )

    assert client.get_profile(CREDENTIALS)["user"]["displayName"] == "Sam"
    assert client.get_food_log(CREDENTIALS, date(2024, 3, 15))["summary"]["calories"] == 500
    assert [r["url"] for r in session.requests] == [
        "https://api.fitbit.com/1/user/ABC123/profile.json",
        "https://api.fitbit.com/1/user/ABC123/foods/log/date/2024-03-15.json",
    ]


def test_get_401_is_credential_expired() -> None:
    client, _ = client_with(Response(401))
    with pytest.raises(CredentialExpiredError):
        client.get_profile(CREDENTIALS)


# ---------------------------------------------------------------------------
# OAuth flow
# ---------------------------------------------------------------------------

def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _flow(port: int, query: Optional[str], timeout: float = 5.0) -> FitbitOAuthFlow:
    """A flow whose 'browser' immediately follows the redirect with query."""
    opened = []

    def open_browser(url: str) -> bool:
        opened.append(url)
        if query is not None:
            target = f"http://127.0.0.1:{port}/redirect?{query}"
            threading.Thread(target=lambda: requests.get(target, timeout=5), daemon=True).start()
        return True

    flow = FitbitOAuthFlow(
        client_id="client",
        client_secret="secret",
        redirect_url=f"http://127.0.0.1:{port}/redirect",
        timeout=timeout,
        open_browser=open_browser,
        notify=lambda message: None,
    )
    flow.opened = opened
    return flow


def test_authorization_url() -> None:
    flow = FitbitOAuthFlow("client", "secret", "http://localhost:8000/redirect")

    url = urlparse(flow.authorization_url())
    query = parse_qs(url.query)

    assert f"{url.scheme}://{url.netloc}{url.path}" == oauth.AUTHORIZE_URL
    assert query == {
        "response_type": ["code"],
        "client_id": ["client"],
        "redirect_uri": ["http://localhost:8000/redirect"],
        "scope": ["nutrition profile"],
    }


def test_wait_for_code_captures_redirect() -> None:
    port = _free_port()
    flow = _flow(port, "code=abc123")

    assert flow.wait_for_code() == "abc123"
    assert flow.opened[0].startswith(oauth.AUTHORIZE_URL)


def test_denied_authorization_is_an_error() -> None:
    port = _free_port()
    flow = _flow(port, "error=access_denied")

    with pytest.raises(OAuthError, match="access_denied"):
        flow.wait_for_code()


def test_timeout_without_redirect() -> None:
    port = _free_port()
    flow = _flow(port, None, timeout=0.2)

    with pytest.raises(OAuthError, match="timeout"):
        flow.wait_for_code()


def test_callback_route_records_code() -> None:
    outcome = CallbackOutcome()
    client = TestClient(create_callback_app("/redirect", outcome))

    response = client.get("/redirect", params={"code": "abc123"})

    assert response.status_code == 200
    assert "Authentication Successful!" in response.text
    assert outcome.received.is_set()
    assert (outcome.code, outcome.error) == ("abc123", None)


def test_callback_route_records_error() -> None:
    outcome = CallbackOutcome()
    client = TestClient(create_callback_app("/redirect", outcome))

    assert client.get("/redirect", params={"error": "access_denied"}).status_code == 400
    assert outcome.error == "access_denied"
    assert outcome.code is None


def test_callback_route_ignores_other_paths() -> None:
    outcome = CallbackOutcome()
    client = TestClient(create_callback_app("/redirect", outcome))

    assert client.get("/favicon.ico").status_code == 404
    assert not outcome.received.is_set()


def test_busy_port_is_an_error() -> None:
    with socket.socket() as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen()
        port = blocker.getsockname()[1]
        flow = _flow(port, None, timeout=1.0)

        with pytest.raises(OAuthError, match="cannot listen"):
            flow.wait_for_code()

    assert flow.opened == []


def test_exchange_code(monkeypatch) -> None:
    sent = {}

    def fake_post(url, data, auth, timeout):
        sent.update(url=url, data=data, auth=auth)
        return Response(200, {
            "access_token": "new", "refresh_token": "r", "user_id": "U1", "expires_in": 3600,
        })

    monkeypatch.setattr(requests, "post", fake_post)
    flow = FitbitOAuthFlow("client", "secret", "http://localhost:8000/redirect")

    before = datetime.now(timezone.utc)
    credentials = flow.exchange_code("abc")

    assert sent["url"] == oauth.TOKEN_URL
    assert sent["auth"] == ("client", "secret")
    assert sent["data"]["grant_type"] == "authorization_code"
    assert sent["data"]["code"] == "abc"
    assert (credentials.access_token, credentials.user_id, credentials.refresh_token) == ("new", "U1", "r")
    assert datetime.fromisoformat(credentials.expires_at) > before


@pytest.mark.parametrize(
    "response",
    [Response(400, {"errors": []}), Response(200, None), Response(200, {"token_type": "Bearer"})],
)
def test_exchange_code_failures(monkeypatch, response) -> None:
    monkeypatch.setattr(requests, "post", lambda url, data, auth, timeout: response)
    flow = FitbitOAuthFlow("client", "secret")

    with pytest.raises(OAuthError):
        flow.exchange_code("abc")
