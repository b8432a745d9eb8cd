"""
domain.exceptions - Custom exception hierarchy for the meal-logging agent.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class InputValidationError(DomainError):
    """Raised when tool input cannot be turned into a valid request.

    field names the offending logical field; item_index (1-based) and
    item_name locate the food item when the problem is inside one.
    """

    def __init__(
        self,
        message: str,
        field: str = "",
        item_index: Optional[int] = None,
        item_name: str = "",
    ):
        super().__init__(message)
        self.field = field
        self.item_index = item_index
        self.item_name = item_name


class AuthenticationError(DomainError):
    """Raised when no usable diet-API credential is available."""


class CredentialExpiredError(AuthenticationError):
    """Raised when the diet API answers 401 for a stored credential.

    logged_items counts the items of a multi-item request that were written
    before the 401 arrived.
    """

    def __init__(self, message: str = "", logged_items: int = 0):
        super().__init__(message)
        self.logged_items = logged_items


class OAuthError(AuthenticationError):
    """Raised when the authorization-code flow fails or times out."""


class FitbitApiError(DomainError):
    """Raised for diet-API failures other than an expired credential."""

    def __init__(self, message: str, status_code: Optional[int] = None, food_name: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.food_name = food_name


class StorageError(DomainError):
    """Raised when local meal storage cannot be read or written."""


class ToolNotFoundError(KeyError):
    """Raised when a tool name is not registered."""

    def __str__(self) -> str:
        return f"tool '{self.args[0]}' not found"


class ProviderErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIAL = "invalid_credential"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


_RECOVERABLE_KINDS = {
    ProviderErrorKind.QUOTA_EXCEEDED,
    ProviderErrorKind.RATE_LIMITED,
    ProviderErrorKind.INVALID_CREDENTIAL,
    ProviderErrorKind.SERVICE_UNAVAILABLE,
}

RECOVERABLE_KEYWORDS = (
    "quota",
    "rate limit",
    "429",
    "api key",
    "401",
    "403",
    "service unavailable",
    "502",
    "503",
    "504",
    "timeout",
    "temporary",
    "network",
    "connection",
)


class ProviderError(DomainError):
    """Raised by an LLM provider, classified into a fixed set of kinds."""

    def __init__(self, kind: ProviderErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    @property
    def recoverable(self) -> bool:
        if self.kind in _RECOVERABLE_KINDS:
            return True
        text = str(self).lower()
        return any(keyword in text for keyword in RECOVERABLE_KEYWORDS)
