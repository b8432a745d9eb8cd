"""
infrastructure.llm.errors - Map provider HTTP failures onto ProviderErrorKind.
"""

from __future__ import annotations

from typing import Optional

from domain.exceptions import ProviderError, ProviderErrorKind

_KIND_LABELS = {
    ProviderErrorKind.QUOTA_EXCEEDED: "API quota exceeded",
    ProviderErrorKind.RATE_LIMITED: "API rate limited",
    ProviderErrorKind.INVALID_CREDENTIAL: "invalid API key",
    ProviderErrorKind.SERVICE_UNAVAILABLE: "service unavailable",
    ProviderErrorKind.INVALID_REQUEST: "invalid request",
}

_DEFAULT_DETAIL = {
    ProviderErrorKind.RATE_LIMITED: "please check your plan and billing details",
    ProviderErrorKind.INVALID_CREDENTIAL: "please check your API key",
    ProviderErrorKind.SERVICE_UNAVAILABLE: "try again later",
}


def classify_status(status: Optional[int], message: str = "") -> ProviderErrorKind:
    if status == 429:
        if "quota" in message.lower():
            return ProviderErrorKind.QUOTA_EXCEEDED
        return ProviderErrorKind.RATE_LIMITED
    if status == 400:
        return ProviderErrorKind.INVALID_REQUEST
    if status in (401, 403):
        return ProviderErrorKind.INVALID_CREDENTIAL
    if status is not None and 500 <= status < 600:
        return ProviderErrorKind.SERVICE_UNAVAILABLE
    return ProviderErrorKind.UNKNOWN


def classify_http_error(status: Optional[int], message: str = "", provider: str = "") -> ProviderError:
    """Build a classified ProviderError from an HTTP status and error text.

    The message keeps the classification label first ("API rate limited: ...")
    so it stays readable when shown to the user as-is.
    """
    kind = classify_status(status, message)
    detail = message.strip() or _DEFAULT_DETAIL.get(kind, "")

    label = _KIND_LABELS.get(kind)
    if label is None:
        prefix = f"{provider} API error" if provider else "API error"
        text = f"{prefix} ({status}): {detail}" if status is not None else f"{prefix}: {detail}"
    else:
        text = f"{label}: {detail}" if detail else label
    return ProviderError(kind, text)
