"""
application.context - Session-scoped context for one conversation.

Replaces process-wide environment variables as the credential store.
Every tool receives this context explicitly; credentials are loaded from
and saved to a CredentialStore through an explicit lifecycle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from domain.models import FitbitCredentials
from domain.ports import CredentialStore

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Per-session context passed through all layers.

    Attributes:
        conversation_id:   Unique per conversation session.
        credentials:       Current diet-API credentials, or None when logged out.
        credential_store:  Where credentials are persisted between sessions.
        request_id:        Unique per user turn, for tracing/logging.
        scratch:           Session scratchpad for inter-tool data sharing.
    """
    conversation_id: str = field(default_factory=lambda: uuid4().hex)
    credentials: Optional[FitbitCredentials] = None
    credential_store: Optional[CredentialStore] = None
    request_id: str = field(default_factory=lambda: uuid4().hex)
    scratch: dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.credentials is not None and bool(self.credentials.access_token)

    def new_request(self) -> None:
        """Start a new user turn within the same session."""
        self.request_id = uuid4().hex

    def load_credentials(self) -> Optional[FitbitCredentials]:
        """Load credentials from the store into the context."""
        if self.credential_store is not None:
            self.credentials = self.credential_store.load()
        return self.credentials

    def save_credentials(self, credentials: FitbitCredentials) -> None:
        """Adopt new credentials and persist them."""
        self.credentials = credentials
        if self.credential_store is not None:
            self.credential_store.save(credentials)
            logger.info("Saved diet-API credentials for user %s", credentials.user_id)

    def clear_credentials(self) -> None:
        self.credentials = None
        if self.credential_store is not None:
            self.credential_store.clear()
