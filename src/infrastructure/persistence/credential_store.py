"""
infrastructure.persistence.credential_store - Local Fitbit credential storage.

Credentials are stored in ~/.fitbit-agent/credentials.json so the user
stays logged in between sessions without repeating the browser flow.

Implements CredentialStore (structural typing — no explicit inheritance).
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from domain.models import FitbitCredentials

logger = logging.getLogger(__name__)


class JsonCredentialStore:
    """Credentials as a small JSON file, readable only by the owner."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[FitbitCredentials]:
        """Return the stored credentials, or None if the user is not logged in."""
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            credentials = FitbitCredentials(
                access_token=data["access_token"],
                user_id=data.get("user_id") or "-",
                refresh_token=data.get("refresh_token", ""),
                expires_at=data.get("expires_at", ""),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable credentials file %s: %s", self._path, e)
            return None
        return credentials if credentials.access_token else None

    def save(self, credentials: FitbitCredentials) -> None:
        """Persist credentials to disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(credentials.to_dict(), indent=2), encoding="utf-8")
        os.chmod(self._path, 0o600)

    def clear(self) -> None:
        """Delete stored credentials (logout)."""
        if self._path.exists():
            self._path.unlink()
            logger.info("Removed stored credentials %s", self._path)
