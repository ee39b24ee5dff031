from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from google.oauth2.credentials import Credentials

LOGGER = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Where the OAuth token record lives between runs."""

    @abstractmethod
    def load(self, scopes: Iterable[str]) -> Credentials | None:
        """Return the cached credentials, or ``None`` when nothing usable is stored."""
        raise NotImplementedError

    @abstractmethod
    def save(self, creds: Credentials) -> None:
        raise NotImplementedError


class FileCredentialStore(CredentialStore):
    """JSON token file, the same shape ``Credentials.to_json`` produces."""

    def __init__(self, token_file: Path):
        self._token_file = token_file

    def load(self, scopes: Iterable[str]) -> Credentials | None:
        if not self._token_file.exists():
            return None
        LOGGER.debug("Loading cached credential from %s", self._token_file)
        try:
            data = json.loads(self._token_file.read_text(encoding="utf-8"))
            return Credentials.from_authorized_user_info(data, list(scopes))
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError is a ValueError, so are missing token fields
            LOGGER.warning("Ignoring unreadable token cache %s: %s", self._token_file, exc)
            return None

    def save(self, creds: Credentials) -> None:
        LOGGER.debug("Persisting OAuth tokens to %s", self._token_file)
        self._token_file.parent.mkdir(parents=True, exist_ok=True)
        self._token_file.write_text(creds.to_json(), encoding="utf-8")
