from __future__ import annotations

import logging
import webbrowser
from abc import ABC, abstractmethod
from typing import Callable, Iterable

import click
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from gmail_autoreply.services.persistence_service import CredentialStore
from gmail_autoreply.utils.config import OAuthClientConfig

LOGGER = logging.getLogger(__name__)
SCOPES: Iterable[str] = ("https://www.googleapis.com/auth/gmail.modify",)

FlowFactory = Callable[[OAuthClientConfig], InstalledAppFlow]


class AuthorizationError(RuntimeError):
    """Raised when no usable token could be obtained."""


class AuthorizationCodeProvider(ABC):
    """Turns an authorization URL into the code the user was given."""

    @abstractmethod
    def get_code(self, auth_url: str) -> str:
        raise NotImplementedError


class ConsoleCodeProvider(AuthorizationCodeProvider):
    """Print the URL, try to open a browser, and ask for the code on stdin."""

    def __init__(self, open_browser: bool = True):
        self._open_browser = open_browser

    def get_code(self, auth_url: str) -> str:
        click.echo(f"Authorize this app by visiting this URL: {auth_url}")
        if self._open_browser:
            try:
                opened = webbrowser.open(auth_url)
            except webbrowser.Error as exc:
                LOGGER.debug("Could not open a browser: %s", exc)
                opened = False
            if not opened:
                click.echo("Open the URL above in a browser to continue.")
        return click.prompt("Enter the code from that page here", type=str).strip()


def default_flow_factory(client: OAuthClientConfig) -> InstalledAppFlow:
    return InstalledAppFlow.from_client_config(
        client.as_client_config(), scopes=list(SCOPES), redirect_uri=client.redirect_uri
    )


class AuthService:
    """Handle the OAuth2 credential lifecycle for the Gmail account."""

    def __init__(
        self,
        client: OAuthClientConfig,
        store: CredentialStore,
        code_provider: AuthorizationCodeProvider | None = None,
        flow_factory: FlowFactory = default_flow_factory,
    ):
        self._client = client
        self._store = store
        self._code_provider = code_provider or ConsoleCodeProvider()
        self._flow_factory = flow_factory

    def _save_credentials(self, creds: Credentials) -> None:
        try:
            self._store.save(creds)
        except OSError as exc:
            LOGGER.warning("Could not persist OAuth token, continuing with in-memory token: %s", exc)
        else:
            LOGGER.info("Token stored")

    def _refresh(self, creds: Credentials) -> Credentials | None:
        LOGGER.info("Refreshing expired Gmail token")
        try:
            creds.refresh(Request())
        except RefreshError as exc:
            # revoked or invalid grant; transport errors propagate
            LOGGER.warning("Token refresh failed, a new authorization is required: %s", exc)
            return None
        self._save_credentials(creds)
        return creds

    def _authorize_interactively(self) -> Credentials:
        flow = self._flow_factory(self._client)
        auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
        code = self._code_provider.get_code(auth_url)
        if not code:
            raise AuthorizationError("No authorization code was provided")
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, GoogleAuthError, ValueError) as exc:
            raise AuthorizationError(f"Failed to exchange the authorization code: {exc}") from exc
        LOGGER.info("Token obtained")
        return flow.credentials

    def authenticate(self) -> Credentials:
        creds = self._store.load(SCOPES)
        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            refreshed = self._refresh(creds)
            if refreshed is not None:
                return refreshed

        LOGGER.info("No valid cached token, starting authorization-code flow")
        creds = self._authorize_interactively()
        self._save_credentials(creds)
        return creds
