from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv

DEFAULT_REPLY_SUBJECT = "Re: {subject}"
DEFAULT_REPLY_BODY = (
    "Hello,\n\n"
    "Thank you for your message. I am currently away and will get back to you "
    "as soon as possible.\n\n"
    "This is an automated reply."
)


class ConfigurationError(RuntimeError):
    """Raised when a configuration value or file cannot be used."""


@dataclass(slots=True)
class OAuthClientConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    auth_uri: str
    token_uri: str
    client_type: str = "installed"

    def as_client_config(self) -> Dict[str, Dict]:
        return {
            self.client_type: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": [self.redirect_uri],
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
            }
        }


@dataclass(slots=True)
class AppConfig:
    credentials_file: Path
    token_file: Path
    user_id: str
    label_name: str
    reply_subject: str
    reply_body: str
    poll_min_seconds: int
    poll_max_seconds: int
    log_dir: Path
    log_level: str
    stats_file: Path


def _resolve_path(value: str | None, fallback: str) -> Path:
    candidate = Path(value or fallback)
    if not candidate.is_absolute():
        candidate = Path.cwd() / candidate
    return candidate


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def load_client_config(credentials_file: Path) -> OAuthClientConfig:
    """Read the OAuth client descriptor downloaded from the Google console."""

    try:
        data = json.loads(credentials_file.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Missing OAuth client file: {credentials_file}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"OAuth client file {credentials_file} is not valid JSON") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"OAuth client file {credentials_file} must contain a JSON object")

    client_type = "installed" if "installed" in data else "web" if "web" in data else None
    if client_type is None:
        raise ConfigurationError(f"{credentials_file} has no 'installed' or 'web' client section")

    section = data[client_type]
    missing = [key for key in ("client_id", "client_secret") if not section.get(key)]
    if missing:
        raise ConfigurationError(f"{credentials_file} is missing {', '.join(missing)}")

    redirect_uris = section.get("redirect_uris") or ["http://localhost"]
    return OAuthClientConfig(
        client_id=section["client_id"],
        client_secret=section["client_secret"],
        redirect_uri=redirect_uris[0],
        auth_uri=section.get("auth_uri", "https://accounts.google.com/o/oauth2/auth"),
        token_uri=section.get("token_uri", "https://oauth2.googleapis.com/token"),
        client_type=client_type,
    )


def load_config(env_file: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load configuration values from a .env file and environment variables."""

    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    poll_min = _int_env("POLL_MIN_SECONDS", 45)
    poll_max = _int_env("POLL_MAX_SECONDS", 120)
    if poll_min <= 0 or poll_max < poll_min:
        raise ConfigurationError(
            f"Invalid poll interval bounds: POLL_MIN_SECONDS={poll_min}, POLL_MAX_SECONDS={poll_max}"
        )

    return AppConfig(
        credentials_file=_resolve_path(os.getenv("GOOGLE_CLIENT_SECRETS"), "credentials.json"),
        token_file=_resolve_path(os.getenv("GOOGLE_TOKEN_PATH"), "token.json"),
        user_id=os.getenv("GMAIL_USER_ID", "me"),
        label_name=os.getenv("AUTO_REPLY_LABEL", "auto-reply"),
        reply_subject=os.getenv("AUTO_REPLY_SUBJECT", DEFAULT_REPLY_SUBJECT),
        reply_body=os.getenv("AUTO_REPLY_BODY", DEFAULT_REPLY_BODY),
        poll_min_seconds=poll_min,
        poll_max_seconds=poll_max,
        log_dir=_resolve_path(os.getenv("LOG_DIR"), "logs"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        stats_file=_resolve_path(os.getenv("STATS_FILE"), "data/stats.json"),
    )
