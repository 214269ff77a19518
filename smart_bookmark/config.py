"""Configuration for Smart Bookmark.

Loads settings from ~/.smart-bookmark/config.yaml.
Falls back to sensible defaults if the file doesn't exist or is invalid.
Creates a default file on first run so users can discover and edit it.
Backend credentials can also come from the environment, which wins over
the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .log import logger

APP_HOME = Path.home() / ".smart-bookmark"
CONFIG_PATH = APP_HOME / "config.yaml"
SESSION_PATH = APP_HOME / "session.json"
LOG_PATH = APP_HOME / "smart-bookmark.log"

_ENV_URL = ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL")
_ENV_KEY = ("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY")

_DEFAULT_YAML = """\
# Smart Bookmark configuration
# Delete this file to reset to defaults.

backend:
  url: ""                        # https://<project>.supabase.co (or set SUPABASE_URL)
  anon_key: ""                   # public anon key (or set SUPABASE_ANON_KEY)
  table: "bookmarks"
  schema: "public"

auth:
  provider: "google"
  callback_host: "127.0.0.1"     # local redirect target for the OAuth flow
  callback_port: 54321
  callback_timeout: 300          # seconds to wait for the browser sign-in

realtime:
  retry_delay: 1.0               # seconds between resubscribe attempts
  max_attempts: null             # null = retry forever

display:
  theme: "dark"                  # dark, light, solarized
  show_domain: true
  show_age: true
"""


@dataclass
class BackendConfig:
    """Where the hosted backend lives."""

    url: str = ""
    anon_key: str = ""
    table: str = "bookmarks"
    schema: str = "public"

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)


@dataclass
class AuthConfig:
    """OAuth sign-in settings."""

    provider: str = "google"
    callback_host: str = "127.0.0.1"
    callback_port: int = 54321
    callback_timeout: float = 300.0


@dataclass
class RealtimeConfig:
    """Change-feed subscription settings."""

    retry_delay: float = 1.0
    max_attempts: int | None = None  # None means retry forever


@dataclass
class DisplayConfig:
    """How bookmarks are rendered."""

    theme: str = "dark"
    show_domain: bool = True
    show_age: bool = True


@dataclass
class Config:
    """Top-level settings."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    realtime: RealtimeConfig = field(default_factory=RealtimeConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    session_path: Path = SESSION_PATH

    @property
    def redirect_url(self) -> str:
        """OAuth redirect target served by the local callback endpoint."""
        return (
            f"http://{self.auth.callback_host}:{self.auth.callback_port}"
            "/auth/callback"
        )


def _apply_section(target: object, data: object) -> None:
    """Copy known keys from *data* onto the dataclass *target*, keeping types."""
    if not isinstance(data, dict):
        return
    for key, value in data.items():
        if not hasattr(target, key):
            continue
        current = getattr(target, key)
        if value is None:
            continue
        if isinstance(current, bool):
            setattr(target, key, bool(value))
        elif isinstance(current, float):
            setattr(target, key, float(value))
        elif isinstance(current, int):
            setattr(target, key, int(value))
        elif current is None:
            setattr(target, key, int(value))
        else:
            setattr(target, key, str(value))


def _first_env(names: tuple[str, ...]) -> str:
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def load_config(path: Path | None = None) -> Config:
    """Load configuration from YAML file plus environment overrides.

    Falls back to sensible defaults if the file doesn't exist or is invalid.
    Creates a default config file on first run.
    """
    path = path or CONFIG_PATH
    config = Config()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if isinstance(data, dict):
                _apply_section(config.backend, data.get("backend"))
                _apply_section(config.auth, data.get("auth"))
                _apply_section(config.realtime, data.get("realtime"))
                _apply_section(config.display, data.get("display"))
        except (OSError, yaml.YAMLError, TypeError, ValueError):
            logger.debug("Invalid config at %s, using defaults", path, exc_info=True)
            config = Config()
    else:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_DEFAULT_YAML, encoding="utf-8")
        except OSError:
            logger.debug("Could not write default config to %s", path, exc_info=True)

    env_url = _first_env(_ENV_URL)
    if env_url:
        config.backend.url = env_url
    env_key = _first_env(_ENV_KEY)
    if env_key:
        config.backend.anon_key = env_key

    return config
