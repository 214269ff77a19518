"""File-backed auth storage so a signed-in session survives restarts."""

from __future__ import annotations

import json
import os
from pathlib import Path

from supabase_auth import AsyncSupportedStorage

from ..log import logger


class JsonStore:
    """Simple JSON file store with atomic write."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load_raw(self) -> dict:
        """Read and parse the JSON file, returning ``{}`` on any error."""
        try:
            if self.path.exists():
                data = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(data, dict):
                    return data
        except (OSError, json.JSONDecodeError):
            logger.debug("failed to load JSON store from %s", self.path, exc_info=True)
        return {}

    def save_raw(self, data: dict) -> None:
        """Write *data* as JSON via a temp file, creating parents as needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self.path)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug("could not restrict permissions on %s", self.path, exc_info=True)


class FileTokenStorage(AsyncSupportedStorage):
    """Supabase Auth storage adapter persisting keys to a private JSON file.

    Holds the serialized session and, during the PKCE flow, the code
    verifier that must outlive the browser round-trip.
    """

    def __init__(self, path: Path) -> None:
        self._store = JsonStore(path)

    @property
    def path(self) -> Path:
        return self._store.path

    async def get_item(self, key: str) -> str | None:
        value = self._store.load_raw().get(key)
        return value if isinstance(value, str) else None

    async def set_item(self, key: str, value: str) -> None:
        data = self._store.load_raw()
        data[key] = value
        self._store.save_raw(data)

    async def remove_item(self, key: str) -> None:
        data = self._store.load_raw()
        if key in data:
            del data[key]
            self._store.save_raw(data)

    def clear(self) -> None:
        """Forget every stored key (used by ``--sign-out``)."""
        if self.path.exists():
            self._store.save_raw({})
