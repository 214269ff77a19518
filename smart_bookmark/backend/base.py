"""Collaborator contracts for the hosted backend.

The controller and the shells only ever see these types.  The concrete
Supabase implementation lives in :mod:`.supabase_backend`; tests use an
in-memory fake that satisfies the same protocols.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..log import logger


class StoreError(Exception):
    """A bookmark store operation (insert/delete/select) failed."""


class AuthError(Exception):
    """A sign-in, code exchange, or sign-out call failed."""


@dataclass(frozen=True)
class Session:
    """The signed-in user plus the bearer token used for realtime auth."""

    user_id: str
    email: str = ""
    access_token: str = ""


class ChannelStatus(str, enum.Enum):
    """Subscription acknowledgements reported by the change feed."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


class EventType(str, enum.Enum):
    INSERT = "INSERT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """One row event from the bookmarks table."""

    event_type: EventType
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None


SessionCallback = Callable[[str, "Session | None"], None]
EventCallback = Callable[[ChangeEvent], None]
StatusCallback = Callable[[ChannelStatus, "Exception | None"], None]


class AuthBackend(Protocol):
    """Identity provider operations."""

    async def get_current_session(self) -> Session | None: ...

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]: ...

    async def sign_in_with_provider(self, provider: str, redirect_to: str) -> str: ...

    async def exchange_code_for_session(self, code: str) -> Session: ...

    async def sign_out(self) -> None: ...


class BookmarkBackend(Protocol):
    """Hosted table plus its change feed."""

    async def insert(self, record: dict[str, Any]) -> dict[str, Any]: ...

    async def delete(self, bookmark_id: str) -> None: ...

    async def select_all_for_owner(self, owner: str) -> list[dict[str, Any]]: ...

    async def subscribe_to_table_events(
        self,
        table: str,
        on_event: EventCallback,
        on_status: StatusCallback,
        name: str,
    ) -> Any: ...

    async def remove_channel(self, channel: Any) -> None: ...

    async def set_channel_auth(self, token: str) -> None: ...


# ---------------------------------------------------------------------------
# Change-feed payloads
# ---------------------------------------------------------------------------


def parse_change_payload(payload: Any) -> ChangeEvent | None:
    """Normalize a ``postgres_changes`` payload into a :class:`ChangeEvent`.

    Accepts the documented ``{eventType, new, old}`` shape as well as the raw
    ``{"data": {"type", "record", "old_record"}}`` shape delivered by the
    Python realtime client.  Returns *None* for UPDATE events and anything
    malformed.
    """
    if not isinstance(payload, dict):
        logger.debug("Ignoring non-dict change payload: %r", payload)
        return None

    if "eventType" in payload:
        kind = payload.get("eventType")
        new = payload.get("new")
        old = payload.get("old")
    else:
        data = payload.get("data", payload)
        if not isinstance(data, dict):
            logger.debug("Ignoring change payload without data: %r", payload)
            return None
        kind = data.get("type") or data.get("eventType")
        new = data.get("record")
        old = data.get("old_record")

    try:
        event_type = EventType(str(kind).upper())
    except ValueError:
        return None

    if event_type is EventType.INSERT and not isinstance(new, dict):
        logger.debug("INSERT payload without a record: %r", payload)
        return None
    if event_type is EventType.DELETE and not isinstance(old, dict):
        logger.debug("DELETE payload without an old record: %r", payload)
        return None
    return ChangeEvent(
        event_type=event_type,
        new=new if isinstance(new, dict) else None,
        old=old if isinstance(old, dict) else None,
    )
