"""Hosted backend collaborators (auth, bookmark table, change feed)."""

from .base import (
    AuthBackend,
    AuthError,
    BookmarkBackend,
    ChangeEvent,
    ChannelStatus,
    EventType,
    Session,
    StoreError,
    parse_change_payload,
)

__all__ = [
    "AuthBackend",
    "AuthError",
    "BookmarkBackend",
    "ChangeEvent",
    "ChannelStatus",
    "EventType",
    "Session",
    "StoreError",
    "parse_change_payload",
]
