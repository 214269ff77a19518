"""Pure reducer that keeps the local bookmark list consistent.

Every mutation entry point (add confirmation, optimistic delete, realtime
push, refresh) becomes an action fed through :func:`reduce`.  The list is a
tuple ordered by ``created_at`` descending with unique ids; every action
preserves both properties and applying the same action twice is a no-op.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import Bookmark


@dataclass(frozen=True)
class Upsert:
    """Merge one bookmark by id (ignored when the id is already present)."""

    bookmark: Bookmark


@dataclass(frozen=True)
class Remove:
    """Drop the bookmark with this id, if any."""

    bookmark_id: str


@dataclass(frozen=True)
class Replace:
    """Swap in an authoritative snapshot from the store."""

    bookmarks: tuple[Bookmark, ...]


Action = Upsert | Remove | Replace


def _insert_ordered(
    items: tuple[Bookmark, ...], bookmark: Bookmark
) -> tuple[Bookmark, ...]:
    # Fast path: newest items (the common case) are simply prepended.
    if not items or bookmark.created_at >= items[0].created_at:
        return (bookmark, *items)
    for index, existing in enumerate(items):
        if bookmark.created_at >= existing.created_at:
            return (*items[:index], bookmark, *items[index:])
    return (*items, bookmark)


def snapshot(bookmarks: Iterable[Bookmark]) -> tuple[Bookmark, ...]:
    """Dedupe by id (first occurrence wins) and sort newest first."""
    seen: set[str] = set()
    unique: list[Bookmark] = []
    for bookmark in bookmarks:
        if bookmark.id in seen:
            continue
        seen.add(bookmark.id)
        unique.append(bookmark)
    unique.sort(key=lambda b: b.created_at, reverse=True)
    return tuple(unique)


def reduce(items: tuple[Bookmark, ...], action: Action) -> tuple[Bookmark, ...]:
    """Return the list that results from applying *action* to *items*."""
    if isinstance(action, Upsert):
        if any(b.id == action.bookmark.id for b in items):
            return items
        return _insert_ordered(items, action.bookmark)
    if isinstance(action, Remove):
        if not any(b.id == action.bookmark_id for b in items):
            return items
        return tuple(b for b in items if b.id != action.bookmark_id)
    if isinstance(action, Replace):
        return snapshot(action.bookmarks)
    raise TypeError(f"Unknown action: {action!r}")
