"""Bookmark list controller: the local cache of one user's bookmarks.

Holds the ordered list, applies user actions against the store, merges
change-feed events, and owns the realtime subscription lifecycle.

Key design decisions
--------------------
* **One reducer** -- every entry point (add confirmation, optimistic delete,
  realtime push, refresh) becomes a :mod:`~smart_bookmark.reconcile` action.
  All of them run on the asyncio loop, so no locking is needed.
* **Add is confirm-then-apply** -- nothing is shown until the store returns
  the row; the merge is by id so the realtime echo can't duplicate it.
* **Delete is optimistic with rollback** -- the row disappears before the
  store call; if the call fails the row is merged back in order.
* **Deletes win** -- ids with a delete in flight or confirmed are never
  resurrected by a late insert echo.
* **Teardown is final** -- after :meth:`unmount` no continuation commits
  state, whatever the network does later.
"""

from __future__ import annotations

import asyncio
import enum
import time
from collections.abc import Callable, Iterable
from typing import Any

from .backend.base import (
    BookmarkBackend,
    ChangeEvent,
    ChannelStatus,
    EventType,
    Session,
    StoreError,
)
from .log import logger
from .models import Bookmark
from .reconcile import Action, Remove, Replace, Upsert, reduce, snapshot
from .session_client import SessionClient

VALIDATION_MESSAGE = "Both URL and title are required"

Listener = Callable[["BookmarkListController"], None]


class SubscriptionState(str, enum.Enum):
    """Realtime subscription lifecycle."""

    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    FAILED = "failed"
    CLOSED = "closed"


_RETRY_STATUSES = (ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT)


def _parse(record: Any) -> Bookmark | None:
    try:
        return Bookmark.from_record(record)
    except (KeyError, TypeError, ValueError):
        logger.debug("Ignoring malformed bookmark record %r", record, exc_info=True)
        return None


class BookmarkListController:
    """In-memory bookmark list for *owner_id*, kept in sync with the store."""

    def __init__(
        self,
        store: BookmarkBackend,
        sessions: SessionClient,
        owner_id: str,
        *,
        table: str = "bookmarks",
        initial: Iterable[Bookmark] = (),
        retry_delay: float = 1.0,
        max_attempts: int | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self.owner_id = owner_id
        self.table = table
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts

        self._items: tuple[Bookmark, ...] = snapshot(initial)
        self._pending = False
        self._last_error: str | None = None
        self._state = SubscriptionState.UNSUBSCRIBED

        self._alive = True
        self._listeners: list[Listener] = []
        self._deleting: set[str] = set()
        self._tombstones: set[str] = set()
        # ids merged while a refresh read is outstanding, one set per refresh
        self._merged_since_read: list[set[str]] = []

        self._channel: Any = None
        self._generation = 0
        self._failures = 0
        self._retry_task: asyncio.Task | None = None
        self._unsubscribe_auth: Callable[[], None] | None = None
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def items(self) -> tuple[Bookmark, ...]:
        return self._items

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def mounted(self) -> bool:
        """False once :meth:`unmount` has run."""
        return self._alive

    def get(self, bookmark_id: str) -> Bookmark | None:
        for bookmark in self._items:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def as_dict(self) -> dict[str, Any]:
        """JSON-ready view of the current state."""
        return {
            "items": [b.to_dict() for b in self._items],
            "pending": self._pending,
            "error": self._last_error,
            "state": self._state.value,
        }

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every state change; returns a remover."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # State writes
    # ------------------------------------------------------------------

    def _apply(self, action: Action | None = None, **changes: Any) -> None:
        """Reduce *action* and commit, unless the controller is torn down."""
        if not self._alive:
            return
        if action is not None:
            items = reduce(self._items, action)
            if items is not self._items:
                changes["items"] = items
        if changes:
            self._commit(**changes)

    def _commit(self, **changes: Any) -> None:
        """The single state setter; notifies listeners afterwards."""
        if "items" in changes:
            self._items = changes["items"]
        if "pending" in changes:
            self._pending = changes["pending"]
        if "last_error" in changes:
            self._last_error = changes["last_error"]
        if "state" in changes:
            self._state = changes["state"]
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Bookmark listener failed")

    def _merge(self, bookmark: Bookmark, **changes: Any) -> None:
        if bookmark.id in self._deleting or bookmark.id in self._tombstones:
            self._apply(**changes)
            return
        self._apply(Upsert(bookmark), **changes)
        for merged in self._merged_since_read:
            merged.add(bookmark.id)

    def clear_error(self) -> None:
        if self._last_error is not None:
            self._apply(last_error=None)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def add(self, title: str, url: str) -> bool:
        """Insert a bookmark and merge the confirmed row.

        Returns True only when the store confirmed the insert; the caller
        clears its form on True.
        """
        if self._pending:
            logger.debug("Add ignored while another insert is in flight")
            return False
        title = title.strip()
        url = url.strip()
        if not title or not url:
            self._apply(last_error=VALIDATION_MESSAGE)
            return False

        self._apply(pending=True, last_error=None)
        try:
            record = await self._store.insert(
                {"url": url, "title": title, "user_id": self.owner_id}
            )
        except StoreError as exc:
            logger.debug("Insert failed", exc_info=True)
            self._apply(pending=False, last_error=str(exc))
            return False

        if not self._alive:
            return False
        bookmark = _parse(record)
        if bookmark is None:
            self._apply(pending=False, last_error="Unexpected response from server")
            return False
        self._merge(bookmark, pending=False)
        return True

    async def delete(self, bookmark_id: str) -> None:
        """Remove *bookmark_id* at once, then delete it in the store.

        The local removal happens before the first suspension point.  If the
        store call fails the bookmark is merged back into place.
        """
        removed = self.get(bookmark_id)
        self._deleting.add(bookmark_id)
        self._apply(Remove(bookmark_id))
        try:
            await self._store.delete(bookmark_id)
        except StoreError as exc:
            logger.warning("Delete of %s failed: %s", bookmark_id, exc)
            self._deleting.discard(bookmark_id)
            if not self._alive:
                return
            message = f"Could not delete bookmark: {exc}"
            if removed is not None and bookmark_id not in self._tombstones:
                self._apply(Upsert(removed), last_error=message)
            else:
                self._apply(last_error=message)
            return
        self._deleting.discard(bookmark_id)
        self._tombstones.add(bookmark_id)

    async def refresh(self) -> None:
        """Replace the list with the store's current rows for this owner.

        Rows merged while the read was in flight are newer than the
        snapshot and are carried over into it.
        """
        merged: set[str] = set()
        self._merged_since_read.append(merged)
        try:
            records = await self._store.select_all_for_owner(self.owner_id)
        except StoreError as exc:
            logger.debug("Refresh failed", exc_info=True)
            self._apply(last_error=str(exc))
            return
        finally:
            self._merged_since_read.remove(merged)
        if not self._alive:
            return
        bookmarks = [b for b in map(_parse, records) if b is not None]
        bookmarks.extend(b for b in self._items if b.id in merged)
        hidden = self._deleting | self._tombstones
        self._apply(Replace(tuple(b for b in bookmarks if b.id not in hidden)))

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    def handle_realtime_insert(self, record: dict[str, Any]) -> None:
        """Merge a pushed row unless it belongs to someone else."""
        if not self._alive:
            return
        bookmark = _parse(record)
        if bookmark is None or bookmark.owner != self.owner_id:
            return
        self._merge(bookmark)

    def handle_realtime_delete(self, record: dict[str, Any]) -> None:
        """Drop a row deleted elsewhere (or echoed from our own delete)."""
        if not self._alive:
            return
        bookmark_id = record.get("id")
        if bookmark_id is None:
            return
        bookmark_id = str(bookmark_id)
        self._tombstones.add(bookmark_id)
        self._apply(Remove(bookmark_id))

    def _on_event(self, event: ChangeEvent) -> None:
        if event.event_type is EventType.INSERT and event.new is not None:
            self.handle_realtime_insert(event.new)
        elif event.event_type is EventType.DELETE and event.old is not None:
            self.handle_realtime_delete(event.old)

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Start listening for auth changes and open the realtime channel."""
        if not self._alive or self._state is not SubscriptionState.UNSUBSCRIBED:
            return
        self._unsubscribe_auth = self._sessions.on_session_change(
            self._on_session_change
        )
        await self._setup_channel()

    async def unmount(self) -> None:
        """Tear everything down; the controller can't be mounted again."""
        if not self._alive:
            return
        self._alive = False
        self._state = SubscriptionState.CLOSED
        self._listeners.clear()
        if self._retry_task is not None:
            self._retry_task.cancel()
            self._retry_task = None
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        for task in list(self._background):
            task.cancel()
        await self._release_channel()

    async def _setup_channel(self) -> None:
        self._generation += 1
        generation = self._generation
        self._apply(state=SubscriptionState.SUBSCRIBING)

        session = await self._sessions.get_session()
        if not self._alive:
            return
        try:
            if session is not None and session.access_token:
                await self._store.set_channel_auth(session.access_token)
            if not self._alive:
                return
            channel = await self._store.subscribe_to_table_events(
                self.table,
                self._on_event,
                lambda status, err: self._on_status(generation, status, err),
                f"{self.table}-{int(time.time() * 1000)}-{generation}",
            )
        except StoreError as exc:
            logger.warning("Realtime subscribe failed: %s", exc)
            if self._alive and generation == self._generation:
                self._schedule_retry()
            return

        stale = generation != self._generation or self._retry_task is not None
        if not self._alive or stale:
            # Torn down, or the channel errored while we were subscribing.
            await self._remove(channel)
            return
        self._channel = channel

    def _on_status(
        self, generation: int, status: ChannelStatus, err: Exception | None
    ) -> None:
        if not self._alive or generation != self._generation:
            return
        if status is ChannelStatus.SUBSCRIBED:
            self._failures = 0
            logger.info("Realtime channel active")
            self._apply(state=SubscriptionState.ACTIVE)
        elif status in _RETRY_STATUSES:
            logger.warning("Realtime channel %s: %s", status.value, err)
            self._schedule_retry()

    def _schedule_retry(self) -> None:
        """Queue one resubscription; further errors while queued are ignored."""
        if not self._alive or self._retry_task is not None:
            return
        self._failures += 1
        if self.max_attempts is not None and self._failures > self.max_attempts:
            logger.error(
                "Realtime channel gave up after %d attempts", self.max_attempts
            )
            self._apply(state=SubscriptionState.FAILED)
            self._spawn(self._release_channel())
            return
        self._apply(state=SubscriptionState.SUBSCRIBING)
        self._retry_task = asyncio.get_running_loop().create_task(self._retry())

    async def _retry(self) -> None:
        await self._release_channel()
        await asyncio.sleep(self.retry_delay)
        if not self._alive:
            return
        self._retry_task = None
        await self._setup_channel()

    async def _release_channel(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            await self._remove(channel)

    async def _remove(self, channel: Any) -> None:
        try:
            await self._store.remove_channel(channel)
        except StoreError:
            logger.debug("Failed to remove realtime channel", exc_info=True)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _on_session_change(self, event: str, session: Session | None) -> None:
        """Keep the channel authorized with the latest token, in place."""
        if not self._alive:
            return
        if session is not None and session.access_token:
            logger.debug("Auth event %s, refreshing realtime token", event)
            self._spawn(self._store.set_channel_auth(session.access_token))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background realtime task failed: %s", exc)
