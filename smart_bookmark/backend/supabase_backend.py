"""Supabase implementation of the auth and bookmark store collaborators.

One :class:`SupabaseBackend` is built per process with :meth:`connect` and
handed to whichever component needs it.  All SDK exceptions are translated
into :class:`~.base.StoreError` / :class:`~.base.AuthError` here so callers
never import the SDK.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, AsyncClientOptions, acreate_client
from supabase_auth.errors import AuthError as SupabaseAuthError

from ..log import logger
from .base import (
    AuthError,
    ChannelStatus,
    EventCallback,
    Session,
    SessionCallback,
    StatusCallback,
    StoreError,
    parse_change_payload,
)
from .token_store import FileTokenStorage

if TYPE_CHECKING:
    from ..config import Config


def _to_session(raw: Any) -> Session | None:
    """Convert an SDK session object into our :class:`Session`."""
    if raw is None or getattr(raw, "user", None) is None:
        return None
    return Session(
        user_id=str(raw.user.id),
        email=raw.user.email or "",
        access_token=raw.access_token or "",
    )


def _to_status(status: Any) -> ChannelStatus:
    value = getattr(status, "value", status)
    try:
        return ChannelStatus(str(value))
    except ValueError:
        logger.debug("Unknown channel status %r, treating as error", status)
        return ChannelStatus.CHANNEL_ERROR


class SupabaseBackend:
    """Bookmark table, change feed, and auth over one ``AsyncClient``."""

    def __init__(
        self,
        client: AsyncClient,
        *,
        table: str = "bookmarks",
        schema: str = "public",
        storage: FileTokenStorage | None = None,
    ) -> None:
        self._client = client
        self.table = table
        self.schema = schema
        self.storage = storage

    @classmethod
    async def connect(cls, config: Config) -> SupabaseBackend:
        """Create the process-wide client from *config*."""
        storage = FileTokenStorage(config.session_path)
        options = AsyncClientOptions(storage=storage, flow_type="pkce")
        client = await acreate_client(
            config.backend.url, config.backend.anon_key, options=options
        )
        logger.info("Connected to backend %s", config.backend.url)
        return cls(
            client,
            table=config.backend.table,
            schema=config.backend.schema,
            storage=storage,
        )

    def _query(self) -> Any:
        if self.schema == "public":
            return self._client.table(self.table)
        return self._client.schema(self.schema).table(self.table)

    # -- auth -----------------------------------------------------------------

    async def get_current_session(self) -> Session | None:
        try:
            raw = await self._client.auth.get_session()
        except (SupabaseAuthError, httpx.HTTPError):
            logger.debug("get_session failed", exc_info=True)
            return None
        return _to_session(raw)

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        def _listener(event: Any, raw: Any) -> None:
            callback(str(event), _to_session(raw))

        subscription = self._client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    async def sign_in_with_provider(self, provider: str, redirect_to: str) -> str:
        try:
            response = await self._client.auth.sign_in_with_oauth(
                {"provider": provider, "options": {"redirect_to": redirect_to}}
            )
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            raise AuthError(str(exc)) from exc
        return response.url

    async def exchange_code_for_session(self, code: str) -> Session:
        try:
            response = await self._client.auth.exchange_code_for_session(
                {"auth_code": code}
            )
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            raise AuthError(str(exc)) from exc
        session = _to_session(response.session)
        if session is None:
            raise AuthError("Sign-in did not return a session")
        return session

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            raise AuthError(str(exc)) from exc

    # -- table ----------------------------------------------------------------

    async def insert(self, record: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._query().insert(record).execute()
        except APIError as exc:
            raise StoreError(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(str(exc)) from exc
        if not response.data:
            raise StoreError("Insert returned no row")
        return response.data[0]

    async def delete(self, bookmark_id: str) -> None:
        try:
            await self._query().delete().eq("id", bookmark_id).execute()
        except APIError as exc:
            raise StoreError(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(str(exc)) from exc

    async def select_all_for_owner(self, owner: str) -> list[dict[str, Any]]:
        try:
            response = (
                await self._query()
                .select("*")
                .eq("user_id", owner)
                .order("created_at", desc=True)
                .execute()
            )
        except APIError as exc:
            raise StoreError(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise StoreError(str(exc)) from exc
        return list(response.data or [])

    # -- change feed ----------------------------------------------------------

    async def subscribe_to_table_events(
        self,
        table: str,
        on_event: EventCallback,
        on_status: StatusCallback,
        name: str,
    ) -> Any:
        def _on_change(payload: Any) -> None:
            event = parse_change_payload(payload)
            if event is not None:
                on_event(event)

        def _on_subscribe(status: Any, err: Exception | None = None) -> None:
            on_status(_to_status(status), err)

        channel = self._client.channel(name)
        channel.on_postgres_changes(
            "*", schema=self.schema, table=table, callback=_on_change
        )
        # The realtime client raises transport-specific errors (websockets,
        # OSError, timeouts); callers only need to know the subscribe failed.
        try:
            await channel.subscribe(_on_subscribe)
        except Exception as exc:
            raise StoreError(f"Realtime subscribe failed: {exc}") from exc
        return channel

    async def remove_channel(self, channel: Any) -> None:
        try:
            await self._client.remove_channel(channel)
        except Exception as exc:
            raise StoreError(f"Realtime unsubscribe failed: {exc}") from exc

    async def set_channel_auth(self, token: str) -> None:
        try:
            result = self._client.realtime.set_auth(token)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            raise StoreError(f"Realtime auth update failed: {exc}") from exc
