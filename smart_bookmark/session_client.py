"""Session client: sign-in, sign-out, and session lookup over the auth backend."""

from __future__ import annotations

import webbrowser
from collections.abc import Callable
from typing import Any

from .backend.base import AuthBackend, AuthError, Session, SessionCallback
from .log import logger

LANDING_VIEW = "landing"
DASHBOARD_VIEW = "dashboard"

Navigate = Callable[..., Any]


class SessionClient:
    """Thin wrapper that adds navigation semantics to the auth backend.

    *navigate* is called as ``navigate(view, refresh=True)`` when the
    signed-in area must be left; shells map it onto their own routing.
    """

    def __init__(
        self,
        backend: AuthBackend,
        *,
        provider: str = "google",
        redirect_to: str = "",
        navigate: Navigate | None = None,
        open_url: Callable[[str], Any] | None = None,
    ) -> None:
        self._backend = backend
        self.provider = provider
        self.redirect_to = redirect_to
        self._navigate = navigate
        self._open_url = open_url

    async def sign_in(self) -> str:
        """Start the provider's OAuth redirect flow in the browser.

        Returns the URL that was opened; the flow finishes when the redirect
        reaches :meth:`complete_sign_in`.
        """
        url = await self._backend.sign_in_with_provider(self.provider, self.redirect_to)
        logger.info("Opening %s sign-in in browser", self.provider)
        (self._open_url or webbrowser.open)(url)
        return url

    async def complete_sign_in(self, code: str) -> Session:
        """Exchange the OAuth authorization code for a session."""
        if not code:
            raise AuthError("Missing authorization code")
        session = await self._backend.exchange_code_for_session(code)
        logger.info("Signed in as %s", session.email or session.user_id)
        return session

    async def sign_out(self) -> None:
        """Sign out, then always leave the authenticated area.

        A backend failure is logged but never stops navigation to the
        signed-out landing view.
        """
        try:
            await self._backend.sign_out()
        except AuthError:
            logger.warning("Sign-out call failed; leaving anyway", exc_info=True)
        finally:
            if self._navigate is not None:
                self._navigate(LANDING_VIEW, refresh=True)

    async def get_session(self) -> Session | None:
        return await self._backend.get_current_session()

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Register *callback* for auth events; returns an unsubscribe function."""
        return self._backend.on_session_change(callback)
