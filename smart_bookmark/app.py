"""Main Smart Bookmark TUI application."""

from __future__ import annotations

import asyncio
from typing import Any

from textual import work
from textual.app import App
from textual.binding import Binding

from .auth_callback import OAuthCallbackServer
from .backend.base import AuthError, Session
from .config import Config
from .controller import BookmarkListController
from .log import logger
from .screens import DashboardScreen, LandingScreen
from .session_client import DASHBOARD_VIEW, LANDING_VIEW, SessionClient
from .theme import resolve_theme


class SmartBookmarkApp(App):
    """Smart Bookmark - personal bookmarks, synced live."""

    CSS_PATH = "styles.tcss"
    TITLE = "Smart Bookmark"

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True),
    ]

    def __init__(
        self,
        backend: Any = None,
        config: Config | None = None,
        *,
        callback_server_factory: Any = OAuthCallbackServer,
    ) -> None:
        super().__init__()
        self.config = config or Config()
        self.backend = backend
        self.sessions: SessionClient | None = None
        self.session: Session | None = None
        self._callback_server_factory = callback_server_factory

    async def on_mount(self) -> None:
        theme = resolve_theme(self.config.display.theme)
        self.register_theme(theme)
        self.theme = theme.name

        # The SDK client must be created on the loop it will run on.
        if self.backend is None:
            from .backend.supabase_backend import SupabaseBackend

            self.backend = await SupabaseBackend.connect(self.config)
        self.sessions = SessionClient(
            self.backend,
            provider=self.config.auth.provider,
            redirect_to=self.config.redirect_url,
            navigate=self.navigate,
        )

        # Already signed in (stored session): skip the landing view.
        self.session = await self.sessions.get_session()
        if self.session is not None:
            await self.push_screen(self._dashboard(self.session))
        else:
            await self.push_screen(LandingScreen())

    # ── Navigation ──────────────────────────────────────────────

    def make_controller(self, session: Session) -> BookmarkListController:
        assert self.sessions is not None
        return BookmarkListController(
            self.backend,
            self.sessions,
            session.user_id,
            table=self.config.backend.table,
            retry_delay=self.config.realtime.retry_delay,
            max_attempts=self.config.realtime.max_attempts,
        )

    def _dashboard(self, session: Session) -> DashboardScreen:
        return DashboardScreen(
            session, self.make_controller(session), self.config.display
        )

    def navigate(self, view: str, refresh: bool = False) -> None:
        """Route to *view*; the session client calls this after sign-out."""
        if view == LANDING_VIEW:
            self.session = None
            self.switch_screen(LandingScreen())
        elif view == DASHBOARD_VIEW and self.session is not None:
            self.switch_screen(self._dashboard(self.session))
        else:
            logger.debug("Ignoring navigation to %s", view)
            return
        if refresh:
            self.refresh(layout=True)

    # ── Auth ────────────────────────────────────────────────────

    @work(group="auth", exclusive=True)
    async def begin_sign_in(self) -> None:
        """Run the browser OAuth flow and switch to the dashboard on success."""
        assert self.sessions is not None
        landing = self.screen if isinstance(self.screen, LandingScreen) else None
        if landing is not None:
            landing.set_status("Waiting for sign-in in your browser...")

        server = self._callback_server_factory(
            self.config.auth.callback_host, self.config.auth.callback_port
        )
        waiter = asyncio.create_task(
            server.wait_for_code(self.config.auth.callback_timeout)
        )
        try:
            await self.sessions.sign_in()
            code = await waiter
            self.session = await self.sessions.complete_sign_in(code)
        except AuthError as exc:
            logger.warning("Sign-in failed: %s", exc)
            if not waiter.done():
                waiter.cancel()
            self.notify(str(exc), title="Sign-in failed", severity="error")
            if landing is not None and landing.is_attached:
                landing.set_status("")
            return
        self.navigate(DASHBOARD_VIEW)

    @work(group="auth", exclusive=True)
    async def sign_out(self) -> None:
        if self.sessions is not None:
            await self.sessions.sign_out()


def run_app(config: Config) -> None:
    """Launch the TUI."""
    SmartBookmarkApp(config=config).run()
