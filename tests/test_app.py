"""Textual Pilot tests for SmartBookmarkApp.

Tests use ``app.run_test()`` to spin up a headless Textual app against the
in-memory fake backend, so no network or browser is involved.
"""

from __future__ import annotations

import asyncio

import pytest
from textual.widgets import Button, Input, ListView, Static

from fakes import FakeBackend, make_row
from smart_bookmark.app import SmartBookmarkApp
from smart_bookmark.backend.base import AuthError
from smart_bookmark.controller import SubscriptionState
from smart_bookmark.screens import DashboardScreen, LandingScreen
from smart_bookmark.widgets import BookmarkRow, UserBadge


class FakeCallbackServer:
    """Stands in for the local OAuth redirect listener."""

    code = "good-code"
    error: str | None = None

    def __init__(self, host: str, port: int) -> None:
        self.address = (host, port)

    async def wait_for_code(self, timeout: float) -> str:
        if self.error:
            raise AuthError(self.error)
        return self.code


@pytest.fixture(autouse=True)
def no_browser(monkeypatch):
    opened: list[str] = []
    monkeypatch.setattr("webbrowser.open", opened.append)
    return opened


def make_app(backend: FakeBackend, config) -> SmartBookmarkApp:
    return SmartBookmarkApp(
        backend, config, callback_server_factory=FakeCallbackServer
    )


async def settle(pilot) -> None:
    """Let workers, rebuilds, and message queues drain."""
    for _ in range(3):
        await pilot.pause()
        await pilot.app.workers.wait_for_complete()
    await pilot.pause()


def titles(screen: DashboardScreen) -> list[str]:
    return [row.bookmark.title for row in screen.rows()]


# ── Startup routing ─────────────────────────────────────────────────


class TestStartup:
    @pytest.mark.asyncio
    async def test_signed_out_shows_landing(self, signed_out_backend, config):
        app = make_app(signed_out_backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            assert isinstance(app.screen, LandingScreen)
            assert app.screen.query_one("#sign-in", Button) is not None

    @pytest.mark.asyncio
    async def test_existing_session_goes_to_dashboard(self, backend, config):
        backend.rows = [make_row("a", title="Older"), make_row("b", title="Newer", minutes=5)]
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            screen = app.screen
            assert isinstance(screen, DashboardScreen)
            assert titles(screen) == ["Newer", "Older"]
            assert screen.controller.state is SubscriptionState.ACTIVE

    @pytest.mark.asyncio
    async def test_theme_applied(self, signed_out_backend, config):
        config.display.theme = "solarized"
        app = make_app(signed_out_backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            assert app.theme == "bookmark-solarized"


# ── Sign-in flow ────────────────────────────────────────────────────


class TestSignIn:
    @pytest.mark.asyncio
    async def test_sign_in_switches_to_dashboard(
        self, signed_out_backend, config, no_browser
    ):
        app = make_app(signed_out_backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            await pilot.click("#sign-in")
            await settle(pilot)
            assert isinstance(app.screen, DashboardScreen)
            assert signed_out_backend.called("exchange") == ["good-code"]
            assert len(no_browser) == 1
            assert "redirect_to=http://127.0.0.1:54321/auth/callback" in no_browser[0]

    @pytest.mark.asyncio
    async def test_sign_in_failure_stays_on_landing(
        self, signed_out_backend, config, monkeypatch
    ):
        monkeypatch.setattr(FakeCallbackServer, "error", "Timed out waiting")
        app = make_app(signed_out_backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            await pilot.click("#sign-in")
            await settle(pilot)
            assert isinstance(app.screen, LandingScreen)
            assert app.screen.query_one("#sign-in", Button).disabled is False
            assert signed_out_backend.called("exchange") == []


# ── Dashboard ───────────────────────────────────────────────────────


class TestDashboard:
    @pytest.mark.asyncio
    async def test_header_shows_user(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            badge = app.screen.query_one(UserBadge)
            assert badge.email == "ada@example.com"
            assert badge.initial == "A"

    @pytest.mark.asyncio
    async def test_empty_state(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            empty = app.screen.query_one("#empty-state", Static)
            assert empty.display is True
            assert app.screen.rows() == []

    @pytest.mark.asyncio
    async def test_add_clears_form_on_success(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            screen = app.screen
            screen.query_one("#title-input", Input).value = "Python"
            screen.query_one("#url-input", Input).value = "https://www.python.org"
            await pilot.click("#add-button")
            await settle(pilot)
            assert titles(screen) == ["Python"]
            assert screen.query_one("#title-input", Input).value == ""
            assert screen.query_one("#url-input", Input).value == ""
            assert screen.query_one("#empty-state", Static).display is False
            assert screen.rows()[0].meta_text().startswith("python.org")

    @pytest.mark.asyncio
    async def test_enter_while_adding_sends_one_insert(self, backend, config):
        backend.gates["insert"] = asyncio.Event()
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            screen = app.screen
            screen.query_one("#title-input", Input).value = "T"
            url_input = screen.query_one("#url-input", Input)
            url_input.value = "https://t.com"
            url_input.focus()
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            assert screen.controller.pending is True
            backend.gates["insert"].set()
            await settle(pilot)
            assert len(backend.called("insert")) == 1
            assert titles(screen) == ["T"]
            assert screen.controller.pending is False

    @pytest.mark.asyncio
    async def test_validation_error_keeps_input(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            screen = app.screen
            screen.query_one("#title-input", Input).value = "Only a title"
            await pilot.click("#add-button")
            await settle(pilot)
            assert screen.query_one("#form-error", Static).display is True
            assert screen.controller.last_error == "Both URL and title are required"
            assert screen.query_one("#title-input", Input).value == "Only a title"
            assert backend.called("insert") == []

    @pytest.mark.asyncio
    async def test_enter_moves_from_title_to_url(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            await pilot.press("enter")
            await pilot.pause()
            assert app.focused is app.screen.query_one("#url-input", Input)

    @pytest.mark.asyncio
    async def test_delete_key_removes_highlighted(self, backend, config):
        backend.rows = [make_row("a", title="Keep"), make_row("b", title="Drop", minutes=1)]
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            screen = app.screen
            screen.query_one("#bookmark-list", ListView).focus()
            await pilot.pause()
            await pilot.press("delete")
            await settle(pilot)
            assert backend.called("delete") == ["b"]
            assert titles(screen) == ["Keep"]

    @pytest.mark.asyncio
    async def test_open_key_launches_browser(self, backend, config, no_browser):
        backend.rows = [make_row("a", url="https://example.org/x")]
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            app.screen.query_one("#bookmark-list", ListView).focus()
            await pilot.pause()
            await pilot.press("o")
            assert no_browser == ["https://example.org/x"]

    @pytest.mark.asyncio
    async def test_realtime_insert_appears(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            backend.emit_insert(make_row("r1", title="From another tab"))
            await settle(pilot)
            assert titles(app.screen) == ["From another tab"]
            assert all(isinstance(r, BookmarkRow) for r in app.screen.rows())

    @pytest.mark.asyncio
    async def test_reload_picks_up_store_rows(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            backend.rows.append(make_row("late", title="Added elsewhere"))
            await pilot.press("ctrl+r")
            await settle(pilot)
            assert titles(app.screen) == ["Added elsewhere"]


# ── Sign-out ────────────────────────────────────────────────────────


class TestSignOut:
    @pytest.mark.asyncio
    async def test_sign_out_returns_to_landing(self, backend, config):
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            controller = app.screen.controller
            await pilot.press("ctrl+s")
            await settle(pilot)
            assert isinstance(app.screen, LandingScreen)
            assert controller.state is SubscriptionState.CLOSED
            assert backend.live_channels == []
            assert app.session is None

    @pytest.mark.asyncio
    async def test_sign_out_failure_still_leaves(self, backend, config):
        backend.fail["sign_out"] = RuntimeError("503")
        app = make_app(backend, config)
        async with app.run_test(size=(100, 40)) as pilot:
            await settle(pilot)
            await pilot.press("ctrl+s")
            await settle(pilot)
            assert isinstance(app.screen, LandingScreen)
