"""Landing and dashboard screens for the Smart Bookmark TUI."""

from __future__ import annotations

import webbrowser
from typing import TYPE_CHECKING

from textual import work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Input, ListView, Static

from .widgets import BookmarkRow, UserBadge

if TYPE_CHECKING:
    from .backend.base import Session
    from .config import DisplayConfig
    from .controller import BookmarkListController

EMPTY_TEXT = "No bookmarks yet. Add one above!"


# ── Landing ─────────────────────────────────────────────────────────


class LandingScreen(Screen):
    """Signed-out view with the sign-in button."""

    BINDINGS = [
        Binding("ctrl+q", "app.quit", "Quit", show=True),
    ]

    def compose(self) -> ComposeResult:
        with Vertical(id="landing"):
            yield Static("Smart Bookmark", id="landing-title")
            yield Static("ORGANIZE YOUR WEB", id="landing-tagline")
            yield Static(
                "Save, organize, and access your bookmarks from anywhere, "
                "in real time.",
                id="landing-blurb",
            )
            yield Button("Sign in with Google", id="sign-in", variant="primary")
            yield Static("", id="landing-status")
            yield Static(
                "Private & Secure  ·  Real-time Sync  ·  All Devices",
                id="landing-features",
            )
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#sign-in", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "sign-in":
            event.stop()
            self.app.begin_sign_in()  # type: ignore[attr-defined]

    def set_status(self, text: str) -> None:
        self.query_one("#landing-status", Static).update(text)
        self.query_one("#sign-in", Button).disabled = bool(text)


# ── Dashboard ───────────────────────────────────────────────────────


class DashboardScreen(Screen):
    """Signed-in view: add form plus the live bookmark list.

    The screen owns the controller's lifecycle: mounting the screen loads
    and subscribes, unmounting tears the subscription down.
    """

    BINDINGS = [
        Binding("delete,ctrl+d", "delete_bookmark", "Delete", show=True),
        Binding("o", "open_bookmark", "Open", show=True),
        Binding("ctrl+r", "reload", "Reload", show=True),
        Binding("ctrl+s", "sign_out", "Sign out", show=True),
        Binding("ctrl+q", "app.quit", "Quit", show=True),
    ]

    def __init__(
        self,
        session: Session,
        controller: BookmarkListController,
        display: DisplayConfig | None = None,
    ) -> None:
        super().__init__()
        self.session = session
        self.controller = controller
        self._show_domain = display.show_domain if display else True
        self._show_age = display.show_age if display else True
        self._rendered_ids: tuple[str, ...] | None = None
        self._remove_listener = None

    # -- layout ---------------------------------------------------------

    def compose(self) -> ComposeResult:
        with Horizontal(id="header"):
            yield Static("Smart Bookmark", id="brand")
            yield UserBadge(self.session.email or self.session.user_id)
        with Vertical(id="add-form"):
            yield Static("Add Bookmark", id="add-form-title")
            with Horizontal(id="add-form-fields"):
                yield Input(placeholder="Title", id="title-input")
                yield Input(placeholder="https://example.com", id="url-input")
                yield Button("Add", id="add-button", variant="primary")
            yield Static("", id="form-error")
        yield ListView(id="bookmark-list")
        yield Static(EMPTY_TEXT, id="empty-state")
        yield Footer()

    async def on_mount(self) -> None:
        self._remove_listener = self.controller.add_listener(self._on_state)
        self._on_state(self.controller)
        self.query_one("#title-input", Input).focus()
        self._start_controller()

    async def on_unmount(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        await self.controller.unmount()

    @work(group="controller")
    async def _start_controller(self) -> None:
        await self.controller.refresh()
        await self.controller.mount()

    # -- rendering ------------------------------------------------------

    def _on_state(self, controller: BookmarkListController) -> None:
        if not self.is_attached:
            return
        error = self.query_one("#form-error", Static)
        error.update(controller.last_error or "")
        error.display = bool(controller.last_error)

        button = self.query_one("#add-button", Button)
        button.disabled = controller.pending
        button.label = "Adding..." if controller.pending else "Add"

        self.query_one("#empty-state", Static).display = not controller.items
        ids = tuple(b.id for b in controller.items)
        if ids != self._rendered_ids:
            self._rendered_ids = ids
            self._rebuild_list()

    @work(group="render", exclusive=True)
    async def _rebuild_list(self) -> None:
        list_view = self.query_one("#bookmark-list", ListView)
        index = list_view.index
        await list_view.clear()
        items = self.controller.items
        await list_view.extend(
            BookmarkRow(b, show_domain=self._show_domain, show_age=self._show_age)
            for b in items
        )
        if items:
            list_view.index = min(index or 0, len(items) - 1)

    def rows(self) -> list[BookmarkRow]:
        return list(self.query(BookmarkRow))

    # -- add form -------------------------------------------------------

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "add-button":
            event.stop()
            self.submit_form()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        if event.input.id == "title-input":
            self.query_one("#url-input", Input).focus()
        else:
            self.submit_form()

    def submit_form(self) -> None:
        if self.controller.pending:
            return
        title = self.query_one("#title-input", Input).value
        url = self.query_one("#url-input", Input).value
        self._add_worker(title, url)

    @work(group="add")
    async def _add_worker(self, title: str, url: str) -> None:
        # Inputs are cleared only once the store confirmed the insert.
        if await self.controller.add(title, url) and self.is_attached:
            title_input = self.query_one("#title-input", Input)
            title_input.value = ""
            self.query_one("#url-input", Input).value = ""
            title_input.focus()

    # -- actions --------------------------------------------------------

    def _highlighted(self) -> BookmarkRow | None:
        child = self.query_one("#bookmark-list", ListView).highlighted_child
        return child if isinstance(child, BookmarkRow) else None

    def action_delete_bookmark(self) -> None:
        row = self._highlighted()
        if row is not None:
            self.run_worker(self.controller.delete(row.bookmark_id), group="delete")

    def action_open_bookmark(self) -> None:
        row = self._highlighted()
        if row is not None:
            webbrowser.open(row.bookmark.url)

    def action_reload(self) -> None:
        self.run_worker(self.controller.refresh(), group="reload", exclusive=True)

    def action_sign_out(self) -> None:
        self.app.sign_out()  # type: ignore[attr-defined]

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, BookmarkRow):
            webbrowser.open(event.item.bookmark.url)
