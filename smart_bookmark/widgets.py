"""Widgets for the Smart Bookmark TUI."""

from __future__ import annotations

from datetime import datetime

from rich.text import Text
from textual.app import ComposeResult
from textual.widgets import ListItem, Static

from .display import format_age, get_domain
from .models import Bookmark


class BookmarkRow(ListItem):
    """One bookmark: title on top, ``domain · age`` and the URL below."""

    def __init__(
        self,
        bookmark: Bookmark,
        *,
        show_domain: bool = True,
        show_age: bool = True,
        now: datetime | None = None,
    ) -> None:
        super().__init__(classes="bookmark-row")
        self.bookmark = bookmark
        self._show_domain = show_domain
        self._show_age = show_age
        self._now = now

    @property
    def bookmark_id(self) -> str:
        return self.bookmark.id

    def meta_text(self) -> str:
        parts = []
        if self._show_domain:
            parts.append(get_domain(self.bookmark.url))
        if self._show_age:
            parts.append(format_age(self.bookmark.created_at, self._now))
        return " · ".join(parts)

    def compose(self) -> ComposeResult:
        yield Static(Text(self.bookmark.title), classes="bookmark-title")
        meta = self.meta_text()
        if meta:
            yield Static(Text(meta), classes="bookmark-meta")
        yield Static(Text(self.bookmark.url), classes="bookmark-url")


class UserBadge(Static):
    """Avatar initial plus the signed-in email, shown in the header."""

    def __init__(self, email: str) -> None:
        initial = email[:1].upper() or "?"
        label = Text.assemble((f" {initial} ", "reverse bold"), " ", email)
        super().__init__(label, id="user-badge")
        self.email = email
        self.initial = initial
