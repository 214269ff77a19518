"""Shared test fixtures for the smart-bookmark test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeBackend
from smart_bookmark.config import Config
from smart_bookmark.session_client import SessionClient


# ── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def backend() -> FakeBackend:
    """Signed-in fake backend with no rows."""
    return FakeBackend()


@pytest.fixture
def signed_out_backend() -> FakeBackend:
    return FakeBackend(session=None)


@pytest.fixture
def navigations() -> list[tuple[str, bool]]:
    return []


@pytest.fixture
def sessions(backend: FakeBackend, navigations) -> SessionClient:
    return SessionClient(
        backend,
        redirect_to="http://127.0.0.1:54321/auth/callback",
        navigate=lambda view, refresh=False: navigations.append((view, refresh)),
        open_url=lambda url: None,
    )


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config that never touches the real home directory."""
    cfg = Config(session_path=tmp_path / "session.json")
    cfg.backend.url = "https://project.supabase.co"
    cfg.backend.anon_key = "anon"
    cfg.realtime.retry_delay = 0.01
    return cfg
