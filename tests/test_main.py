"""Tests for the __main__ entry point."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from smart_bookmark import __main__ as cli
from smart_bookmark.config import Config


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep logs and config out of the real home directory."""
    monkeypatch.setattr(cli, "LOG_PATH", tmp_path / "log" / "smart-bookmark.log")
    for name in (
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "NEXT_PUBLIC_SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "backend:\n  url: https://abc.supabase.co\n  anon_key: anon\n",
        encoding="utf-8",
    )
    return path


class TestVersion:
    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])
        assert exc_info.value.code == 0
        assert "smart-bookmark 0.1.0" in capsys.readouterr().out


class TestUnconfigured:
    def test_exits_with_message(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--config", str(tmp_path / "fresh.yaml")])
        assert exc_info.value.code == 1
        assert "Supabase is not configured" in capsys.readouterr().err
        # First run leaves a commented default behind.
        assert (tmp_path / "fresh.yaml").exists()


class TestDoctor:
    def test_reports_missing_backend(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--doctor", "--config", str(tmp_path / "fresh.yaml")])
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Environment Doctor" in out
        assert "url/anon_key not set" in out

    def test_passes_when_configured(self, config_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--doctor", "--config", str(config_file)])
        out = capsys.readouterr().out
        assert "https://abc.supabase.co" in out
        assert exc_info.value.code == 0


class TestSignOut:
    def test_clears_stored_session(self, config_file, tmp_path, capsys):
        session_file = tmp_path / "session.json"
        session_file.write_text('{"token": "x"}')
        with patch("smart_bookmark.__main__.load_config") as load:
            load.return_value = Config(session_path=session_file)
            cli.main(["--sign-out", "--config", str(config_file)])
        assert session_file.read_text().strip() == "{}"
        assert "Signed out." in capsys.readouterr().out


class TestLaunch:
    def test_runs_tui(self, config_file):
        with patch("smart_bookmark.app.run_app") as run_app:
            cli.main(["--config", str(config_file)])
        (config,) = run_app.call_args.args
        assert config.backend.url == "https://abc.supabase.co"

    def test_runs_web_on_port(self, config_file):
        with patch("smart_bookmark.web.main") as web_main:
            cli.main(["--web", "--port", "9000", "--config", str(config_file)])
        assert web_main.call_args.kwargs["port"] == 9000

    def test_tui_crash_exits_nonzero(self, config_file):
        with patch("smart_bookmark.app.run_app", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["--config", str(config_file)])
        assert exc_info.value.code == 1
