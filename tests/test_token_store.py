"""Tests for the file-backed auth token storage."""

from __future__ import annotations

import json
import stat
import sys

import pytest

from smart_bookmark.backend.token_store import FileTokenStorage, JsonStore


class TestJsonStore:
    def test_missing_file_is_empty(self, tmp_path):
        assert JsonStore(tmp_path / "nope.json").load_raw() == {}

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{not json")
        assert JsonStore(path).load_raw() == {}

    def test_non_dict_is_empty(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2]")
        assert JsonStore(path).load_raw() == {}

    def test_save_creates_parents_and_no_tmp_left(self, tmp_path):
        path = tmp_path / "deep" / "s.json"
        JsonStore(path).save_raw({"a": "b"})
        assert json.loads(path.read_text()) == {"a": "b"}
        assert not (tmp_path / "deep" / "s.json.tmp").exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_private(self, tmp_path):
        path = tmp_path / "s.json"
        JsonStore(path).save_raw({})
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


class TestFileTokenStorage:
    @pytest.mark.asyncio
    async def test_set_get_remove(self, tmp_path):
        storage = FileTokenStorage(tmp_path / "session.json")
        assert await storage.get_item("sb-auth-token") is None
        await storage.set_item("sb-auth-token", '{"access_token": "x"}')
        assert await storage.get_item("sb-auth-token") == '{"access_token": "x"}'
        await storage.remove_item("sb-auth-token")
        assert await storage.get_item("sb-auth-token") is None

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "session.json"
        await FileTokenStorage(path).set_item("k", "v")
        assert await FileTokenStorage(path).get_item("k") == "v"

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, tmp_path):
        storage = FileTokenStorage(tmp_path / "session.json")
        await storage.set_item("token", "t")
        await storage.set_item("code-verifier", "cv")
        await storage.remove_item("code-verifier")
        assert await storage.get_item("token") == "t"

    @pytest.mark.asyncio
    async def test_remove_missing_key_is_noop(self, tmp_path):
        storage = FileTokenStorage(tmp_path / "session.json")
        await storage.remove_item("absent")
        assert not storage.path.exists()

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path):
        storage = FileTokenStorage(tmp_path / "session.json")
        await storage.set_item("k", "v")
        storage.clear()
        assert await storage.get_item("k") is None
