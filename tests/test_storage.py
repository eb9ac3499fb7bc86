"""Tests for key-value stores."""

import json

from dynasty_board.data.storage import JsonFileStore, MemoryStore


class TestMemoryStore:
    """Test the in-process store."""

    def test_get_set_remove(self):
        store = MemoryStore()
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None

    def test_json_helpers(self):
        store = MemoryStore()
        store.set_json("ids", ["u1", "u2"])
        assert store.get_json("ids") == ["u1", "u2"]
        assert store.get_json("missing", []) == []

    def test_unreadable_json_returns_default(self, caplog):
        store = MemoryStore({"bad": "{not json"})
        with caplog.at_level("WARNING"):
            assert store.get_json("bad", {}) == {}
        assert "Ignoring unreadable value for bad" in caplog.text


class TestJsonFileStore:
    """Test the file-backed store."""

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "cache" / "store.json"
        store = JsonFileStore(str(path))
        store.set_json("ids", ["u1"])

        reopened = JsonFileStore(str(path))
        assert reopened.get_json("ids") == ["u1"]
        assert json.loads(path.read_text()) == {"ids": '["u1"]'}

    def test_remove_flushes(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonFileStore(str(path))
        store.set("a", "1")
        store.remove("a")
        assert JsonFileStore(str(path)).get("a") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2")
        assert JsonFileStore(str(path)).get("a") is None

    def test_non_object_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]")
        store = JsonFileStore(str(path))
        store.set("a", "1")
        assert json.loads(path.read_text()) == {"a": "1"}
