"""
Tests for the key-value stores.
"""

import pytest

from ..persistence import FileStore, KeyValueStore, MemoryStore


class TestMemoryStore:
    """Tests for MemoryStore."""

    def test_missing_key_returns_default(self):
        store = MemoryStore()
        assert store.get("saveData") is None
        assert store.get("saveData", []) == []

    def test_values_are_copied(self):
        store = MemoryStore()
        slots = [{"slotIndex": 1}]
        store.set("saveData", slots)
        slots.append({"slotIndex": 2})

        loaded = store.get("saveData")
        loaded.append({"slotIndex": 3})

        assert store.get("saveData") == [{"slotIndex": 1}]

    def test_initial_data(self):
        store = MemoryStore({"variables": {"volume": 10}})
        assert store.keys() == ["variables"]

    def test_delete(self):
        store = MemoryStore({"variables": {}})
        store.delete("variables")
        store.delete("variables")
        assert store.keys() == []


class TestFileStore:
    """Tests for FileStore."""

    def test_set_and_get(self, tmp_path):
        store = FileStore(tmp_path / "saves")
        store.set("saveData", [{"slotIndex": 1, "pointer": {"sectionId": "intro"}}])

        assert store.get("saveData") == [{"slotIndex": 1, "pointer": {"sectionId": "intro"}}]
        assert (tmp_path / "saves").is_dir()

    def test_survives_new_instance(self, tmp_path):
        FileStore(tmp_path).set("variables", {"volume": 30})
        assert FileStore(tmp_path).get("variables") == {"volume": 30}

    def test_keys_and_delete(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("variables", {})
        store.set("saveData", [])

        assert store.keys() == ["saveData", "variables"]

        store.delete("saveData")
        assert store.keys() == ["variables"]
        assert store.get("saveData", "gone") == "gone"

    def test_key_with_path_characters(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("../outside", 1)
        assert store.get("../outside") == 1
        assert len(list(tmp_path.glob("*.json"))) == 1

    def test_corrupt_entry_discarded(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("variables", {"volume": 30})
        path = next(tmp_path.glob("*.json"))
        path.write_text("{not json")

        assert store.get("variables", {}) == {}
        assert not path.exists()

    def test_clear(self, tmp_path):
        store = FileStore(tmp_path)
        store.set("variables", {})
        store.set("saveData", [])
        store.clear()
        assert store.keys() == []


class TestKeyValueStore:
    """Tests for the store interface."""

    def test_interface_is_abstract(self):
        with pytest.raises(TypeError):
            KeyValueStore()

    def test_partial_store_cannot_be_created(self):
        class ReadOnlyStore(KeyValueStore):
            def get(self, key, default=None):
                return default

        with pytest.raises(TypeError):
            ReadOnlyStore()
