"""Tests for apsara/memory_store.py."""

import json
from unittest.mock import patch

import pytest

from apsara.memory_store import MemoryStore


@pytest.fixture
def store(tmp_path):
    return MemoryStore(tmp_path / "memories.json")


class TestStore:

    def test_store_returns_entry(self, store):
        entry = store.store("Buy milk", "shopping")

        assert entry["content"] == "Buy milk"
        assert entry["category"] == "shopping"
        assert isinstance(entry["id"], int)
        assert entry["createdAt"]

    def test_default_category(self, store):
        assert store.store("Remember the meeting")["category"] == "general"

    def test_ids_are_unique_and_increasing(self, store):
        ids = [store.store(f"note {i}")["id"] for i in range(5)]

        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_empty_content_rejected(self, store):
        with pytest.raises(ValueError):
            store.store("   ")

    def test_file_is_written_as_json_array(self, store):
        store.store("first")
        store.store("second", "misc")

        data = json.loads(store.path.read_text())
        assert [e["content"] for e in data] == ["first", "second"]

    def test_creates_parent_directory(self, tmp_path):
        store = MemoryStore(tmp_path / "nested" / "dir" / "memories.json")
        store.store("hello")

        assert store.path.exists()


class TestRetrieve:

    def test_round_trip_through_new_instance(self, store):
        store.store("The wifi password is on the fridge", "home")

        reopened = MemoryStore(store.path)
        results = reopened.retrieve("wifi")

        assert len(results) == 1
        assert results[0]["content"] == "The wifi password is on the fridge"

    def test_query_is_case_insensitive(self, store):
        store.store("Anniversary is in June")

        assert len(store.retrieve("ANNIVERSARY")) == 1

    def test_query_matches_category(self, store):
        store.store("Call mum", "Family")
        store.store("Pay rent", "bills")

        results = store.retrieve("family")
        assert [r["content"] for r in results] == ["Call mum"]

    def test_query_matching_nothing_is_empty(self, store):
        store.store("Call mum", "family")
        store.store("Pay rent", "bills")

        assert store.retrieve("zzz") == []

    def test_empty_query_returns_everything(self, store):
        store.store("a")
        store.store("b")

        assert len(store.retrieve("")) == 2
        assert len(store.retrieve(None)) == 2

    def test_missing_file_is_empty(self, store):
        assert store.retrieve() == []
        assert store.count() == 0

    def test_corrupt_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "memories.json"
        path.write_text("{not json")

        store = MemoryStore(path)
        assert store.retrieve() == []

        store.store("fresh start")
        assert json.loads(path.read_text())[0]["content"] == "fresh start"

    def test_non_list_file_treated_as_empty(self, tmp_path):
        path = tmp_path / "memories.json"
        path.write_text(json.dumps({"content": "x"}))

        assert MemoryStore(path).count() == 0


class TestClear:

    def test_clear_category_only(self, store):
        store.store("likes jazz", "preferences")
        store.store("likes coffee", "Preferences")
        store.store("dentist", "tasks")

        removed = store.clear("preferences")

        assert removed == 2
        assert [e["content"] for e in store.retrieve()] == ["dentist"]

    def test_clear_all(self, store):
        store.store("one")
        store.store("two")

        assert store.clear() == 2
        assert store.count() == 0
        assert json.loads(store.path.read_text()) == []


class TestFailedWrites:

    def test_failed_store_leaves_memories_unchanged(self, store):
        store.store("kept", "notes")

        with patch("pathlib.Path.write_text", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.store("secret", "notes")

        assert [e["content"] for e in store.retrieve()] == ["kept"]
        assert store.retrieve("secret") == []

    def test_failed_clear_keeps_memories(self, store):
        store.store("likes jazz", "preferences")
        store.store("dentist", "tasks")

        with patch("pathlib.Path.write_text", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.clear()

        assert store.count() == 2
        store.store("walk the dog", "tasks")
        assert [e["content"] for e in json.loads(store.path.read_text())] == [
            "likes jazz",
            "dentist",
            "walk the dog",
        ]

    def test_unwritable_path(self, tmp_path):
        path = tmp_path / "memories.json"
        path.mkdir()
        store = MemoryStore(path)

        with pytest.raises(OSError):
            store.store("secret")

        assert store.retrieve() == []
