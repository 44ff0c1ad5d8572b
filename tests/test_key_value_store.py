from __future__ import annotations

from pathlib import Path

import allure
import pytest

from lytspot_outbox.storage.key_value import MemoryKeyValueStore, SQLiteKeyValueStore, StorageError

pytestmark = [
    allure.epic("Submission Outbox"),
    allure.feature("Local Storage"),
]


def test_sqlite_store_set_get_overwrite_and_remove(sqlite_store: SQLiteKeyValueStore) -> None:
    assert sqlite_store.get_item("pending_messages") is None

    sqlite_store.set_item("pending_messages", "[]")
    sqlite_store.set_item("pending_messages", '[{"type": "contact"}]')
    sqlite_store.set_item("other", "x")

    assert sqlite_store.get_item("pending_messages") == '[{"type": "contact"}]'
    assert sqlite_store.keys() == ["other", "pending_messages"]

    sqlite_store.remove_item("pending_messages")
    sqlite_store.remove_item("missing")
    assert sqlite_store.get_item("pending_messages") is None
    assert sqlite_store.keys() == ["other"]


def test_sqlite_store_keeps_unicode_values(sqlite_store: SQLiteKeyValueStore) -> None:
    sqlite_store.set_item("k", '{"name": "João Ávila"}')

    assert sqlite_store.get_item("k") == '{"name": "João Ávila"}'


def test_sqlite_store_without_schema_raises_storage_error(tmp_path: Path) -> None:
    with SQLiteKeyValueStore(tmp_path / "no-schema.db") as store:
        with pytest.raises(StorageError, match="get_item"):
            store.get_item("pending_messages")
        with pytest.raises(StorageError, match="set_item"):
            store.set_item("pending_messages", "[]")


def test_memory_store_matches_sqlite_semantics() -> None:
    store = MemoryKeyValueStore({"b": "2"})
    store.set_item("a", "1")

    assert store.get_item("a") == "1"
    assert store.keys() == ["a", "b"]
    store.remove_item("a")
    store.remove_item("a")
    assert store.get_item("a") is None
