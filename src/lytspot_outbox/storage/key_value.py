"""Persistent string key-value stores.

The outbox keeps its whole queue under a single key, the same way a browser
keeps per-origin data in local storage. ``SQLiteKeyValueStore`` is the durable
backend (one database file per installation); ``MemoryKeyValueStore`` has the
same interface and lives only as long as the process.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from lytspot_outbox.storage.alembic_runner import upgrade_head
from lytspot_outbox.storage.common import build_sqlite_engine, utc_now
from lytspot_outbox.storage.sqlmodel_models import StorageItem

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the underlying store cannot be read or written."""


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryKeyValueStore:
    """Process-local store, used for tests and throwaway sessions."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class SQLiteKeyValueStore:
    """Key-value store persisted in a SQLite table managed by Alembic."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def init_schema(self) -> None:
        """Run schema migrations."""

        with self._guard("init_schema"):
            upgrade_head(self.db_path)

    def close(self) -> None:
        self.engine.dispose()

    def get_item(self, key: str) -> str | None:
        with self._guard("get_item", key), Session(self.engine) as session:
            row = session.get(StorageItem, key)
            return None if row is None else row.value

    def set_item(self, key: str, value: str) -> None:
        now = utc_now()
        statement = (
            sqlite_insert(StorageItem)
            .values(key=key, value=value, updated_at=now)
            .on_conflict_do_update(
                index_elements=["key"],
                set_={"value": value, "updated_at": now},
            )
        )
        with self._guard("set_item", key), self.engine.begin() as connection:
            connection.execute(statement)

    def remove_item(self, key: str) -> None:
        with self._guard("remove_item", key), self.engine.begin() as connection:
            connection.execute(delete(StorageItem).where(col(StorageItem.key) == key))

    def keys(self) -> list[str]:
        with self._guard("keys"), Session(self.engine) as session:
            return list(session.exec(select(StorageItem.key).order_by(col(StorageItem.key))))

    def __enter__(self) -> SQLiteKeyValueStore:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @contextmanager
    def _guard(self, operation: str, key: str | None = None) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as error:
            logger.warning(
                "Storage %s failed (db=%s key=%s): %s",
                operation,
                self.db_path,
                key or "-",
                error,
            )
            raise StorageError(f"Storage {operation} failed for {self.db_path}: {error}") from error
