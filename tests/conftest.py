"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any

import pytest

from lytspot_outbox.http.transport import DeliveryResult
from lytspot_outbox.outbox.queue import MessageQueue
from lytspot_outbox.storage.key_value import MemoryKeyValueStore, SQLiteKeyValueStore


class RecordingTransport:
    """Transport double that records calls and answers through a policy."""

    def __init__(
        self,
        policy: Callable[[str, dict[str, Any]], bool] | None = None,
        *,
        reachable: bool = True,
    ) -> None:
        self.policy = policy or (lambda _path, _payload: True)
        self.reachable = reachable
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.pings = 0

    def post_json(self, path: str, payload: Mapping[str, Any]) -> DeliveryResult:
        self.calls.append((path, dict(payload)))
        ok = self.policy(path, dict(payload))
        return DeliveryResult(
            url=path,
            status_code=200 if ok else 503,
            is_success=ok,
            error=None if ok else "HTTP 503",
        )

    def ping(self) -> DeliveryResult:
        self.pings += 1
        if self.reachable:
            return DeliveryResult(url="/api/ping", status_code=200, is_success=True)
        return DeliveryResult(url="/api/ping", status_code=0, is_success=False, error="refused")


@pytest.fixture()
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def queue(memory_store: MemoryKeyValueStore, transport: RecordingTransport) -> MessageQueue:
    ticks = iter(range(1_700_000_000_000, 1_800_000_000_000, 1_000))
    return MessageQueue(store=memory_store, transport=transport, clock=lambda: next(ticks))


@pytest.fixture()
def sqlite_store(tmp_path: Path) -> Iterator[SQLiteKeyValueStore]:
    store = SQLiteKeyValueStore(tmp_path / "outbox.db")
    store.init_schema()
    try:
        yield store
    finally:
        store.close()
