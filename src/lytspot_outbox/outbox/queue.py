"""Durable FIFO queue of form submissions awaiting delivery."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from lytspot_outbox.config import DEFAULT_STORAGE_KEY
from lytspot_outbox.http.transport import DeliveryResult
from lytspot_outbox.outbox.models import FlushSummary, MessageKind, QueuedMessage
from lytspot_outbox.storage.common import epoch_millis
from lytspot_outbox.storage.key_value import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

QUARANTINE_SUFFIX = ".corrupt"
ENTRY_QUARANTINE_SUFFIX = ".corrupt-entries"


class DeliveryTransport(Protocol):
    def post_json(self, path: str, payload: Mapping[str, Any]) -> DeliveryResult: ...


def deliver(
    transport: DeliveryTransport,
    kind: MessageKind,
    payload: Mapping[str, Any],
) -> DeliveryResult:
    """POST ``payload`` to the kind's endpoint; a raising transport counts as a failure."""

    try:
        return transport.post_json(kind.endpoint, payload)
    except Exception as error:  # noqa: BLE001
        return DeliveryResult(
            url=kind.endpoint,
            status_code=0,
            is_success=False,
            error=str(error) or type(error).__name__,
        )


class MessageQueue:
    """Queue persisted as one JSON array under a single storage key.

    Every mutation rewrites the whole array, so the stored value always mirrors
    the sequence right after the last enqueue or removal.
    """

    def __init__(
        self,
        *,
        store: KeyValueStore,
        transport: DeliveryTransport,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], int] = epoch_millis,
    ) -> None:
        self.store = store
        self.transport = transport
        self.storage_key = storage_key
        self._clock = clock
        self._mutation_lock = threading.RLock()
        self._flush_lock = threading.Lock()

    def enqueue(self, kind: MessageKind | str, payload: Mapping[str, Any]) -> None:
        """Append a submission and persist the queue before returning."""

        message_kind = MessageKind.parse(kind)
        data = _ensure_serializable(payload)
        with self._mutation_lock:
            messages, skipped = self._read()
            messages.append(
                QueuedMessage(kind=message_kind, payload=data, enqueued_at=self._clock()),
            )
            self._write(messages, skipped)
        logger.info("Queued %s submission (pending=%d)", message_kind.value, len(messages))

    def list_all(self) -> list[QueuedMessage]:
        """Read the persisted queue; a corrupted value reads as an empty queue."""

        messages, _ = self._read()
        return messages

    def _read(self) -> tuple[list[QueuedMessage], list[Any]]:
        """Return the readable entries and the raw records that could not be parsed."""

        raw = self.store.get_item(self.storage_key)
        if raw is None:
            return [], []
        try:
            records = json.loads(raw)
        except ValueError:
            self._quarantine(raw, reason="invalid JSON")
            return [], []
        if not isinstance(records, list):
            self._quarantine(raw, reason=f"expected array, got {type(records).__name__}")
            return [], []

        messages: list[QueuedMessage] = []
        skipped: list[Any] = []
        for position, record in enumerate(records):
            try:
                messages.append(QueuedMessage.from_record(record))
            except ValueError as error:
                logger.warning("Skipping malformed queued entry #%d: %s", position, error)
                skipped.append(record)
        return messages, skipped

    def pending_count(self) -> int:
        return len(self.list_all())

    def remove_at(self, index: int) -> bool:
        """Remove the entry at ``index``; an index outside the queue is a no-op."""

        with self._mutation_lock:
            messages, skipped = self._read()
            if not 0 <= index < len(messages):
                logger.debug(
                    "Ignoring removal of index %d from queue of %d", index, len(messages)
                )
                return False
            del messages[index]
            self._write(messages, skipped)
            return True

    def flush(self) -> FlushSummary:
        """Deliver queued submissions in FIFO order, one at a time.

        Delivered entries are removed as soon as they are acknowledged. Failed
        entries stay in place for the next flush. A call made while another
        flush is running returns at once with ``skipped=True``. Never raises.
        """

        if not self._flush_lock.acquire(blocking=False):
            logger.info("Flush already in progress, skipping")
            return FlushSummary(skipped=True)
        try:
            return self._flush()
        finally:
            self._flush_lock.release()

    def _flush(self) -> FlushSummary:
        summary = FlushSummary()
        try:
            snapshot = self.list_all()
        except StorageError:
            logger.exception("Cannot read queued submissions, flush aborted")
            summary.aborted = True
            return summary

        removed = 0
        for position, message in enumerate(snapshot):
            summary.attempted += 1
            result = deliver(self.transport, message.kind, message.payload)
            if not result.is_success:
                summary.failed += 1
                logger.warning(
                    "Delivery of queued %s submission failed (%s), will retry later",
                    message.kind.value,
                    result.error or f"HTTP {result.status_code}",
                )
                continue
            summary.delivered += 1
            try:
                self._remove_delivered(position - removed, message)
            except StorageError:
                logger.exception("Cannot remove delivered submission, flush aborted")
                summary.aborted = True
                break
            removed += 1

        try:
            with self._mutation_lock:
                summary.remaining = self.pending_count()
        except StorageError:
            logger.warning("Cannot re-read queue after flush", exc_info=True)
            summary.remaining = len(snapshot) - removed
        logger.info(
            "Flush finished: attempted=%d delivered=%d failed=%d remaining=%d",
            summary.attempted,
            summary.delivered,
            summary.failed,
            summary.remaining,
        )
        return summary

    def _remove_delivered(self, expected_index: int, message: QueuedMessage) -> None:
        with self._mutation_lock:
            messages, skipped = self._read()
            if 0 <= expected_index < len(messages) and messages[expected_index] == message:
                index = expected_index
            else:
                index = next(
                    (position for position, item in enumerate(messages) if item == message),
                    -1,
                )
            if index < 0:
                return
            del messages[index]
            self._write(messages, skipped)

    def _write(self, messages: list[QueuedMessage], skipped: list[Any] | None = None) -> None:
        if skipped:
            self._quarantine_entries(skipped)
        self.store.set_item(
            self.storage_key,
            json.dumps([message.to_record() for message in messages], ensure_ascii=False),
        )

    def _quarantine(self, raw: str, *, reason: str) -> None:
        quarantine_key = f"{self.storage_key}{QUARANTINE_SUFFIX}"
        logger.warning(
            "Stored queue under %r is unreadable (%s); treating it as empty, raw value kept "
            "under %r",
            self.storage_key,
            reason,
            quarantine_key,
        )
        try:
            self.store.set_item(quarantine_key, raw)
        except StorageError:
            logger.warning("Could not quarantine unreadable queue value", exc_info=True)

    def _quarantine_entries(self, records: list[Any]) -> None:
        # Must succeed before the queue is rewritten without these records.
        quarantine_key = f"{self.storage_key}{ENTRY_QUARANTINE_SUFFIX}"
        existing = self.store.get_item(quarantine_key)
        kept: list[Any] = []
        if existing:
            try:
                parsed = json.loads(existing)
            except ValueError:
                parsed = [existing]
            kept = parsed if isinstance(parsed, list) else [parsed]
        kept.extend(records)
        self.store.set_item(quarantine_key, json.dumps(kept, ensure_ascii=False))
        logger.warning(
            "Moved %d malformed queued entries to %r", len(records), quarantine_key
        )


def _ensure_serializable(payload: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValueError(f"Payload must be a mapping, got {type(payload).__name__}")
    data = dict(payload)
    try:
        json.dumps(data, allow_nan=False)
    except (TypeError, ValueError) as error:
        raise ValueError(f"Payload is not JSON serializable: {error}") from error
    return data
