"""Controllers for outbox CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from lytspot_outbox.config import Settings
from lytspot_outbox.http.transport import HttpTransport
from lytspot_outbox.outbox.prober import AvailabilityProber
from lytspot_outbox.outbox.queue import MessageQueue
from lytspot_outbox.outbox.submitter import FormSubmitter
from lytspot_outbox.storage.common import epoch_millis
from lytspot_outbox.storage.key_value import SQLiteKeyValueStore


@dataclass(slots=True)
class OutboxSubmitCommand:
    """CLI input for submit/enqueue."""

    db_path: Path | None
    kind: str
    fields: dict[str, str]


@dataclass(slots=True)
class OutboxQueueCommand:
    """CLI input for commands that only need the queue location."""

    db_path: Path | None


@dataclass(slots=True)
class OutboxProbeCommand:
    """CLI input for the availability prober."""

    db_path: Path | None
    once: bool
    max_probes: int | None
    interval_seconds: float | None = None


@dataclass(slots=True)
class OutboxRuntime:
    settings: Settings
    store: SQLiteKeyValueStore
    transport: HttpTransport
    queue: MessageQueue


class OutboxCliController:
    """Coordinates submit, queue inspection, flush, and probe CLI operations."""

    def submit(self, command: OutboxSubmitCommand) -> list[str]:
        with _runtime(command.db_path) as runtime:
            submitter = FormSubmitter(transport=runtime.transport, queue=runtime.queue)
            result = submitter.submit(command.kind, command.fields)
            pending = runtime.queue.pending_count()
        return [
            f"Submission {result.status.value}: {result.user_message}",
            f"Pending: {pending}",
        ]

    def enqueue(self, command: OutboxSubmitCommand) -> list[str]:
        with _runtime(command.db_path) as runtime:
            runtime.queue.enqueue(command.kind, command.fields)
            pending = runtime.queue.pending_count()
        return [f"Queued {command.kind.lower()} submission. Pending: {pending}"]

    def list_pending(self, command: OutboxQueueCommand) -> list[str]:
        with _runtime(command.db_path) as runtime:
            messages = runtime.queue.list_all()

        now = epoch_millis()
        lines = [f"Pending: {len(messages)}"]
        for index, message in enumerate(messages):
            fields = ",".join(sorted(message.payload)) or "-"
            lines.append(
                f"  #{index} kind={message.kind.value} "
                f"age={_format_age(now - message.enqueued_at)} fields={fields}",
            )
        return lines

    def status(self, command: OutboxQueueCommand) -> list[str]:
        with _runtime(command.db_path) as runtime:
            messages = runtime.queue.list_all()
            base_urls = runtime.settings.api.base_urls

        oldest = (
            _format_age(epoch_millis() - min(message.enqueued_at for message in messages))
            if messages
            else "-"
        )
        by_kind = {
            kind: sum(1 for message in messages if message.kind.value == kind)
            for kind in ("contact", "budget")
        }
        return [
            f"Pending: {len(messages)} (contact={by_kind['contact']} budget={by_kind['budget']})",
            f"Oldest: {oldest}",
            f"API: {', '.join(base_urls)}",
        ]

    def flush(self, command: OutboxQueueCommand) -> list[str]:
        with _runtime(command.db_path) as runtime:
            summary = runtime.queue.flush()
        return [
            "Flush summary: "
            f"attempted={summary.attempted} delivered={summary.delivered} "
            f"failed={summary.failed} remaining={summary.remaining}"
            + (" aborted=yes" if summary.aborted else ""),
        ]

    def probe(self, command: OutboxProbeCommand) -> list[str]:
        with _runtime(command.db_path) as runtime:
            prober = AvailabilityProber(
                transport=runtime.transport,
                queue=runtime.queue,
                interval_seconds=command.interval_seconds
                or runtime.settings.probe.interval_seconds,
            )
            if command.once:
                prober.probe_once()
                summary = prober.summary
            else:
                summary = prober.run_forever(max_probes=command.max_probes)
            pending = runtime.queue.pending_count()
        return [
            "Probe summary: "
            f"probes={summary.probes} reachable={summary.reachable} "
            f"unreachable={summary.unreachable} delivered={summary.delivered} "
            f"pending={pending}",
        ]


@contextmanager
def _runtime(db_path: Path | None) -> Iterator[OutboxRuntime]:
    settings = Settings.from_env(db_path=db_path)
    settings.validate()
    store = SQLiteKeyValueStore(settings.db_path, busy_timeout_ms=settings.sqlite_busy_timeout_ms)
    store.init_schema()
    transport = HttpTransport(
        settings.api.base_urls,
        timeout_seconds=settings.api.timeout_seconds,
    )
    try:
        yield OutboxRuntime(
            settings=settings,
            store=store,
            transport=transport,
            queue=MessageQueue(
                store=store,
                transport=transport,
                storage_key=settings.storage_key,
            ),
        )
    finally:
        transport.close()
        store.close()


def _format_age(millis: int) -> str:
    seconds = max(0, millis) // 1000
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m{seconds:02d}s"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h{minutes:02d}m"
    days, hours = divmod(hours, 24)
    return f"{days}d{hours:02d}h"
