"""Periodic backend liveness probe that drains the queue when the API is up."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from lytspot_outbox.http.transport import DeliveryResult
from lytspot_outbox.outbox.models import FlushSummary

logger = logging.getLogger(__name__)

DEFAULT_PROBE_INTERVAL_SECONDS = 300.0


class PingTransport(Protocol):
    def ping(self) -> DeliveryResult: ...


class Flushable(Protocol):
    def flush(self) -> FlushSummary: ...


@dataclass(slots=True)
class ProbeRunSummary:
    """Aggregate prober counters for CLI reporting."""

    probes: int = 0
    reachable: int = 0
    unreachable: int = 0
    delivered: int = 0


class AvailabilityProber:
    """Pings the API once at start, then on a fixed interval, flushing on success."""

    def __init__(
        self,
        *,
        transport: PingTransport,
        queue: Flushable,
        interval_seconds: float = DEFAULT_PROBE_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.transport = transport
        self.queue = queue
        self.interval_seconds = interval_seconds
        self.summary = ProbeRunSummary()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def probe_once(self) -> bool:
        """Ping the API and flush the queue if it answered. Never raises."""

        self.summary.probes += 1
        try:
            result = self.transport.ping()
            if not result.is_success:
                self.summary.unreachable += 1
                logger.info(
                    "Backend unavailable (%s), will try again later",
                    result.error or f"HTTP {result.status_code}",
                )
                return False
            self.summary.reachable += 1
            flushed = self.queue.flush()
            self.summary.delivered += flushed.delivered
            return True
        except Exception:  # noqa: BLE001
            logger.warning("Probe failed, will try again later", exc_info=True)
            return False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            daemon=True,
            name="outbox-prober",
        )
        self._thread.start()
        logger.info("Availability prober started (interval=%ss)", self.interval_seconds)

    def stop(self, timeout: float = 15.0) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Availability prober did not stop within %ss", timeout)
            return
        self._thread = None
        logger.info("Availability prober stopped")

    def run_forever(self, *, max_probes: int | None = None) -> ProbeRunSummary:
        """Probe in the foreground until SIGINT/SIGTERM or ``max_probes`` probes."""

        self._stop.clear()
        with self._signal_handlers():
            while not self._stop.is_set():
                self.probe_once()
                if max_probes is not None and self.summary.probes >= max_probes:
                    break
                self._stop.wait(timeout=self.interval_seconds)
        return self.summary

    def __enter__(self) -> AvailabilityProber:
        self.start()
        return self

    def __exit__(self, *_: object) -> None:
        self.stop()

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.probe_once()
            self._stop.wait(timeout=self.interval_seconds)

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _handler(signum: int, _: object | None) -> None:
            logger.info("Stopping prober on %s", signal.Signals(signum).name)
            self._stop.set()

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
        try:
            yield
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
