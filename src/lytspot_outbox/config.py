"""Runtime configuration for the submission outbox."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

DEFAULT_DB_PATH = ".lytspot_outbox.db"
DEFAULT_STORAGE_KEY = "pending_messages"
DEFAULT_API_BASE_URL = "http://localhost:3000"


@dataclass(slots=True)
class ApiSettings:
    """LytSpot backend API settings."""

    base_urls: tuple[str, ...] = (DEFAULT_API_BASE_URL,)
    timeout_seconds: float = 10.0


@dataclass(slots=True)
class ProbeSettings:
    """Availability prober settings."""

    interval_seconds: float = 300.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    storage_key: str = DEFAULT_STORAGE_KEY
    sqlite_busy_timeout_ms: int = 5_000
    api: ApiSettings = field(default_factory=ApiSettings)
    probe: ProbeSettings = field(default_factory=ProbeSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("LYTSPOT_DB_PATH", DEFAULT_DB_PATH)),
            storage_key=os.getenv("LYTSPOT_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            sqlite_busy_timeout_ms=int(os.getenv("LYTSPOT_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            api=ApiSettings(
                base_urls=_collect_base_urls(),
                timeout_seconds=float(os.getenv("LYTSPOT_API_TIMEOUT_SECONDS", "10")),
            ),
            probe=ProbeSettings(
                interval_seconds=float(os.getenv("LYTSPOT_PROBE_INTERVAL_SECONDS", "300")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the outbox cannot run with."""

        if not self.storage_key.strip():
            raise ValueError("LYTSPOT_STORAGE_KEY must not be empty.")
        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("LYTSPOT_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.api.timeout_seconds <= 0:
            raise ValueError("LYTSPOT_API_TIMEOUT_SECONDS must be > 0.")
        if self.probe.interval_seconds <= 0:
            raise ValueError("LYTSPOT_PROBE_INTERVAL_SECONDS must be > 0.")
        if not self.api.base_urls:
            raise ValueError(
                "At least one API base URL is required. "
                "Set LYTSPOT_API_BASE_URL or LYTSPOT_API_BASE_URLS.",
            )
        for base_url in self.api.base_urls:
            _validate_base_url(base_url)


def _collect_base_urls() -> tuple[str, ...]:
    values: list[str] = []
    primary = os.getenv("LYTSPOT_API_BASE_URL", "").strip()
    values.append(primary or DEFAULT_API_BASE_URL)
    csv_list = os.getenv("LYTSPOT_API_BASE_URLS", "").strip()
    if csv_list:
        values.extend(part.strip() for part in csv_list.split(","))
    return _normalize_base_urls(values)


def _normalize_base_urls(values: list[str]) -> tuple[str, ...]:
    deduped: list[str] = []
    seen: set[str] = set()
    for value in values:
        normalized = value.strip().rstrip("/")
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(normalized)
    return tuple(deduped)


def _validate_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid API base URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )
