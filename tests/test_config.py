from __future__ import annotations

from pathlib import Path

import allure
import pytest

from lytspot_outbox.config import ApiSettings, ProbeSettings, Settings

pytestmark = [
    allure.epic("Submission Outbox"),
    allure.feature("Configuration"),
]


def test_from_env_defaults(monkeypatch) -> None:
    for name in (
        "LYTSPOT_DB_PATH",
        "LYTSPOT_STORAGE_KEY",
        "LYTSPOT_API_BASE_URL",
        "LYTSPOT_API_BASE_URLS",
        "LYTSPOT_API_TIMEOUT_SECONDS",
        "LYTSPOT_PROBE_INTERVAL_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.db_path == Path(".lytspot_outbox.db")
    assert settings.storage_key == "pending_messages"
    assert settings.api.base_urls == ("http://localhost:3000",)
    assert settings.api.timeout_seconds == 10.0
    assert settings.probe.interval_seconds == 300.0
    settings.validate()


def test_from_env_collects_fallback_base_urls_in_order(monkeypatch) -> None:
    monkeypatch.setenv("LYTSPOT_API_BASE_URL", "https://lytspot.onrender.com/")
    monkeypatch.setenv(
        "LYTSPOT_API_BASE_URLS",
        "https://api.lytspot.com.br, https://lytspot.onrender.com,,https://lytspot.com.br",
    )

    settings = Settings.from_env(db_path=Path("custom.db"))

    assert settings.db_path == Path("custom.db")
    assert settings.api.base_urls == (
        "https://lytspot.onrender.com",
        "https://api.lytspot.com.br",
        "https://lytspot.com.br",
    )


def test_validate_rejects_invalid_base_url() -> None:
    settings = Settings(api=ApiSettings(base_urls=("ftp://example.com",)))

    with pytest.raises(ValueError, match="Invalid API base URL"):
        settings.validate()


def test_validate_rejects_non_positive_probe_interval() -> None:
    settings = Settings(probe=ProbeSettings(interval_seconds=0))

    with pytest.raises(ValueError, match="PROBE_INTERVAL_SECONDS"):
        settings.validate()


def test_validate_rejects_non_positive_timeout() -> None:
    settings = Settings(api=ApiSettings(timeout_seconds=-1))

    with pytest.raises(ValueError, match="TIMEOUT_SECONDS"):
        settings.validate()


def test_validate_rejects_blank_storage_key() -> None:
    with pytest.raises(ValueError, match="STORAGE_KEY"):
        Settings(storage_key="  ").validate()
