"""Shared pytest fixtures for the full gcptts test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from gcptts.catalog.store import CatalogStore


_ENVIRONMENT_KEYS = (
    "GCPTTS_DATA_DIR",
    "GCPTTS_AUDIO_DIR",
    "GCPTTS_API_VERSION",
    "GCPTTS_VOICE_UPDATE_CHECK_INTERVAL",
    "GCPTTS_WRITE_DELAY_SECONDS",
    "GCPTTS_REQUEST_TIMEOUT_SECONDS",
    "GCPTTS_LOG_LEVEL",
    "GCPTTS_TOOLS_DIR",
    "GOOGLE_TTS_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables from leaking into config loading."""

    for key in _ENVIRONMENT_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def catalog_store(tmp_path: Path) -> CatalogStore:
    """Provide a catalog store loaded from bundled defaults in a temporary directory."""

    store = CatalogStore(tmp_path / "data", write_delay_seconds=0.05, write_retry_seconds=0.05)
    store.load()
    return store
