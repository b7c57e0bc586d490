"""Integration-test fixtures for deterministic credential, media tool, and config behavior."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Mapping

import pytest

from gcptts.telemetry.logger import configure_logging


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional pre-seeded API key."""

        self._api_key = initial_api_key

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key value."""

        self._api_key = api_key.strip()

    def clear_api_key(self) -> bool:
        """Clear API key and return whether one existed."""

        existed = self._api_key is not None
        self._api_key = None
        return existed


class FakeDurationProber:
    """Duration prober reporting a short fixed duration."""

    async def probe(self, audio_format: str, path: Path) -> float:
        """Return a short duration so waited playback finishes quickly."""

        return 0.01


class FakePlaybackSurface:
    """Playback surface recording payloads instead of spawning a player."""

    payloads: list[dict[str, Any]] = []

    async def play(self, payload: Mapping[str, Any]) -> None:
        """Record one playback payload."""

        FakePlaybackSurface.payloads.append(dict(payload))


@pytest.fixture
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Route CLI credential lookups to an in-memory store."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("gcptts.cli.create_credential_store", lambda: store)
    return store


@pytest.fixture
def fake_media_tools(monkeypatch: pytest.MonkeyPatch) -> type[FakePlaybackSurface]:
    """Replace ffprobe/ffplay-backed collaborators with in-process fakes."""

    FakePlaybackSurface.payloads = []
    monkeypatch.setattr("gcptts.context.FfprobeDurationProber", FakeDurationProber)
    monkeypatch.setattr("gcptts.context.CommandPlaybackSurface", FakePlaybackSurface)
    return FakePlaybackSurface


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a YAML config rooted in the temporary directory."""

    config_path = tmp_path / "gcptts.yaml"
    config_path.write_text(
        "\n".join(
            [
                f"data_dir: {tmp_path / 'data'}",
                f"audio_dir: {tmp_path / 'audio'}",
                "voice_update_check_interval: Never",
                "write_delay_seconds: 0",
            ]
        ),
        encoding="utf-8",
    )
    return config_path


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Detach loguru from CLI runner streams after each command invocation."""

    yield
    configure_logging("INFO")
