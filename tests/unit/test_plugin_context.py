"""Unit tests for plugin context start/close lifecycle."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from gcptts.catalog.refresh import UpdateCheckFrequency
from gcptts.config import PluginConfig
from gcptts.context import PluginContext
from gcptts.provider import client as tts_client


class _StaticCredentials:
    """Credential provider returning a fixed key."""

    def connected_credential(self) -> str | None:
        """Return the test key."""

        return "test-key"


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(self, *, payload: bytes, status_code: int = 200) -> None:
        """Initialize response with raw payload bytes and HTTP status."""

        self.content = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        """Raise HTTPError when the response status represents a failure."""

        if self.status_code >= 400:
            raise tts_client.requests.HTTPError(f"HTTP {self.status_code} error", response=self)


def _config(tmp_path: Path, frequency: UpdateCheckFrequency) -> PluginConfig:
    """Build a config rooted in a temporary directory."""

    return PluginConfig(
        data_dir=tmp_path / "data",
        audio_dir=tmp_path / "audio",
        voice_update_check_interval=frequency,
        write_delay_seconds=0.05,
    )


def test_start_outside_event_loop_loads_catalog_without_refresh(tmp_path: Path) -> None:
    """A synchronous start should load the catalog and skip the background refresh."""

    context = PluginContext.start(
        _config(tmp_path, UpdateCheckFrequency.ON_START),
        credentials=_StaticCredentials(),
    )

    assert context.refresh_task is None
    assert context.catalog.voice_for("en-US-Standard-C") is not None
    assert context.catalog.file_path.exists()
    context.close()


def test_start_inside_event_loop_refreshes_voices_on_start(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """An on-start refresh should run in the background and be persisted on close."""

    payload = {
        "voices": [
            {
                "languageCodes": ["en-US"],
                "name": "en-US-Neural2-J",
                "ssmlGender": "MALE",
                "naturalSampleRateHertz": 24000,
            }
        ]
    }

    def _mock_get(_url: str, **_kwargs: object) -> _MockRequestsResponse:
        """Return a one-voice list."""

        return _MockRequestsResponse(payload=json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr("gcptts.provider.client.requests.get", _mock_get)

    async def scenario() -> PluginContext:
        context = PluginContext.start(
            _config(tmp_path, UpdateCheckFrequency.ON_START),
            credentials=_StaticCredentials(),
        )
        assert context.refresh_task is not None
        await context.aclose()
        return context

    context = asyncio.run(scenario())

    assert context.refresh_task is None
    assert [voice.name for voice in context.catalog.voices] == ["en-US-Neural2-J"]
    persisted = json.loads(context.catalog.file_path.read_text(encoding="utf-8"))
    assert [voice["name"] for voice in persisted["voices"]] == ["en-US-Neural2-J"]
    assert "voices" in persisted["lastChecks"]


def test_start_skips_refresh_when_disabled(tmp_path: Path) -> None:
    """`Never` and `refresh_on_start=False` should both skip the refresh."""

    async def scenario() -> None:
        never = PluginContext.start(
            _config(tmp_path / "never", UpdateCheckFrequency.NEVER),
            credentials=_StaticCredentials(),
        )
        opted_out = PluginContext.start(
            _config(tmp_path / "opted-out", UpdateCheckFrequency.ON_START),
            credentials=_StaticCredentials(),
            refresh_on_start=False,
        )
        assert never.refresh_task is None
        assert opted_out.refresh_task is None
        await never.aclose()
        await opted_out.aclose()

    asyncio.run(scenario())


def test_start_rejects_invalid_config(tmp_path: Path) -> None:
    """Invalid configuration should fail before any file is created."""

    config = _config(tmp_path, UpdateCheckFrequency.NEVER)
    config.api_version = "v3"

    with pytest.raises(ValueError, match="api_version"):
        PluginContext.start(config, credentials=_StaticCredentials())

    assert not (tmp_path / "data").exists()
