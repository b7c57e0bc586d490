"""Unit tests for playback routing, local playback commands, and duration probing."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from gcptts.errors import DurationProbeError
from gcptts.host import OutputDevice, StaticHostSettings
from gcptts.synthesis import duration as duration_module
from gcptts.synthesis import playback as playback_module
from gcptts.synthesis.duration import FfprobeDurationProber
from gcptts.synthesis.playback import (
    CommandPlaybackSurface,
    PlaybackRouter,
    RouteKind,
    build_playback_payload,
)


_OVERLAY = OutputDevice(device_id="overlay", label="Overlay")


def test_router_resolves_app_default_to_current_host_default() -> None:
    """The `App Default` placeholder should be resolved at dispatch time."""

    settings = StaticHostSettings(default_device=OutputDevice(device_id="spk-1", label="Speakers"))
    router = PlaybackRouter(settings)

    first = router.route(OutputDevice(device_id="whatever", label="App Default"))
    settings.default_device = _OVERLAY
    second = router.route(OutputDevice(device_id="whatever", label="App Default"))

    assert first.kind is RouteKind.LOCAL
    assert first.device.device_id == "spk-1"
    assert second.kind is RouteKind.OVERLAY


def test_router_keeps_explicit_devices_and_treats_missing_as_default() -> None:
    """Explicit devices should pass through and a missing device should use the default."""

    router = PlaybackRouter(StaticHostSettings())
    explicit = OutputDevice(device_id="usb", label="USB Headset")

    assert router.route(explicit).device == explicit
    assert router.route(None).device.device_id == "default"


@pytest.mark.parametrize(
    ("instancing", "instances", "requested", "expected"),
    [
        (True, ["stream", "alerts"], "stream", "stream"),
        (True, ["alerts"], "stream", None),
        (False, ["stream"], "stream", None),
        (True, ["stream"], None, None),
    ],
)
def test_router_attaches_only_configured_overlay_instances(
    instancing: bool, instances: list[str], requested: str | None, expected: str | None
) -> None:
    """Overlay instances should be attached only when instancing lists them."""

    router = PlaybackRouter(
        StaticHostSettings(overlay_instancing=instancing, instances=instances)
    )

    route = router.route(_OVERLAY, requested)

    assert route.kind is RouteKind.OVERLAY
    assert route.overlay_instance == expected


def test_local_route_never_carries_overlay_instance() -> None:
    """Local routes should drop the overlay instance."""

    router = PlaybackRouter(StaticHostSettings(overlay_instancing=True, instances=["stream"]))

    assert router.route(None, "stream").overlay_instance is None


def test_build_playback_payload_shape(tmp_path: Path) -> None:
    """Payloads should carry device, file, format, duration, and volume."""

    route = PlaybackRouter(StaticHostSettings()).route(None)

    payload = build_playback_payload(
        route,
        file_path=tmp_path / "tts.ogg",
        audio_format="ogg",
        duration_seconds=1.5,
        volume=7,
    )

    assert payload == {
        "audioOutputDevice": {"deviceId": "default", "label": "Default"},
        "filepath": str(tmp_path / "tts.ogg"),
        "format": "ogg",
        "maxSoundLength": 1.5,
        "volume": 7,
    }


class _FakeProcess:
    """Subprocess double returning canned output."""

    def __init__(self, *, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0) -> None:
        """Store the canned process result."""

        self._stdout = stdout
        self._stderr = stderr
        self.returncode = returncode
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        """Return the canned output."""

        return self._stdout, self._stderr

    async def wait(self) -> int:
        """Return the canned exit code."""

        return self.returncode

    def kill(self) -> None:
        """Record a kill request."""

        self.killed = True


def test_command_playback_surface_spawns_ffplay_with_scaled_volume(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """Local playback should spawn a windowless player with a 0..100 volume."""

    spawned: list[tuple[Any, ...]] = []

    async def _fake_exec(*command: Any, **_kwargs: Any) -> _FakeProcess:
        """Record the command and return a finished process."""

        spawned.append(command)
        return _FakeProcess()

    monkeypatch.setattr(playback_module.asyncio, "create_subprocess_exec", _fake_exec)
    surface = CommandPlaybackSurface(executable="/opt/ffplay")

    async def scenario() -> None:
        await surface.play({"filepath": str(tmp_path / "a.ogg"), "volume": 7})
        await surface.play({"filepath": str(tmp_path / "b.ogg"), "volume": 12})
        await surface.wait_idle()

    asyncio.run(scenario())

    assert spawned[0] == (
        "/opt/ffplay",
        "-nodisp",
        "-autoexit",
        "-loglevel",
        "error",
        "-volume",
        "70",
        str(tmp_path / "a.ogg"),
    )
    assert spawned[1][6] == "100"


def test_ffprobe_prober_parses_duration(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """The prober should pass the demuxer format and parse stdout seconds."""

    spawned: list[tuple[Any, ...]] = []

    async def _fake_exec(*command: Any, **_kwargs: Any) -> _FakeProcess:
        """Record the command and return a duration."""

        spawned.append(command)
        return _FakeProcess(stdout=b"3.250000\n")

    monkeypatch.setattr(duration_module.asyncio, "create_subprocess_exec", _fake_exec)

    seconds = asyncio.run(
        FfprobeDurationProber(executable="/opt/ffprobe").probe("ogg", tmp_path / "a.ogg")
    )

    assert seconds == 3.25
    assert spawned[0][0] == "/opt/ffprobe"
    assert spawned[0][-3:] == ("-f", "ogg", str(tmp_path / "a.ogg"))


@pytest.mark.parametrize(
    ("process", "message"),
    [
        (_FakeProcess(stderr=b"Invalid data", returncode=1), "ffprobe failed"),
        (_FakeProcess(stdout=b"N/A\n"), "reported no duration"),
    ],
)
def test_ffprobe_prober_raises_on_failure(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    process: _FakeProcess,
    message: str,
) -> None:
    """Probe failures should raise a duration probe error."""

    async def _fake_exec(*_command: Any, **_kwargs: Any) -> _FakeProcess:
        """Return the failing process."""

        return process

    monkeypatch.setattr(duration_module.asyncio, "create_subprocess_exec", _fake_exec)

    with pytest.raises(DurationProbeError, match=message):
        asyncio.run(FfprobeDurationProber(executable="ffprobe").probe("mp3", tmp_path / "a.mp3"))


def test_ffprobe_prober_reports_missing_tool(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    """A missing executable should become a duration probe error."""

    async def _missing_exec(*_command: Any, **_kwargs: Any) -> _FakeProcess:
        """Raise like a missing binary."""

        raise FileNotFoundError("ffprobe")

    monkeypatch.setattr(duration_module.asyncio, "create_subprocess_exec", _missing_exec)

    with pytest.raises(DurationProbeError, match="required but was not found"):
        asyncio.run(FfprobeDurationProber(executable="ffprobe").probe("wav", tmp_path / "a.wav"))
