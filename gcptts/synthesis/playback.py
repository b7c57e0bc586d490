"""Playback routing and dispatch payloads.

Responsibilities:
- Decide whether synthesized audio plays on the local surface or an overlay.
- Resolve the host default output device at dispatch time.
- Build the playback payload sent to either surface.

Key types:
- `RouteKind`, `PlaybackRoute`: routing decision.
- `PlaybackRouter`: pure decision function over host settings.
- `CommandPlaybackSurface`: local playback through the `ffplay` command.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from ..host import HostSettings, OutputDevice
from ..runtime_tools import resolve_executable


class RouteKind(str, Enum):
    """Playback surface selected for one dispatch."""

    OVERLAY = "overlay"
    LOCAL = "local"


@dataclass(frozen=True, slots=True)
class PlaybackRoute:
    """Resolved playback destination.

    Attributes:
        kind: Selected surface.
        device: Resolved output device, never the `App Default` placeholder.
        overlay_instance: Overlay instance name, only for known instances when instancing is enabled.
    """

    kind: RouteKind
    device: OutputDevice
    overlay_instance: str | None = None


class PlaybackRouter:
    """Route audio to the overlay or local playback surface."""

    def __init__(self, settings: HostSettings) -> None:
        """Bind the host settings read on every routing decision."""

        self.settings = settings

    def resolve_device(self, device: OutputDevice | None) -> OutputDevice:
        """Replace a missing or `App Default` device with the current host default."""

        if device is None or device.is_app_default:
            return self.settings.default_output_device()
        return device

    def route(
        self,
        device: OutputDevice | None,
        overlay_instance: str | None = None,
    ) -> PlaybackRoute:
        """Return the playback route for a requested device and overlay instance."""

        resolved = self.resolve_device(device)
        if not resolved.is_overlay:
            return PlaybackRoute(kind=RouteKind.LOCAL, device=resolved)

        instance = None
        if (
            overlay_instance
            and self.settings.use_overlay_instances()
            and overlay_instance in self.settings.overlay_instances()
        ):
            instance = overlay_instance
        return PlaybackRoute(kind=RouteKind.OVERLAY, device=resolved, overlay_instance=instance)


def build_playback_payload(
    route: PlaybackRoute,
    *,
    file_path: Path,
    audio_format: str,
    duration_seconds: float,
    volume: float,
) -> dict[str, Any]:
    """Build the payload shared by local and overlay playback surfaces."""

    return {
        "audioOutputDevice": route.device.to_payload(),
        "filepath": str(file_path),
        "format": audio_format,
        "maxSoundLength": duration_seconds,
        "volume": volume,
    }


class CommandPlaybackSurface:
    """Local playback surface that plays files with `ffplay` without a window."""

    def __init__(self, executable: str | None = None) -> None:
        """Initialize with an explicit executable path or resolve `ffplay` lazily."""

        self.executable = executable
        self._players: set[asyncio.Task[int]] = set()

    async def play(self, payload: Mapping[str, Any]) -> None:
        """Start playback and return once the player process has been spawned.

        Raises:
            OSError: When the player cannot be started.
        """

        volume = int(round(float(payload.get("volume", 5)) * 10))
        command = [
            self.executable or resolve_executable("ffplay"),
            "-nodisp",
            "-autoexit",
            "-loglevel",
            "error",
            "-volume",
            str(max(0, min(100, volume))),
            str(payload["filepath"]),
        ]
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        task = asyncio.create_task(process.wait())
        self._players.add(task)
        task.add_done_callback(self._players.discard)

    async def wait_idle(self) -> None:
        """Wait until every spawned player has exited."""

        if self._players:
            await asyncio.gather(*self._players)
