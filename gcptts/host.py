"""Host collaborator interfaces and in-process implementations.

Responsibilities:
- Describe the host services the synthesis pipeline depends on as protocols.
- Provide small in-process implementations used by the CLI and tests.

Key types:
- `OutputDevice`: audio output device descriptor chosen in an effect.
- `CredentialProvider`, `DurationProber`, `PlaybackSurface`, `OverlaySurface`,
  `ResourceTokenIssuer`, `HostSettings`: collaborator protocols.
- `ResourceTokenStore`, `StaticHostSettings`: in-process implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import time
from typing import Any, Callable, Mapping, Protocol
import uuid


APP_DEFAULT_DEVICE_LABEL = "App Default"
OVERLAY_DEVICE_ID = "overlay"


@dataclass(frozen=True, slots=True)
class OutputDevice:
    """Audio output device descriptor.

    Attributes:
        device_id: Host device identifier; `overlay` routes to the overlay surface.
        label: Human-readable label; `App Default` defers to host settings.
    """

    device_id: str | None = None
    label: str | None = None

    @property
    def is_app_default(self) -> bool:
        """Return whether this descriptor defers to the host default device."""

        return self.label == APP_DEFAULT_DEVICE_LABEL

    @property
    def is_overlay(self) -> bool:
        """Return whether this device routes audio to the overlay surface."""

        return self.device_id == OVERLAY_DEVICE_ID

    @classmethod
    def from_payload(cls, payload: object) -> OutputDevice | None:
        """Parse an `{deviceId, label}` mapping from an effect payload."""

        if not isinstance(payload, Mapping):
            return None
        device_id = payload.get("deviceId")
        label = payload.get("label")
        return cls(
            device_id=str(device_id) if device_id is not None else None,
            label=str(label) if label is not None else None,
        )

    def to_payload(self) -> dict[str, str]:
        """Serialize the descriptor for a playback payload."""

        payload: dict[str, str] = {}
        if self.device_id is not None:
            payload["deviceId"] = self.device_id
        if self.label is not None:
            payload["label"] = self.label
        return payload


class CredentialProvider(Protocol):
    """Source of the single connected provider credential."""

    def connected_credential(self) -> str | None:
        """Return the connected credential, or `None` when disconnected."""


class DurationProber(Protocol):
    """Service that measures the playable duration of an audio file."""

    async def probe(self, audio_format: str, path: Path) -> float:
        """Return the duration of `path` in seconds."""


class PlaybackSurface(Protocol):
    """Local playback surface of the host."""

    async def play(self, payload: Mapping[str, Any]) -> None:
        """Start playing the audio described by `payload`."""


class OverlaySurface(Protocol):
    """Browser-source overlay surface of the host."""

    async def send(self, payload: Mapping[str, Any], instance: str | None = None) -> None:
        """Send a playback payload to an overlay (optionally a named instance)."""


class ResourceTokenIssuer(Protocol):
    """Issuer of short-lived tokens that grant access to one local file."""

    def store_resource_path(self, path: Path, ttl_seconds: float) -> str:
        """Return an opaque token resolving to `path` for `ttl_seconds`."""


class HostSettings(Protocol):
    """Host settings consulted at dispatch time."""

    def default_output_device(self) -> OutputDevice:
        """Return the host's configured default output device."""

    def use_overlay_instances(self) -> bool:
        """Return whether overlay instancing is enabled."""

    def overlay_instances(self) -> list[str]:
        """Return the names of configured overlay instances."""


@dataclass(slots=True)
class StaticHostSettings:
    """Mutable in-process host settings."""

    default_device: OutputDevice = field(
        default_factory=lambda: OutputDevice(device_id="default", label="Default")
    )
    overlay_instancing: bool = False
    instances: list[str] = field(default_factory=list)

    def default_output_device(self) -> OutputDevice:
        """Return the configured default output device."""

        return self.default_device

    def use_overlay_instances(self) -> bool:
        """Return whether overlay instancing is enabled."""

        return self.overlay_instancing

    def overlay_instances(self) -> list[str]:
        """Return configured overlay instance names."""

        return list(self.instances)


@dataclass(slots=True)
class ResourceTokenStore:
    """In-memory resource token issuer with expiring entries."""

    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, tuple[Path, float]] = field(default_factory=dict)

    def store_resource_path(self, path: Path, ttl_seconds: float) -> str:
        """Issue a new token for `path` valid for `ttl_seconds`."""

        self._purge_expired()
        token = uuid.uuid4().hex
        self._entries[token] = (Path(path), self.clock() + max(0.0, ttl_seconds))
        return token

    def resolve(self, token: str) -> Path | None:
        """Return the path behind a live token, or `None` when unknown or expired."""

        entry = self._entries.get(token)
        if entry is None:
            return None
        path, expires_at = entry
        if self.clock() >= expires_at:
            del self._entries[token]
            return None
        return path

    def _purge_expired(self) -> None:
        """Drop expired tokens."""

        now = self.clock()
        expired = [token for token, (_path, expires_at) in self._entries.items() if now >= expires_at]
        for token in expired:
            del self._entries[token]
