"""Audio duration probing with `ffprobe`."""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..errors import DurationProbeError
from ..parsing import normalize_optional_string
from ..runtime_tools import resolve_executable


class FfprobeDurationProber:
    """Measure audio duration by running `ffprobe` in a subprocess."""

    def __init__(self, executable: str | None = None, timeout_seconds: float = 10.0) -> None:
        """Initialize with an explicit executable path or resolve `ffprobe` lazily."""

        self.executable = executable
        self.timeout_seconds = timeout_seconds

    async def probe(self, audio_format: str, path: Path) -> float:
        """Return the duration of `path` in seconds.

        Raises:
            DurationProbeError: When the tool is missing, fails, or reports no duration.
        """

        command = [
            self.executable or resolve_executable("ffprobe"),
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
        ]
        if audio_format:
            command.extend(["-f", _ffprobe_format(audio_format)])
        command.append(str(path))

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise DurationProbeError("The `ffprobe` command is required but was not found.") from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout_seconds)
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise DurationProbeError(f"ffprobe timed out for {path}") from exc

        if process.returncode != 0:
            details = normalize_optional_string(stderr.decode("utf-8", errors="replace"))
            raise DurationProbeError(f"ffprobe failed for {path}: {details or 'unknown error'}")

        raw = stdout.decode("utf-8", errors="replace").strip()
        try:
            return float(raw)
        except ValueError as exc:
            raise DurationProbeError(f"ffprobe reported no duration for {path}: {raw!r}") from exc


def _ffprobe_format(audio_format: str) -> str:
    """Map a file extension to the ffprobe demuxer name."""

    return {"ogg": "ogg", "mp3": "mp3", "wav": "wav"}.get(audio_format.lower(), audio_format)
