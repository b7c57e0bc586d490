"""External media tool resolution.

Responsibilities:
- Resolve `ffprobe`/`ffplay` paths with an explicit tools directory first, then PATH.
- Keep lookups deterministic across Windows and POSIX executable naming.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil


TOOLS_DIR_ENV = "GCPTTS_TOOLS_DIR"


def resolve_executable(command_name: str, tools_dir: Path | None = None) -> str:
    """Resolve a media tool executable.

    Resolution order:
    1. `tools_dir` (or `$GCPTTS_TOOLS_DIR`), checking `<dir>/bin/<tool>` then `<dir>/<tool>`.
    2. System `PATH`.
    3. Raw command name (allowing subprocess to raise a native missing-binary error).
    """

    normalized = command_name.strip()
    if not normalized:
        return command_name

    for candidate in _tool_dir_candidates(normalized, tools_dir):
        if candidate.is_file():
            return str(candidate)

    resolved_path = shutil.which(normalized)
    if resolved_path is not None:
        return resolved_path

    return normalized


def _tool_dir_candidates(command_name: str, tools_dir: Path | None) -> list[Path]:
    """Return candidate paths inside the configured tools directory."""

    root = tools_dir
    if root is None:
        configured = os.environ.get(TOOLS_DIR_ENV, "").strip()
        if not configured:
            return []
        root = Path(configured).expanduser()

    candidates: list[Path] = []
    for name in _candidate_names(command_name):
        candidates.append(root / "bin" / name)
        candidates.append(root / name)
    return candidates


def _candidate_names(command_name: str) -> tuple[str, ...]:
    """Return command name variants including Windows `.exe` fallback."""

    if command_name.lower().endswith(".exe"):
        return (command_name,)
    return (command_name, f"{command_name}.exe")
