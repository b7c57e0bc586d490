"""Structured run logging utilities.

Responsibilities:
- Configure the process-wide `loguru` sink for CLI and host runs.
- Emit concise, deterministic stage-level logs for synthesis runs.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger


_LOG_FORMAT = "{time:HH:mm:ss} {level: <7} [{extra[component]}] {message}"


def configure_logging(level: str = "INFO", sink: TextIO | None = None) -> None:
    """Replace default loguru handlers with one plain-text sink."""

    logger.remove()
    logger.configure(extra={"component": "gcptts"})
    logger.add(sink or sys.stderr, format=_LOG_FORMAT, level=level.upper(), colorize=False)


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic stage logs for one synthesis run."""

    def __init__(self, run_id: str = "-") -> None:
        """Bind the run identifier used to correlate stage lines."""

        self.run_id = run_id
        self._logger = logger.bind(component="pipeline")

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        context.setdefault("run", self.run_id)
        line = f"[phase] level={level} stage={stage} event={event}{_format_context(context)}"
        self._logger.log(level, line)

    def log_stage_start(self, stage: str, **context: object) -> None:
        """Emit a stage-start runtime event."""

        self._emit("DEBUG", "start", stage, **context)

    def log_stage_complete(self, stage: str, **context: object) -> None:
        """Emit a stage-complete runtime event."""

        self._emit("DEBUG", "complete", stage, **context)

    def log_stage_warning(self, stage: str, error_type: str, **context: object) -> None:
        """Emit a recoverable stage problem."""

        self._emit("WARNING", "recovered", stage, error_type=error_type, **context)

    def log_stage_failure(self, stage: str, error_type: str) -> None:
        """Emit a stage-failure runtime event without sensitive payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type)
