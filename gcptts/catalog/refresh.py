"""Voice catalog refresh from the provider.

Responsibilities:
- Decide when a background voice refresh is due.
- Fetch the provider voice list and apply it to the catalog store.
- Report added/removed voice names for host outputs.

Key types:
- `UpdateCheckFrequency`: how often background refreshes run.
- `RefreshOutcome`: result of one refresh.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Protocol

from loguru import logger

from .models import VoiceRecord
from .store import CatalogStore


_log = logger.bind(component="refresh")


class UpdateCheckFrequency(str, Enum):
    """How often background update checks run."""

    NEVER = "Never"
    ON_START = "OnStart"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"

    @classmethod
    def parse(cls, value: object) -> UpdateCheckFrequency:
        """Parse a frequency token case-insensitively.

        Raises:
            ValueError: If the token is not a known frequency.
        """

        token = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == token:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unsupported update check frequency `{value}`. Use one of: {allowed}.")


_INTERVALS = {
    UpdateCheckFrequency.DAILY: timedelta(days=1),
    UpdateCheckFrequency.WEEKLY: timedelta(days=7),
    UpdateCheckFrequency.MONTHLY: timedelta(days=30),
}


class VoiceSource(Protocol):
    """Provider operation used to fetch voices."""

    def list_voices(self, language_code: str | None = None) -> list[VoiceRecord]:
        """Return provider voices, optionally limited to a language."""


@dataclass(frozen=True, slots=True)
class RefreshOutcome:
    """Result of one voice catalog refresh.

    `success` is true whenever the provider call completed; an empty voice list
    is reported through `error_message` without touching the catalog.
    """

    success: bool
    error_message: str | None = None
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        """Return the host-facing output payload."""

        return {
            "errorMessage": self.error_message,
            "voices": {"added": list(self.added), "removed": list(self.removed)},
        }


def _utc_now() -> datetime:
    """Return the current UTC time."""

    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_refresh_due(
    last_check: datetime | None,
    frequency: UpdateCheckFrequency,
    now: datetime,
    *,
    on_start: bool = False,
) -> bool:
    """Return whether a background refresh should run now."""

    if frequency is UpdateCheckFrequency.NEVER:
        return False
    if frequency is UpdateCheckFrequency.ON_START:
        return on_start
    if last_check is None:
        return True
    return _as_utc(now) - _as_utc(last_check) >= _INTERVALS[frequency]


def _refresh_scope(lang_code: str | None) -> str | None:
    """Return the language filter for a refresh, or `None` for every language."""

    if lang_code is None or not lang_code.strip() or lang_code.strip() == "all":
        return None
    return lang_code.strip()


def apply_voice_list(
    store: CatalogStore,
    voices: list[VoiceRecord],
    scope: str | None,
    *,
    clock: Callable[[], datetime] = _utc_now,
) -> RefreshOutcome:
    """Replace the catalog scope with fetched voices and report the changes."""

    scope_label = f"for language code {scope}" if scope else "for all languages"
    if not voices:
        _log.warning("Received no voices {}", scope_label)
        return RefreshOutcome(
            success=True,
            error_message=(
                "No voices were received: invalid language code, or the API key is unavailable."
            ),
        )

    changes = store.replace_voices(voices, scope)
    store.last_voice_check = clock()
    _log.info(
        "Got {} voices {}: {} new, {} removed",
        len(voices),
        scope_label,
        len(changes.added),
        len(changes.removed),
    )
    return RefreshOutcome(success=True, added=changes.added, removed=changes.removed)


def refresh_voices(
    store: CatalogStore,
    source: VoiceSource,
    lang_code: str | None = None,
    *,
    clock: Callable[[], datetime] = _utc_now,
) -> RefreshOutcome:
    """Fetch voices from the provider and replace the matching catalog scope.

    `lang_code` of `None`, blank, or `"all"` refreshes every language.
    """

    scope = _refresh_scope(lang_code)
    return apply_voice_list(store, source.list_voices(scope), scope, clock=clock)


async def refresh_voices_async(
    store: CatalogStore,
    source: VoiceSource,
    lang_code: str | None = None,
    *,
    clock: Callable[[], datetime] = _utc_now,
) -> RefreshOutcome:
    """Fetch voices off the event loop, then apply them on the loop thread."""

    scope = _refresh_scope(lang_code)
    voices = await asyncio.to_thread(source.list_voices, scope)
    return apply_voice_list(store, voices, scope, clock=clock)
