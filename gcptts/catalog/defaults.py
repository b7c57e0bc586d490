"""Bundled default locale and voice catalog used on first run."""

from __future__ import annotations

from importlib import resources
import json

from .models import LocaleRecord, VoiceRecord


_DEFAULTS_RESOURCE = "defaults.json"


def _load_bundled_payload() -> dict[str, object]:
    """Read the packaged defaults JSON payload."""

    raw = resources.files(__package__).joinpath("data", _DEFAULTS_RESOURCE).read_text(
        encoding="utf-8"
    )
    return json.loads(raw)


def default_locales() -> list[LocaleRecord]:
    """Return bundled locales sorted by id."""

    payload = _load_bundled_payload()
    records = (LocaleRecord.from_payload(item) for item in payload.get("locales", []))
    return sorted((record for record in records if record is not None), key=lambda r: r.id)


def default_voices() -> list[VoiceRecord]:
    """Return bundled voices sorted by name."""

    payload = _load_bundled_payload()
    records = (VoiceRecord.from_payload(item) for item in payload.get("voices", []))
    return sorted((record for record in records if record is not None), key=lambda r: r.name)
