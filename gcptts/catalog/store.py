"""Persisted voice and locale catalog.

Responsibilities:
- Own the in-memory catalog snapshot and hide its JSON persistence.
- Debounce disk writes behind a single-deadline scheduler.
- Resolve voice metadata (locale, pricing tier, voice type) for synthesis callers.

Key types:
- `CatalogStore`: sole authority for locale and voice records.
"""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
from typing import Any, Iterable, Mapping

from loguru import logger

from . import classification
from .defaults import default_locales, default_voices
from .models import (
    ExtendedVoiceInfo,
    LocaleRecord,
    PricingTier,
    VoiceChanges,
    VoiceFilter,
    VoiceRecord,
    VoiceType,
)
from .scheduler import DebouncedWriter


CATALOG_FILE_NAME = "gttsdata.json"
DEFAULT_WRITE_DELAY_SECONDS = 10.0
DEFAULT_WRITE_RETRY_SECONDS = 30.0

_log = logger.bind(component="catalog")


def _is_all_languages(lang_prefix: str | None) -> bool:
    """Return whether a language filter selects every record."""

    return lang_prefix is None or not lang_prefix.strip() or lang_prefix.strip() == "all"


def _parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp from the catalog file, tolerating garbage."""

    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


class CatalogStore:
    """Repository of provider locales and voices persisted to one JSON file.

    Reads always reflect the latest mutation; the file lags behind memory by at
    most the write delay requested by the most urgent pending mutation.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        write_delay_seconds: float = DEFAULT_WRITE_DELAY_SECONDS,
        write_retry_seconds: float = DEFAULT_WRITE_RETRY_SECONDS,
        pricing_overrides: Mapping[str, PricingTier] | None = None,
    ) -> None:
        """Initialize an empty store; call `load()` to populate it."""

        self.data_dir = data_dir
        self.file_path = data_dir / CATALOG_FILE_NAME
        self.write_delay_seconds = write_delay_seconds
        self.write_retry_seconds = write_retry_seconds
        self.pricing_overrides = dict(pricing_overrides or {})
        self._locales: list[LocaleRecord] = []
        self._voices: list[VoiceRecord] = []
        self._last_plugin_check: datetime | None = None
        self._last_voice_check: datetime | None = None
        self._writer = DebouncedWriter(self._write_file)
        self.write_count = 0

    def load(self) -> None:
        """Load the catalog file, seeding missing sections from bundled defaults.

        Never raises. A missing or unreadable file leaves the bundled defaults in
        place and schedules an initial write.
        """

        self._locales = default_locales()
        self._voices = default_voices()
        self._last_plugin_check = None
        self._last_voice_check = None

        payload = self._read_file()
        if payload is None:
            self.schedule_write(self.write_delay_seconds)
            return

        last_checks = payload.get("lastChecks")
        if isinstance(last_checks, Mapping):
            self._last_plugin_check = _parse_timestamp(last_checks.get("plugin"))
            self._last_voice_check = _parse_timestamp(last_checks.get("voices"))

        raw_locales = payload.get("locales")
        if isinstance(raw_locales, list) and raw_locales:
            locales = [
                record
                for record in (LocaleRecord.from_payload(item) for item in raw_locales)
                if record is not None
            ]
            if locales:
                self._locales = sorted(locales, key=lambda record: record.id)

        raw_voices = payload.get("voices")
        if isinstance(raw_voices, list) and raw_voices:
            voices = [
                record
                for record in (VoiceRecord.from_payload(item) for item in raw_voices)
                if record is not None
            ]
            if voices:
                self._voices = sorted(voices, key=lambda record: record.name)

        _log.debug("Loaded catalog from {}", self.file_path)

    @property
    def locales(self) -> list[LocaleRecord]:
        """Return the current locales sorted by id."""

        return list(self._locales)

    @property
    def voices(self) -> list[VoiceRecord]:
        """Return the current voices sorted by name."""

        return list(self._voices)

    @property
    def last_plugin_check(self) -> datetime | None:
        """Return when plugin updates were last checked."""

        return self._last_plugin_check

    @last_plugin_check.setter
    def last_plugin_check(self, value: datetime | None) -> None:
        """Record a plugin update check and schedule a write."""

        if value == self._last_plugin_check:
            return
        self._last_plugin_check = value
        self.schedule_write(self.write_delay_seconds)

    @property
    def last_voice_check(self) -> datetime | None:
        """Return when the voice list was last refreshed from the provider."""

        return self._last_voice_check

    @last_voice_check.setter
    def last_voice_check(self, value: datetime | None) -> None:
        """Record a voice list refresh and schedule a write."""

        if value == self._last_voice_check:
            return
        self._last_voice_check = value
        self.schedule_write(self.write_delay_seconds)

    def locale_for(self, voice_name: str | None) -> LocaleRecord | None:
        """Return the most general locale whose id prefixes `voice_name`, ignoring case."""

        if not voice_name:
            return None
        lowered = voice_name.lower()
        matches = [locale for locale in self._locales if lowered.startswith(locale.id.lower())]
        if not matches:
            return None
        return min(matches, key=lambda locale: len(locale.id))

    def voice_for(self, name: str | None) -> VoiceRecord | None:
        """Return the voice with exactly this name."""

        if not name:
            return None
        for voice in self._voices:
            if voice.name == name:
                return voice
        return None

    def is_known_voice_name(self, name: str | None) -> bool:
        """Return whether `name` is a catalog voice; unexpanded `$` templates never are."""

        if not name or "$" in name:
            return False
        return self.voice_for(name) is not None

    def pricing_tier(self, voice_name: str | None) -> PricingTier:
        """Return the pricing tier of a voice, honoring configured overrides."""

        return classification.pricing_tier(voice_name, self.pricing_overrides)

    def voice_type(self, voice_name: str | None) -> VoiceType:
        """Return the voice type of a voice."""

        return classification.voice_type(voice_name)

    def extended_voices(self, voice_filter: VoiceFilter | None = None) -> list[ExtendedVoiceInfo]:
        """Join voices with their locale and classification.

        Voice-level filters run before the locale join; voices without a
        resolvable locale are excluded.
        """

        voices: Iterable[VoiceRecord] = self._voices
        if voice_filter is not None:
            if voice_filter.name:
                voices = [voice for voice in voices if voice.name == voice_filter.name]
            if voice_filter.language_code:
                prefix = voice_filter.language_code
                voices = [voice for voice in voices if voice.supports_language(prefix)]
            if voice_filter.gender is not None:
                voices = [voice for voice in voices if voice.gender == voice_filter.gender]

        results: list[ExtendedVoiceInfo] = []
        for voice in voices:
            locale = self.locale_for(voice.name)
            if locale is None:
                continue
            info = ExtendedVoiceInfo(
                name=voice.name,
                gender=voice.gender,
                language_code=locale.id,
                language_name=locale.description,
                pricing_tier=self.pricing_tier(voice.name),
                voice_type=self.voice_type(voice.name),
                sample_rate=voice.natural_sample_rate_hertz,
            )
            if voice_filter is not None:
                if (
                    voice_filter.pricing_tier is not None
                    and info.pricing_tier != voice_filter.pricing_tier
                ):
                    continue
                if voice_filter.voice_type is not None and info.voice_type != voice_filter.voice_type:
                    continue
            results.append(info)
        return results

    def replace_locales(
        self,
        new_locales: Iterable[LocaleRecord],
        lang_prefix: str | None = None,
    ) -> None:
        """Replace locales matching `lang_prefix` (all when absent or `"all"`)."""

        incoming = [
            locale
            for locale in new_locales
            if locale.id.strip() and locale.description.strip()
        ]
        if _is_all_languages(lang_prefix):
            kept: list[LocaleRecord] = []
        else:
            prefix = str(lang_prefix).strip().lower()
            kept = [locale for locale in self._locales if not locale.id.lower().startswith(prefix)]

        merged = {locale.id: locale for locale in kept}
        for locale in incoming:
            merged[locale.id] = locale
        self._locales = sorted(merged.values(), key=lambda record: record.id)
        self.schedule_write(self.write_delay_seconds)

    def replace_voices(
        self,
        new_voices: Iterable[VoiceRecord],
        lang_prefix: str | None = None,
    ) -> VoiceChanges:
        """Replace voices within the `lang_prefix` scope and report what changed.

        The diff is computed before mutating: `added` lists incoming voices that
        were not in scope, `removed` lists in-scope voices missing from the
        incoming set. Voices outside the scope are untouched.
        """

        incoming = list(new_voices)
        if _is_all_languages(lang_prefix):
            in_scope = list(self._voices)
            out_of_scope: list[VoiceRecord] = []
        else:
            prefix = str(lang_prefix).strip()
            in_scope = [voice for voice in self._voices if voice.supports_language(prefix)]
            out_of_scope = [voice for voice in self._voices if not voice.supports_language(prefix)]

        in_scope_names = {voice.name for voice in in_scope}
        incoming_names = {voice.name for voice in incoming}
        added = sorted(incoming_names - in_scope_names)
        removed = sorted(in_scope_names - incoming_names)

        merged = {voice.name: voice for voice in out_of_scope}
        for voice in incoming:
            merged[voice.name] = voice
        self._voices = sorted(merged.values(), key=lambda record: record.name)
        self.schedule_write(self.write_delay_seconds)
        return VoiceChanges(added=added, removed=removed)

    def schedule_write(self, max_delay: float) -> None:
        """Request a debounced write no later than `max_delay` seconds from now."""

        self._writer.schedule(max_delay)

    def flush(self) -> bool:
        """Write the catalog to disk immediately, cancelling any pending write."""

        self._writer.cancel()
        return self._write_file()

    def close(self) -> None:
        """Flush a pending write, if any, before disposal."""

        if self._writer.pending is not None:
            self.flush()

    def to_payload(self) -> dict[str, Any]:
        """Serialize the in-memory snapshot in catalog file format."""

        payload: dict[str, Any] = {
            "locales": [locale.to_payload() for locale in self._locales],
            "voices": [voice.to_payload() for voice in self._voices],
        }
        last_checks: dict[str, str] = {}
        if self._last_plugin_check is not None:
            last_checks["plugin"] = self._last_plugin_check.isoformat()
        if self._last_voice_check is not None:
            last_checks["voices"] = self._last_voice_check.isoformat()
        if last_checks:
            payload["lastChecks"] = last_checks
        return payload

    def _read_file(self) -> Mapping[str, Any] | None:
        """Read and parse the catalog file, logging and returning `None` on failure."""

        if not self.file_path.exists():
            return None
        try:
            raw_text = self.file_path.read_text(encoding="utf-8")
        except OSError as exc:
            _log.error("Failed to read catalog from {}: {}", self.file_path, exc)
            return None
        if not raw_text.strip():
            _log.error("Catalog file {} is empty", self.file_path)
            return None
        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            _log.error("Failed to parse catalog from {}: {}", self.file_path, exc)
            return None
        if not isinstance(payload, Mapping):
            _log.warning("Catalog file {} does not contain a JSON object", self.file_path)
            return None
        return payload

    def _write_file(self) -> bool:
        """Persist the snapshot.

        On failure the error is logged; inside a running loop the write is retried
        after the backoff delay.
        """

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.file_path.write_text(
                json.dumps(self.to_payload(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            if self._writer.defer(self.write_retry_seconds):
                _log.error(
                    "Failed to persist catalog to {}, will try again in {} seconds: {}",
                    self.file_path,
                    self.write_retry_seconds,
                    exc,
                )
            else:
                # Without a running loop the next mutation writes again.
                _log.error("Failed to persist catalog to {}: {}", self.file_path, exc)
            return False
        self.write_count += 1
        _log.debug("Wrote catalog file {}", self.file_path)
        return True
