"""Catalog records for locales and provider voices.

Responsibilities:
- Represent immutable locale/voice records persisted by the catalog store.
- Parse and validate raw JSON payloads into records, dropping malformed entries.
- Define the read-only extended voice projection and voice filter criteria.

Key types:
- `LocaleRecord`, `VoiceRecord`, `VoiceGender`, `PricingTier`, `VoiceType`,
  `ExtendedVoiceInfo`, `VoiceFilter`, and `VoiceChanges`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ..parsing import normalize_optional_string


_MIN_SAMPLE_RATE_HERTZ = 5512
_MAX_SAMPLE_RATE_HERTZ = 768000


class VoiceGender(str, Enum):
    """SSML gender reported by the provider for a voice."""

    FEMALE = "FEMALE"
    MALE = "MALE"
    UNSPECIFIED = "SSML_VOICE_GENDER_UNSPECIFIED"

    @classmethod
    def parse(cls, value: object) -> VoiceGender:
        """Parse a provider gender token; `NEUTRAL` and unknown values become unspecified."""

        token = normalize_optional_string(value)
        if token is None:
            return cls.UNSPECIFIED
        token = token.upper()
        if token == cls.FEMALE.value:
            return cls.FEMALE
        if token == cls.MALE.value:
            return cls.MALE
        return cls.UNSPECIFIED


class PricingTier(str, Enum):
    """Provider pricing bucket derived from a voice name.

    Values match the capitalization used in provider voice names (`Wavenet`, not `WaveNet`).
    """

    UNKNOWN = "Unknown"
    STANDARD = "Standard"
    WAVENET = "Wavenet"
    NEURAL2 = "Neural2"
    POLYGLOT = "Polyglot"
    JOURNEY = "Journey"
    STUDIO = "Studio"


class VoiceType(str, Enum):
    """Synthesizer technology tag derived from a voice name."""

    UNKNOWN = "Unknown"
    CASUAL = "Casual"
    JOURNEY = "Journey"
    NEURAL2 = "Neural2"
    NEWS = "News"
    POLYGLOT = "Polyglot"
    STANDARD = "Standard"
    STUDIO = "Studio"
    WAVENET = "Wavenet"


@dataclass(frozen=True, slots=True)
class LocaleRecord:
    """A language, optionally with a region.

    Attributes:
        id: BCP-47 tag with at most two segments, such as `en` or `en-US`.
        description: English description, such as `English (United States)`.
    """

    id: str
    description: str

    @classmethod
    def from_payload(cls, payload: object) -> LocaleRecord | None:
        """Parse a persisted locale entry, accepting `desc` or `name` for the description."""

        if not isinstance(payload, Mapping):
            return None
        locale_id = normalize_optional_string(payload.get("id"))
        description = normalize_optional_string(payload.get("desc", payload.get("name")))
        if locale_id is None or description is None:
            return None
        if len(locale_id.split("-")) > 2:
            return None
        return cls(id=locale_id, description=description)

    def to_payload(self) -> dict[str, str]:
        """Serialize the locale for the catalog file."""

        return {"id": self.id, "desc": self.description}


@dataclass(frozen=True, slots=True)
class VoiceRecord:
    """A synthesis voice offered by the provider.

    Attributes:
        name: Unique provider voice name, such as `en-US-Wavenet-C`.
        language_codes: BCP-47 tags supported by the voice; never empty.
        gender: SSML gender of the voice.
        natural_sample_rate_hertz: Preferred sample rate, typically 24000.
    """

    name: str
    language_codes: tuple[str, ...]
    gender: VoiceGender = VoiceGender.UNSPECIFIED
    natural_sample_rate_hertz: int = 24000

    @classmethod
    def from_payload(cls, payload: object) -> VoiceRecord | None:
        """Parse a provider or persisted voice entry, returning `None` when invalid."""

        if not isinstance(payload, Mapping):
            return None
        name = normalize_optional_string(payload.get("name"))
        if name is None:
            return None

        raw_codes = payload.get("languageCodes")
        if not isinstance(raw_codes, list | tuple):
            return None
        codes = tuple(
            code
            for code in (normalize_optional_string(item) for item in raw_codes)
            if code is not None
        )
        if not codes:
            return None

        raw_rate = payload.get("naturalSampleRateHertz")
        if isinstance(raw_rate, bool) or not isinstance(raw_rate, int | float):
            return None
        sample_rate = int(raw_rate)
        if not _MIN_SAMPLE_RATE_HERTZ < sample_rate < _MAX_SAMPLE_RATE_HERTZ:
            return None

        return cls(
            name=name,
            language_codes=codes,
            gender=VoiceGender.parse(payload.get("ssmlGender")),
            natural_sample_rate_hertz=sample_rate,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize the voice for the catalog file."""

        return {
            "languageCodes": list(self.language_codes),
            "name": self.name,
            "ssmlGender": self.gender.value,
            "naturalSampleRateHertz": self.natural_sample_rate_hertz,
        }

    def supports_language(self, prefix: str) -> bool:
        """Return whether any language code starts with `prefix`, ignoring case."""

        lowered = prefix.lower()
        return any(code.lower().startswith(lowered) for code in self.language_codes)


@dataclass(frozen=True, slots=True)
class ExtendedVoiceInfo:
    """Read-only join of a voice with its locale and classification; never persisted."""

    name: str
    gender: VoiceGender
    language_code: str
    language_name: str
    pricing_tier: PricingTier
    voice_type: VoiceType
    sample_rate: int

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""

        return {
            "name": self.name,
            "gender": self.gender.value,
            "languageCode": self.language_code,
            "languageName": self.language_name,
            "pricingTier": self.pricing_tier.value,
            "voiceType": self.voice_type.value,
            "sampleRate": self.sample_rate,
        }


@dataclass(frozen=True, slots=True)
class VoiceFilter:
    """Selection criteria for `CatalogStore.extended_voices`.

    Attributes:
        name: Exact voice name.
        language_code: Case-insensitive language-code prefix.
        gender: Exact SSML gender.
        pricing_tier: Exact derived pricing tier.
        voice_type: Exact derived voice type.
    """

    name: str | None = None
    language_code: str | None = None
    gender: VoiceGender | None = None
    pricing_tier: PricingTier | None = None
    voice_type: VoiceType | None = None


@dataclass(frozen=True, slots=True)
class VoiceChanges:
    """Voice names added and removed by a catalog replacement."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
