"""Synthesis request and outcome models.

Responsibilities:
- Describe one synthesis request as an immutable, validated value.
- Migrate legacy effect payload fields once, before a request is built.
- Build the provider request body, omitting parameters equal to provider defaults.

Key types:
- `AudioEncoding`, `EffectProfile`: provider enumerations.
- `SynthesisRequest`: one request to synthesize and play speech.
- `SynthesisOutcome`: result reported back to the host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any, Mapping

from ..errors import ValidationError
from ..host import OutputDevice
from ..parsing import normalize_optional_string, parse_optional_number, parse_permissive_boolean


EFFECT_SCHEMA_VERSION = 2
SCHEMA_VERSION_KEY = "schemaVersion"

PITCH_RANGE = (-20.0, 20.0)
SPEAKING_RATE_RANGE = (0.25, 4.0)
AMPLITUDE_RANGE = (-96.0, 16.0)
OUTPUT_VOLUME_RANGE = (1.0, 10.0)

DEFAULT_PITCH = 0.0
DEFAULT_SPEAKING_RATE = 1.0
DEFAULT_AMPLITUDE = 0.0
DEFAULT_OUTPUT_VOLUME = 5.0

# legacy key -> current key
_LEGACY_FIELDS: tuple[tuple[str, str], ...] = (
    ("effectPitch", "pitchAdjust"),
    ("effectRate", "speakingRate"),
    ("effectVolume", "amplitudeAdjust"),
    ("voice", "voiceName"),
)


class AudioEncoding(str, Enum):
    """Audio container/codec requested from the provider."""

    ALAW = "ALAW"
    LINEAR16 = "LINEAR16"
    MP3 = "MP3"
    MP3_64_KBPS = "MP3_64_KBPS"
    MULAW = "MULAW"
    OGG_OPUS = "OGG_OPUS"

    @property
    def file_extension(self) -> str:
        """Return the file extension used for temporary audio files."""

        return _FILE_EXTENSIONS[self]

    @property
    def requires_beta_api(self) -> bool:
        """Return whether the encoding is only offered by the v1beta1 API."""

        return self is AudioEncoding.MP3_64_KBPS

    @classmethod
    def parse(cls, value: object) -> AudioEncoding:
        """Parse an encoding token; unknown or missing values fall back to `OGG_OPUS`."""

        token = normalize_optional_string(value)
        if token is None:
            return cls.OGG_OPUS
        try:
            return cls(token.upper())
        except ValueError:
            return cls.OGG_OPUS


_FILE_EXTENSIONS = {
    AudioEncoding.ALAW: "wav",
    AudioEncoding.LINEAR16: "wav",
    AudioEncoding.MP3: "mp3",
    AudioEncoding.MP3_64_KBPS: "mp3",
    AudioEncoding.MULAW: "wav",
    AudioEncoding.OGG_OPUS: "ogg",
}


class EffectProfile(str, Enum):
    """Device simulation profiles applied by the provider after synthesis."""

    WEARABLE = "wearable-class-device"
    HANDSET = "handset-class-device"
    HEADPHONE = "headphone-class-device"
    SMALL_BLUETOOTH_SPEAKER = "small-bluetooth-speaker-class-device"
    MEDIUM_BLUETOOTH_SPEAKER = "medium-bluetooth-speaker-class-device"
    LARGE_HOME_ENTERTAINMENT = "large-home-entertainment-class-device"
    LARGE_AUTOMOTIVE = "large-automotive-class-device"
    TELEPHONY = "telephony-class-application"


def parse_effect_profiles(values: object) -> frozenset[EffectProfile]:
    """Parse effect profile identifiers, raising on unknown entries."""

    if values is None:
        return frozenset()
    if isinstance(values, str) or not isinstance(values, list | tuple | set | frozenset):
        raise ValidationError("`effectProfiles` must be a list of profile identifiers.")

    profiles: set[EffectProfile] = set()
    unknown: list[str] = []
    for value in values:
        try:
            profiles.add(EffectProfile(str(value)))
        except ValueError:
            unknown.append(str(value))
    if unknown:
        raise ValidationError(f"Unknown audio effect profile(s): {', '.join(sorted(unknown))}.")
    return frozenset(profiles)


def migrate_effect_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of a stored effect payload upgraded to the current schema.

    Legacy fields only fill current fields that are missing or `None`; legacy keys
    are removed afterwards. Already-current payloads are returned unchanged apart
    from the copy.
    """

    migrated = dict(payload)
    version = migrated.get(SCHEMA_VERSION_KEY)
    if isinstance(version, int) and not isinstance(version, bool) and version >= EFFECT_SCHEMA_VERSION:
        return migrated

    for legacy_key, current_key in _LEGACY_FIELDS:
        legacy_value = migrated.pop(legacy_key, None)
        if migrated.get(current_key) is None and legacy_value is not None:
            migrated[current_key] = legacy_value
    migrated[SCHEMA_VERSION_KEY] = EFFECT_SCHEMA_VERSION
    return migrated


def _require_range(value: float, bounds: tuple[float, float], message: str) -> None:
    """Raise `ValidationError` with `message` when `value` is outside `bounds`."""

    low, high = bounds
    if not math.isfinite(value) or not low <= value <= high:
        raise ValidationError(f"{message}; got {value:g}.")


@dataclass(frozen=True, slots=True)
class SynthesisRequest:
    """One request to synthesize text and play it back.

    Attributes:
        input_text: Plain text or SSML markup to synthesize.
        is_ssml: Whether `input_text` is SSML.
        voice_name: Requested provider voice name.
        language_code_override: Language code to send instead of the voice's locale.
        audio_encoding: Requested audio encoding.
        effect_profiles: Device profiles applied by the provider.
        pitch_adjust: Semitone pitch shift in [-20, 20].
        speaking_rate: Speed multiplier in [0.25, 4.0].
        amplitude_adjust: Volume gain in dB in [-96, 16].
        output_volume: Host playback volume in [1, 10].
        wait_for_playback: Whether the caller waits until the audio is removed.
        overlay_instance: Requested overlay instance name.
        output_device: Requested output device; `None` uses the host default.
        fallback_voice_name: Voice used when `voice_name` is unknown and `variable_voice` is set.
        variable_voice: Whether `voice_name` came from a template and may not resolve.
        api_version: Provider API version, `v1` or `v1beta1`.
    """

    input_text: str
    voice_name: str
    is_ssml: bool = False
    language_code_override: str | None = None
    audio_encoding: AudioEncoding = AudioEncoding.OGG_OPUS
    effect_profiles: frozenset[EffectProfile] = field(default_factory=frozenset)
    pitch_adjust: float = DEFAULT_PITCH
    speaking_rate: float = DEFAULT_SPEAKING_RATE
    amplitude_adjust: float = DEFAULT_AMPLITUDE
    output_volume: float = DEFAULT_OUTPUT_VOLUME
    wait_for_playback: bool = True
    overlay_instance: str | None = None
    output_device: OutputDevice | None = None
    fallback_voice_name: str | None = None
    variable_voice: bool = False
    api_version: str = "v1"

    def validate(self) -> None:
        """Raise `ValidationError` when any parameter is missing or out of range."""

        if not self.input_text:
            raise ValidationError("Input text is required; got empty text.")
        _require_range(
            self.pitch_adjust,
            PITCH_RANGE,
            "Pitch adjustment is outside the acceptable range of -20 to 20",
        )
        _require_range(
            self.speaking_rate,
            SPEAKING_RATE_RANGE,
            "Speaking rate is outside the acceptable range of 0.25 to 4",
        )
        _require_range(
            self.amplitude_adjust,
            AMPLITUDE_RANGE,
            "Amplitude adjustment is outside the acceptable range of -96 to 16",
        )
        _require_range(
            self.output_volume,
            OUTPUT_VOLUME_RANGE,
            "Output volume is outside the acceptable range of 1 to 10",
        )
        if self.audio_encoding.requires_beta_api and self.api_version != "v1beta1":
            raise ValidationError(
                "MP3 64 kbps encoding is not available outside of the v1beta1 API."
            )

    def synthesis_input(self) -> dict[str, str]:
        """Return the provider `input` body."""

        return {"ssml": self.input_text} if self.is_ssml else {"text": self.input_text}

    def voice_selection(self, voice_name: str, default_language_code: str | None) -> dict[str, str]:
        """Return the provider `voice` body for the resolved voice."""

        language_code = self.language_code_override or default_language_code or ""
        return {"languageCode": language_code, "name": voice_name}

    def audio_config(self) -> dict[str, Any]:
        """Return the provider `audioConfig` body without provider-default values."""

        config: dict[str, Any] = {"audioEncoding": self.audio_encoding.value}
        if self.effect_profiles:
            config["effectsProfileId"] = sorted(profile.value for profile in self.effect_profiles)
        if self.pitch_adjust != DEFAULT_PITCH:
            config["pitch"] = self.pitch_adjust
        if self.speaking_rate != DEFAULT_SPEAKING_RATE:
            config["speakingRate"] = self.speaking_rate
        if self.amplitude_adjust != DEFAULT_AMPLITUDE:
            config["volumeGainDb"] = self.amplitude_adjust
        return config

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SynthesisRequest:
        """Build a request from a (migrated) host effect payload.

        Raises:
            ValidationError: When a field cannot be parsed.
        """

        try:
            pitch = parse_optional_number(payload.get("pitchAdjust"), "pitchAdjust")
            rate = parse_optional_number(payload.get("speakingRate"), "speakingRate")
            amplitude = parse_optional_number(payload.get("amplitudeAdjust"), "amplitudeAdjust")
            volume = parse_optional_number(payload.get("outputVolume"), "outputVolume")
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        api_version = normalize_optional_string(payload.get("apiVersion")) or "v1"
        wait = parse_permissive_boolean(payload.get("waitForPlayback"))

        return cls(
            input_text=str(payload.get("text") or ""),
            voice_name=normalize_optional_string(payload.get("voiceName")) or "",
            is_ssml=parse_permissive_boolean(payload.get("ssml")) is True,
            language_code_override=normalize_optional_string(payload.get("language")),
            audio_encoding=AudioEncoding.parse(payload.get("audioFormat")),
            effect_profiles=parse_effect_profiles(payload.get("effectProfiles")),
            pitch_adjust=DEFAULT_PITCH if pitch is None else pitch,
            speaking_rate=DEFAULT_SPEAKING_RATE if rate is None else rate,
            amplitude_adjust=DEFAULT_AMPLITUDE if amplitude is None else amplitude,
            output_volume=DEFAULT_OUTPUT_VOLUME if volume is None else volume,
            wait_for_playback=wait is not False,
            overlay_instance=normalize_optional_string(payload.get("overlayInstance")),
            output_device=OutputDevice.from_payload(payload.get("audioOutputDevice")),
            fallback_voice_name=normalize_optional_string(payload.get("fallbackVoiceName")),
            variable_voice=parse_permissive_boolean(payload.get("variableVoice")) is True,
            api_version="v1beta1" if api_version.lower() in {"v1b1", "v1beta1"} else "v1",
        )


@dataclass(frozen=True, slots=True)
class SynthesisOutcome:
    """Result of one synthesis run as reported to the host.

    `success` becomes true once playback has been dispatched; completion of
    playback and deletion of the temporary file are not required.
    """

    success: bool
    billed_units: int = 0
    pricing_bucket: str | None = None
    voice_name: str | None = None
    voice_type: str | None = None
    audio_file_path: str | None = None
    failed_stage: str | None = None
    error_detail: str | None = None

    def usage_payload(self) -> dict[str, Any]:
        """Return the host-facing `ttsUsage` output."""

        return {
            "billedUnits": self.billed_units,
            "pricingBucket": self.pricing_bucket,
            "voiceName": self.voice_name,
            "voiceType": self.voice_type,
        }
