"""Configuration model and loaders for gcptts.

Responsibilities:
- Define plugin runtime configuration as a typed dataclass.
- Provide loader entry points for YAML- and environment-based configuration.
- Reject unknown keys and out-of-range values with actionable messages.

Key types:
- `PluginConfig`: normalized settings for one plugin context.
- `ConfigLoader`: static construction helpers for `PluginConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tempfile
from typing import Any, Mapping

import yaml

from .catalog.models import PricingTier
from .catalog.refresh import UpdateCheckFrequency
from .catalog.store import DEFAULT_WRITE_DELAY_SECONDS, DEFAULT_WRITE_RETRY_SECONDS
from .parsing import normalize_optional_string, parse_optional_number


_SUPPORTED_API_VERSIONS = frozenset({"v1", "v1beta1"})
_SUPPORTED_LOG_LEVELS = frozenset({"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR"})


def default_data_dir() -> Path:
    """Return the default catalog directory."""

    return Path.home() / ".gcptts"


def default_audio_dir() -> Path:
    """Return the default directory for temporary audio files."""

    return Path(tempfile.gettempdir()) / "gcptts"


@dataclass(slots=True)
class PluginConfig:
    """Runtime configuration for one plugin context.

    Attributes:
        data_dir: Directory holding the persisted voice catalog.
        audio_dir: Directory for temporary synthesized audio files.
        api_version: Default provider API version, `v1` or `v1beta1`.
        api_key: Optional API key; keyring storage is consulted when absent.
        voice_update_check_interval: How often the voice list refreshes in the background.
        write_delay_seconds: Maximum delay before a catalog mutation reaches disk.
        write_retry_seconds: Delay before retrying a failed catalog write.
        fallback_duration_seconds: Duration assumed when audio cannot be measured.
        request_timeout_seconds: HTTP timeout for provider requests.
        log_level: Minimum loguru level for the CLI sink.
        pricing_overrides: Voice-name marker to pricing tier replacements.
    """

    data_dir: Path = field(default_factory=default_data_dir)
    audio_dir: Path = field(default_factory=default_audio_dir)
    api_version: str = "v1"
    api_key: str | None = None
    voice_update_check_interval: UpdateCheckFrequency = UpdateCheckFrequency.WEEKLY
    write_delay_seconds: float = DEFAULT_WRITE_DELAY_SECONDS
    write_retry_seconds: float = DEFAULT_WRITE_RETRY_SECONDS
    fallback_duration_seconds: float = 30.0
    request_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    pricing_overrides: dict[str, PricingTier] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate configuration values before a plugin context is started."""

        if self.api_version not in _SUPPORTED_API_VERSIONS:
            raise ValueError("`api_version` must be `v1` or `v1beta1`.")
        if self.log_level.upper() not in _SUPPORTED_LOG_LEVELS:
            allowed = ", ".join(sorted(_SUPPORTED_LOG_LEVELS))
            raise ValueError(f"`log_level` must be one of: {allowed}.")
        if self.write_delay_seconds < 0:
            raise ValueError("`write_delay_seconds` must not be negative.")
        if self.write_retry_seconds <= 0:
            raise ValueError("`write_retry_seconds` must be positive.")
        if self.fallback_duration_seconds <= 0:
            raise ValueError("`fallback_duration_seconds` must be positive.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("`request_timeout_seconds` must be positive.")


class ConfigLoader:
    """Factory methods for creating `PluginConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "data_dir",
            "audio_dir",
            "api_version",
            "api_key",
            "voice_update_check_interval",
            "write_delay_seconds",
            "write_retry_seconds",
            "fallback_duration_seconds",
            "request_timeout_seconds",
            "log_level",
            "pricing_overrides",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> PluginConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> PluginConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        defaults = PluginConfig()

        data_dir = ConfigLoader._optional_env_string(env_map, "GCPTTS_DATA_DIR")
        audio_dir = ConfigLoader._optional_env_string(env_map, "GCPTTS_AUDIO_DIR")
        api_version = ConfigLoader._optional_env_string(env_map, "GCPTTS_API_VERSION")
        interval = ConfigLoader._optional_env_string(
            env_map, "GCPTTS_VOICE_UPDATE_CHECK_INTERVAL"
        )
        write_delay = ConfigLoader._optional_env_number(env_map, "GCPTTS_WRITE_DELAY_SECONDS")
        timeout = ConfigLoader._optional_env_number(env_map, "GCPTTS_REQUEST_TIMEOUT_SECONDS")
        log_level = ConfigLoader._optional_env_string(env_map, "GCPTTS_LOG_LEVEL")

        config = PluginConfig(
            data_dir=Path(data_dir).expanduser() if data_dir else defaults.data_dir,
            audio_dir=Path(audio_dir).expanduser() if audio_dir else defaults.audio_dir,
            api_version=ConfigLoader._normalize_api_version(api_version or defaults.api_version),
            api_key=ConfigLoader._optional_env_string(env_map, "GOOGLE_TTS_API_KEY"),
            voice_update_check_interval=(
                UpdateCheckFrequency.parse(interval)
                if interval
                else defaults.voice_update_check_interval
            ),
            write_delay_seconds=(
                write_delay if write_delay is not None else defaults.write_delay_seconds
            ),
            request_timeout_seconds=(
                timeout if timeout is not None else defaults.request_timeout_seconds
            ),
            log_level=(log_level or defaults.log_level).upper(),
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text into a top-level mapping."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(payload: Mapping[str, Any], source_label: str) -> PluginConfig:
        """Build and validate config from a normalized mapping payload."""

        ConfigLoader._validate_yaml_keys(payload, source_label)
        defaults = PluginConfig()

        data_dir = ConfigLoader._optional_non_empty_string(payload, "data_dir")
        audio_dir = ConfigLoader._optional_non_empty_string(payload, "audio_dir")
        api_version = ConfigLoader._optional_non_empty_string(payload, "api_version")
        interval = ConfigLoader._optional_non_empty_string(payload, "voice_update_check_interval")
        log_level = ConfigLoader._optional_non_empty_string(payload, "log_level")

        try:
            frequency = (
                UpdateCheckFrequency.parse(interval)
                if interval
                else defaults.voice_update_check_interval
            )
        except ValueError as exc:
            raise ValueError(f"{source_label} field `voice_update_check_interval`: {exc}") from exc

        config = PluginConfig(
            data_dir=Path(data_dir).expanduser() if data_dir else defaults.data_dir,
            audio_dir=Path(audio_dir).expanduser() if audio_dir else defaults.audio_dir,
            api_version=ConfigLoader._normalize_api_version(api_version or defaults.api_version),
            api_key=ConfigLoader._optional_non_empty_string(payload, "api_key"),
            voice_update_check_interval=frequency,
            write_delay_seconds=ConfigLoader._optional_number(
                payload, "write_delay_seconds", source_label, defaults.write_delay_seconds
            ),
            write_retry_seconds=ConfigLoader._optional_number(
                payload, "write_retry_seconds", source_label, defaults.write_retry_seconds
            ),
            fallback_duration_seconds=ConfigLoader._optional_number(
                payload,
                "fallback_duration_seconds",
                source_label,
                defaults.fallback_duration_seconds,
            ),
            request_timeout_seconds=ConfigLoader._optional_number(
                payload, "request_timeout_seconds", source_label, defaults.request_timeout_seconds
            ),
            log_level=(log_level or defaults.log_level).upper(),
            pricing_overrides=ConfigLoader._optional_pricing_map(
                payload, "pricing_overrides", source_label
            ),
        )
        config.validate()
        return config

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Validate that only supported YAML keys are present."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(str(key) for key in unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _normalize_api_version(value: str) -> str:
        """Accept the `v1b1` shorthand used by stored effects."""

        lowered = value.strip().lower()
        return "v1beta1" if lowered == "v1b1" else lowered

    @staticmethod
    def _optional_non_empty_string(payload: Mapping[str, Any], key: str) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _optional_number(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        """Read and validate an optional finite number field."""

        if key not in payload:
            return default
        try:
            parsed = parse_optional_number(payload[key], key)
        except ValueError as exc:
            raise ValueError(f"{source_label} field {exc}") from exc
        return default if parsed is None else parsed

    @staticmethod
    def _optional_pricing_map(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> dict[str, PricingTier]:
        """Read an optional marker-to-pricing-tier mapping."""

        raw = payload.get(key)
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{source_label} field `{key}` must be a mapping/object.")

        normalized: dict[str, PricingTier] = {}
        for raw_marker, raw_tier in raw.items():
            marker = normalize_optional_string(raw_marker)
            tier_name = normalize_optional_string(raw_tier)
            if marker is None:
                raise ValueError(f"{source_label} field `{key}` contains a blank key.")
            try:
                normalized[marker] = PricingTier(tier_name)
            except ValueError as exc:
                allowed = ", ".join(tier.value for tier in PricingTier)
                raise ValueError(
                    f"{source_label} field `{key}` has unknown tier `{raw_tier}` for "
                    f"`{marker}`. Use one of: {allowed}."
                ) from exc
        return normalized

    @staticmethod
    def _optional_env_string(env: Mapping[str, str], key: str) -> str | None:
        """Read and normalize optional string environment variable values."""

        if key not in env:
            return None
        return normalize_optional_string(env.get(key))

    @staticmethod
    def _optional_env_number(env: Mapping[str, str], key: str) -> float | None:
        """Read an optional finite number from environment mapping."""

        try:
            return parse_optional_number(env.get(key), key)
        except ValueError as exc:
            raise ValueError(f"Environment variable `{key}` must be a number.") from exc
