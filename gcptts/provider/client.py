"""Google Cloud Text-to-Speech HTTP client.

Responsibilities:
- Validate synthesis parameters before any network call.
- Send one `text:synthesize` or `voices` request to the REST API per call.
- Map transport and HTTP failures to classified `ProviderError` diagnostics that
  are logged; callers see `None`/empty results. Only invalid parameters raise.

Key types:
- `TextToSpeechClient`: requests-based client for the v1 and v1beta1 endpoints.
"""

from __future__ import annotations

import json
import math
import re
import socket
from typing import Any, Mapping

from loguru import logger
import requests

from .. import __version__
from ..catalog.models import VoiceRecord
from ..errors import ProviderError, UnavailableError, ValidationError
from ..host import CredentialProvider


DEFAULT_BASE_URL = "https://texttospeech.googleapis.com"
DEFAULT_USER_AGENT = f"gcptts/{__version__}"

PITCH_RANGE = (-20.0, 20.0)
SPEAKING_RATE_RANGE = (0.25, 4.0)
VOLUME_GAIN_DB_RANGE = (-96.0, 16.0)

_API_VERSION_ALIASES = {
    "v1": "v1",
    "v1b1": "v1beta1",
    "v1beta1": "v1beta1",
}

_log = logger.bind(component="provider")


def normalize_api_version(value: str | None) -> str:
    """Map an API version token (`v1`, `v1b1`, `v1beta1`) to its URL path segment."""

    if value is None:
        return "v1"
    normalized = _API_VERSION_ALIASES.get(value.strip().lower())
    if normalized is None:
        raise ValidationError(
            f"Unsupported API version `{value}`. Use `v1` or `v1beta1`."
        )
    return normalized


def _check_range(
    audio_config: Mapping[str, Any],
    key: str,
    label: str,
    bounds: tuple[float, float],
) -> None:
    """Raise when an optional audio config number falls outside `bounds`."""

    value = audio_config.get(key)
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValidationError(f"{label} parameter must be a number; got {value!r}.")
    low, high = bounds
    if not math.isfinite(value) or not low <= value <= high:
        raise ValidationError(
            f"{label} parameter is out of range; got {value}, but must be between "
            f"{low:g} and {high:g}."
        )


def validate_synthesis_parameters(
    synthesis_input: Mapping[str, Any] | None,
    voice: Mapping[str, Any] | None,
    audio_config: Mapping[str, Any] | None,
) -> None:
    """Validate a synthesis request body, raising `ValidationError` on the first problem.

    A voice name that does not start with the requested language code is logged as
    a warning only; the provider decides whether that combination is usable.
    """

    if not synthesis_input:
        raise ValidationError("`input` parameter is required but missing.")
    has_text = "text" in synthesis_input and synthesis_input["text"] is not None
    has_ssml = "ssml" in synthesis_input and synthesis_input["ssml"] is not None
    if has_text and has_ssml:
        raise ValidationError("`input` ssml and text parameters are mutually exclusive.")
    if not has_text and not has_ssml:
        raise ValidationError("`input` parameter lacks input data.")
    if has_ssml and not str(synthesis_input["ssml"]):
        raise ValidationError("`input` ssml parameter is empty.")
    if has_text and not str(synthesis_input["text"]):
        raise ValidationError("`input` text parameter is empty.")

    if not voice:
        raise ValidationError("`voice` parameter is required but missing.")
    name = voice.get("name") or ""
    language_code = voice.get("languageCode") or ""
    if not name and not language_code:
        raise ValidationError(
            "`voice` parameter lacks both name and languageCode, at least one of which "
            "is required."
        )
    if name and language_code and not str(name).lower().startswith(str(language_code).lower()):
        _log.warning(
            "Voice {} doesn't include explicit support for the language code {}. "
            "This synthesis request will likely fail.",
            name,
            language_code,
        )

    if not audio_config:
        raise ValidationError("`audioConfig` parameter is required but missing.")
    _check_range(audio_config, "pitch", "pitch", PITCH_RANGE)
    _check_range(audio_config, "speakingRate", "speaking rate", SPEAKING_RATE_RANGE)
    _check_range(audio_config, "volumeGainDb", "volume gain", VOLUME_GAIN_DB_RANGE)


class TextToSpeechClient:
    """Minimal requests-based client for the Cloud Text-to-Speech REST API.

    The client holds no per-request state: no retries, no caching. Each call
    reads the connected credential at call time.
    """

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        credentials: CredentialProvider,
        *,
        api_version: str = "v1",
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        referrer: str | None = None,
    ) -> None:
        """Initialize client settings; `api_version` accepts `v1`, `v1b1`, or `v1beta1`."""

        self.credentials = credentials
        self.api_version = normalize_api_version(api_version)
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.referrer = referrer

    def synthesize(
        self,
        synthesis_input: Mapping[str, Any],
        voice: Mapping[str, Any],
        audio_config: Mapping[str, Any],
        *,
        api_version: str | None = None,
    ) -> str | None:
        """Return base64 audio content for one synthesis request, or `None`.

        Raises:
            ValidationError: When the request parameters are malformed or out of range.
        """

        validate_synthesis_parameters(synthesis_input, voice, audio_config)
        version = normalize_api_version(api_version) if api_version else self.api_version

        api_key = self._connected_key("synthesize speech")
        if api_key is None:
            return None

        headers = self._headers()
        if self.referrer:
            headers["Referer"] = self.referrer
        try:
            response = self._execute(
                "post",
                f"{self.base_url}/{version}/text:synthesize",
                api_key=api_key,
                headers=headers,
                body={
                    "input": dict(synthesis_input),
                    "voice": dict(voice),
                    "audioConfig": dict(audio_config),
                },
            )
            payload = self._decode_json(response)
        except ProviderError as exc:
            self._log_provider_error("Failed to synthesize speech", exc)
            return None

        audio_content = payload.get("audioContent")
        if not isinstance(audio_content, str) or not audio_content:
            _log.warning("Synthesis response did not include audio content")
            return None
        return audio_content

    def list_voices(
        self,
        language_code: str | None = None,
        *,
        api_version: str | None = None,
    ) -> list[VoiceRecord]:
        """Return provider voices, optionally filtered by a language code of 2+ characters."""

        version = normalize_api_version(api_version) if api_version else self.api_version
        api_key = self._connected_key("list voices")
        if api_key is None:
            return []

        params: dict[str, str] = {}
        if language_code and len(language_code.strip()) >= 2:
            params["languageCode"] = language_code.strip()
        try:
            response = self._execute(
                "get",
                f"{self.base_url}/{version}/voices",
                api_key=api_key,
                headers=self._headers(),
                params=params,
            )
            payload = self._decode_json(response)
        except ProviderError as exc:
            self._log_provider_error("Failed to list voices", exc)
            return []

        raw_voices = payload.get("voices")
        if not isinstance(raw_voices, list):
            _log.warning("Voice list response did not include a voices array")
            return []
        voices = [
            record
            for record in (VoiceRecord.from_payload(item) for item in raw_voices)
            if record is not None
        ]
        dropped = len(raw_voices) - len(voices)
        if dropped:
            _log.debug("Dropped {} malformed voice entries from provider response", dropped)
        return voices

    def _connected_key(self, action: str) -> str | None:
        """Return the connected credential, logging an availability warning when absent."""

        try:
            api_key = self.credentials.connected_credential()
        except Exception as exc:
            # The credential provider is a host service; treat its failure as disconnected.
            _log.error("Credential lookup failed, unable to {}: {}", action, type(exc).__name__)
            return None
        if api_key:
            return api_key
        _log.warning("{}", UnavailableError(f"No connected API key, unable to {action}"))
        return None

    def _headers(self) -> dict[str, str]:
        """Build request headers shared by every endpoint."""

        return {"User-Agent": self.user_agent}

    def _execute(
        self,
        method: str,
        url: str,
        *,
        api_key: str,
        headers: dict[str, str],
        body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> requests.Response:
        """Execute one HTTP request and map failures to `ProviderError`."""

        query = {"key": api_key, **(params or {})}
        try:
            if method == "post":
                response = requests.post(
                    url,
                    params=query,
                    headers=headers,
                    json=body,
                    timeout=self.timeout_seconds,
                )
            else:
                response = requests.get(
                    url,
                    params=query,
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Text-to-Speech request timed out."
            else:
                detail = (
                    "Text-to-Speech request transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise ProviderError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise ProviderError(
                "Text-to-Speech request timed out.",
                failure_kind="timeout",
            ) from exc
        return response

    @staticmethod
    def _decode_json(response: requests.Response) -> Mapping[str, Any]:
        """Decode a JSON object body from a successful response."""

        try:
            payload = json.loads(bytes(response.content).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProviderError(
                "Text-to-Speech returned invalid JSON payload.",
                failure_kind="invalid_response",
            ) from exc
        if not isinstance(payload, Mapping):
            raise ProviderError(
                "Text-to-Speech returned a non-object JSON payload.",
                failure_kind="invalid_response",
            )
        return payload

    @staticmethod
    def _log_provider_error(prefix: str, exc: ProviderError) -> None:
        """Log a classified provider failure without secrets."""

        _log.error("{} ({}): {}", prefix, exc.failure_kind, exc)

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        return bytes(response.content or b"").decode("utf-8", errors="replace").strip()

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API keys from URLs and provider error content."""

        redacted = re.sub(r"(?i)([?&]key=)[^&\s]+", r"\1[redacted-key]", text)
        redacted = re.sub(r"\bAIza[0-9A-Za-z_-]{20,}\b", "[redacted-key]", redacted)
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider message and the optional `error.status` token."""

        if not body:
            return "", None

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_status: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                status_value = error_payload.get("status")
                if isinstance(status_value, str) and status_value.strip():
                    provider_status = status_value.strip()
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()

        if message is None:
            message = body

        return cls._short_message(cls._redact_sensitive_tokens(message)), provider_status

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_status: str | None,
    ) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        normalized_status = provider_status.upper() if provider_status is not None else ""

        if status_code in {401, 403} and (
            "api key" in message_lower or normalized_status in {"UNAUTHENTICATED", "PERMISSION_DENIED"}
        ):
            return "invalid_api_key"
        if "api key not valid" in message_lower:
            return "invalid_api_key"
        if status_code == 429 or normalized_status == "RESOURCE_EXHAUSTED":
            return "quota_exceeded"
        if status_code == 400 or normalized_status == "INVALID_ARGUMENT":
            return "invalid_argument"
        if status_code in {408, 504} or normalized_status == "DEADLINE_EXCEEDED":
            return "timeout"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> ProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        body = cls._decode_error_body(exc)
        provider_message, provider_status = cls._extract_provider_message(body)
        failure_kind = cls._classify_http_failure(status_code, provider_message, provider_status)

        headline = {
            "invalid_api_key": "Text-to-Speech rejected the API key",
            "quota_exceeded": "Text-to-Speech quota is exhausted",
            "invalid_argument": "Text-to-Speech rejected the request arguments",
            "timeout": "Text-to-Speech request timed out",
        }.get(failure_kind, "Text-to-Speech request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return ProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_status=provider_status,
        )
