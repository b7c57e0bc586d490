"""Domain exceptions for catalog, provider, and synthesis diagnostics.

Responsibilities:
- Separate validation failures (raised before any side effect) from runtime failures.
- Carry stage-scoped context for pipeline and CLI diagnostics.
"""

from __future__ import annotations


class GcpTtsError(Exception):
    """Base class for all gcptts errors."""


class ValidationError(GcpTtsError, ValueError):
    """Raised when request parameters are out of range or malformed."""


class UnknownVoiceError(ValidationError):
    """Raised when neither the requested voice nor its fallback is in the catalog."""

    def __init__(self, voice_name: str | None) -> None:
        """Initialize the error with the unresolved voice name."""

        super().__init__(
            f"Unknown voice requested ({voice_name or 'null'}), and the fallback voice "
            "was undefined or unknown."
        )
        self.voice_name = voice_name


class UnavailableError(GcpTtsError):
    """Raised internally when no connected credential is available."""


class ProviderError(GcpTtsError):
    """Raised when a provider request fails or returns unusable data."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_status: str | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_status = provider_status


class AudioFileError(GcpTtsError, OSError):
    """Raised when a temporary audio file cannot be written, read, or deleted."""


class DurationProbeError(GcpTtsError):
    """Raised when the playable duration of an audio file cannot be determined."""


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
