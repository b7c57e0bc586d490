"""Synthesis execution pipeline.

Responsibilities:
- Resolve the effective voice and validate a request before any I/O.
- Run the synthesize, measure, play, and cleanup stages for one request.
- Convert provider, file, and dispatch failures into a failed `SynthesisOutcome`.

Key types:
- `SynthesisPipeline`: stateless per-invocation executor bound to host collaborators.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping
import uuid

from loguru import logger

from ..catalog import classification
from ..catalog.store import CatalogStore
from ..errors import (
    AudioFileError,
    PipelineStageError,
    ProviderError,
    UnknownVoiceError,
    ValidationError,
)
from ..host import DurationProber, OverlaySurface, PlaybackSurface, ResourceTokenIssuer
from ..provider.client import TextToSpeechClient, validate_synthesis_parameters
from ..telemetry.logger import RunLogger
from ..telemetry.usage import UsageTracker
from .playback import PlaybackRouter, RouteKind, build_playback_payload
from .request import SynthesisOutcome, SynthesisRequest, migrate_effect_payload


DEFAULT_FALLBACK_DURATION_SECONDS = 30.0
FIRE_AND_FORGET_GRACE_SECONDS = 1.0

_log = logger.bind(component="pipeline")

Sleeper = Callable[[float], Awaitable[Any]]


class SynthesisPipeline:
    """Turn synthesis requests into played, then removed, audio files.

    Invocations share no mutable state apart from the set of pending
    fire-and-forget deletions; temporary files are uuid-qualified.
    """

    def __init__(
        self,
        *,
        catalog: CatalogStore,
        client: TextToSpeechClient,
        prober: DurationProber,
        router: PlaybackRouter,
        playback: PlaybackSurface,
        audio_dir: Path,
        overlay: OverlaySurface | None = None,
        tokens: ResourceTokenIssuer | None = None,
        usage: UsageTracker | None = None,
        fallback_duration_seconds: float = DEFAULT_FALLBACK_DURATION_SECONDS,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Bind host collaborators used by every invocation."""

        self.catalog = catalog
        self.client = client
        self.prober = prober
        self.router = router
        self.playback = playback
        self.overlay = overlay
        self.tokens = tokens
        self.audio_dir = audio_dir
        self.usage = usage
        self.fallback_duration_seconds = fallback_duration_seconds
        self._sleep = sleep
        self._pending_cleanups: set[asyncio.Task[None]] = set()

    @property
    def pending_cleanups(self) -> frozenset[asyncio.Task[None]]:
        """Return fire-and-forget deletion tasks that have not finished yet."""

        return frozenset(self._pending_cleanups)

    async def wait_for_cleanups(self) -> None:
        """Wait for every scheduled fire-and-forget deletion to finish."""

        while self._pending_cleanups:
            await asyncio.gather(*list(self._pending_cleanups))

    def resolve_voice(self, request: SynthesisRequest) -> str:
        """Return the voice to synthesize with, applying the fallback voice when allowed.

        Raises:
            UnknownVoiceError: When neither the voice nor a usable fallback is known.
        """

        if request.voice_name and self.catalog.is_known_voice_name(request.voice_name):
            return request.voice_name
        fallback = request.fallback_voice_name
        if request.variable_voice and fallback and self.catalog.is_known_voice_name(fallback):
            _log.warning("Primary voice unavailable, falling back to {}", fallback)
            return fallback
        raise UnknownVoiceError(request.voice_name or None)

    async def trigger(self, payload: Mapping[str, Any]) -> SynthesisOutcome:
        """Run a raw host effect payload; never raises.

        Legacy fields are migrated first. Validation failures become a failed
        outcome with `failed_stage="validate"`; any other error becomes a failed
        outcome with `failed_stage="unknown"`.
        """

        try:
            request = SynthesisRequest.from_payload(migrate_effect_payload(payload))
            return await self.run(request)
        except ValidationError as exc:
            _log.error("Rejected synthesis request: {}", exc)
            return SynthesisOutcome(success=False, failed_stage="validate", error_detail=str(exc))
        except Exception as exc:
            _log.exception("Synthesis failed unexpectedly: {}", type(exc).__name__)
            return SynthesisOutcome(success=False, failed_stage="unknown", error_detail=str(exc))

    async def run(self, request: SynthesisRequest) -> SynthesisOutcome:
        """Synthesize, play, and schedule removal of the audio for one request.

        Raises:
            ValidationError: When parameters are invalid or the voice cannot be resolved.
                Nothing has been sent or written when this is raised.
        """

        request.validate()
        voice_name = self.resolve_voice(request)
        locale = self.catalog.locale_for(voice_name)
        synthesis_input = request.synthesis_input()
        voice = request.voice_selection(voice_name, locale.id if locale is not None else None)
        audio_config = request.audio_config()
        validate_synthesis_parameters(synthesis_input, voice, audio_config)

        run_logger = RunLogger(uuid.uuid4().hex[:8])
        voice_type = self.catalog.voice_type(voice_name).value
        base: dict[str, Any] = {"voice_name": voice_name, "voice_type": voice_type}
        extension = request.audio_encoding.file_extension

        run_logger.log_stage_start(
            "synthesize", voice=voice_name, encoding=request.audio_encoding.value
        )
        try:
            audio_content = await asyncio.to_thread(
                self.client.synthesize,
                synthesis_input,
                voice,
                audio_config,
                api_version=request.api_version,
            )
        except ProviderError as exc:
            run_logger.log_stage_failure("synthesize", type(exc).__name__)
            return SynthesisOutcome(
                success=False, failed_stage="synthesize", error_detail=str(exc), **base
            )
        if not audio_content:
            _log.warning("Got no audio content from {}/text:synthesize", request.api_version)
            run_logger.log_stage_failure("synthesize", "EmptyAudioContent")
            return SynthesisOutcome(
                success=False,
                failed_stage="synthesize",
                error_detail="The provider returned no audio content.",
                **base,
            )

        billed_units = self._billed_units(request.input_text, voice_name)
        pricing_bucket = self.catalog.pricing_tier(voice_name).value
        if self.usage is not None:
            self.usage.add_usage(pricing_bucket, billed_units)
        base.update(billed_units=billed_units, pricing_bucket=pricing_bucket)

        file_path = self.audio_dir / f"tts{uuid.uuid4()}.{extension}"
        try:
            await asyncio.to_thread(self._write_audio, file_path, audio_content)
        except (ProviderError, AudioFileError) as exc:
            run_logger.log_stage_failure("synthesize", type(exc).__name__)
            _log.error("Failed to store synthesized audio: {}", exc)
            return SynthesisOutcome(
                success=False, failed_stage="synthesize", error_detail=str(exc), **base
            )
        run_logger.log_stage_complete("synthesize", billed_units=billed_units)

        duration = await self._measure(run_logger, extension, file_path)

        run_logger.log_stage_start("play")
        try:
            route_kind = await self._dispatch(request, file_path, extension, duration)
        except Exception as exc:
            # Dispatch targets are host surfaces; any failure aborts the run.
            run_logger.log_stage_failure("play", type(exc).__name__)
            _log.error("Error submitting audio for playback: {}", exc)
            await self._remove_audio_file(file_path, "failed dispatch")
            return SynthesisOutcome(
                success=False, failed_stage="play", error_detail=str(exc), **base
            )
        run_logger.log_stage_complete("play", route=route_kind.value)

        outcome = SynthesisOutcome(success=True, audio_file_path=str(file_path), **base)

        if request.wait_for_playback:
            run_logger.log_stage_start("cleanup", mode="wait", delay=duration)
            try:
                await self._sleep(duration)
            finally:
                await self._remove_audio_file(file_path, "synchronous play")
            run_logger.log_stage_complete("cleanup", mode="wait")
        else:
            delay = duration + FIRE_AND_FORGET_GRACE_SECONDS
            run_logger.log_stage_start("cleanup", mode="detached", delay=delay)
            task = asyncio.create_task(self._delayed_remove(file_path, delay))
            self._pending_cleanups.add(task)
            task.add_done_callback(self._pending_cleanups.discard)

        _log.debug(
            "Finished synthesizing {} characters using {}", len(request.input_text), voice_name
        )
        return outcome

    @staticmethod
    def _billed_units(text: str, voice_name: str) -> int:
        """Return characters for per-character voice types, UTF-8 bytes otherwise."""

        if classification.is_character_billed(voice_name):
            return len(text)
        return len(text.encode("utf-8"))

    @staticmethod
    def _write_audio(file_path: Path, audio_content: str) -> None:
        """Decode base64 audio and write it to `file_path`.

        Raises:
            ProviderError: When the content is not valid base64.
            AudioFileError: When the file cannot be written.
        """

        try:
            audio_bytes = base64.b64decode(audio_content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ProviderError(
                "The provider returned audio content that is not valid base64.",
                failure_kind="invalid_response",
            ) from exc
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(audio_bytes)
        except OSError as exc:
            try:
                file_path.unlink(missing_ok=True)
            except OSError as cleanup_exc:
                _log.warning("Failed to remove partial audio file {}: {}", file_path, cleanup_exc)
            raise AudioFileError(f"Failed to write audio file {file_path}: {exc}") from exc
        _log.debug("Wrote audio file to {} of size {}", file_path, len(audio_bytes))

    async def _measure(self, run_logger: RunLogger, extension: str, file_path: Path) -> float:
        """Return the playable duration, substituting the fallback on any failure."""

        run_logger.log_stage_start("measure")
        try:
            duration = float(await self.prober.probe(extension, file_path))
        except Exception as exc:
            # A probe failure never fails the run.
            run_logger.log_stage_warning("measure", type(exc).__name__)
            _log.warning(
                "Failed to determine audio file duration, assuming {} seconds: {}",
                self.fallback_duration_seconds,
                exc,
            )
            return self.fallback_duration_seconds
        if duration <= 0:
            run_logger.log_stage_warning("measure", "NonPositiveDuration")
            return self.fallback_duration_seconds
        run_logger.log_stage_complete("measure", seconds=duration)
        return duration

    async def _dispatch(
        self,
        request: SynthesisRequest,
        file_path: Path,
        extension: str,
        duration: float,
    ) -> RouteKind:
        """Send the playback payload to the routed surface."""

        route = self.router.route(request.output_device, request.overlay_instance)
        payload = build_playback_payload(
            route,
            file_path=file_path,
            audio_format=extension,
            duration_seconds=duration,
            volume=request.output_volume,
        )
        if route.kind is RouteKind.OVERLAY:
            if self.overlay is None or self.tokens is None:
                raise PipelineStageError(
                    stage="play",
                    detail="Audio was routed to the overlay, but no overlay surface is available.",
                )
            payload["resourceToken"] = self.tokens.store_resource_path(file_path, duration)
            if route.overlay_instance is not None:
                payload["overlayInstance"] = route.overlay_instance
            await self.overlay.send(payload, route.overlay_instance)
            _log.debug("Sent audio to overlay")
        else:
            await self.playback.play(payload)
            _log.debug("Sent audio to local playback")
        return route.kind

    async def _delayed_remove(self, file_path: Path, delay: float) -> None:
        """Remove an audio file after `delay` seconds."""

        await self._sleep(delay)
        await self._remove_audio_file(file_path, "asynchronous play")

    async def _remove_audio_file(self, file_path: Path, reason: str) -> None:
        """Delete a temporary audio file, logging failures only."""

        try:
            await asyncio.to_thread(file_path.unlink)
        except OSError as exc:
            _log.warning(
                "Failed to remove audio file after {}; {} can be deleted manually: {}",
                reason,
                file_path,
                exc,
            )
            return
        _log.debug("Deleted audio file {} after {}", file_path, reason)
