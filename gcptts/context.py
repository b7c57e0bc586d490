"""Plugin context with an explicit start/close lifecycle.

Responsibilities:
- Construct the catalog store, provider client, and synthesis pipeline from config.
- Run the on-start voice refresh when the configured update interval is due.
- Flush pending catalog writes and outstanding audio cleanups on close.

Key types:
- `PluginContext`: owner of every long-lived plugin object.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from .catalog.refresh import RefreshOutcome, is_refresh_due, refresh_voices_async
from .catalog.store import CatalogStore
from .config import PluginConfig
from .credentials import KeyringCredentialProvider
from .host import (
    CredentialProvider,
    DurationProber,
    HostSettings,
    OverlaySurface,
    PlaybackSurface,
    ResourceTokenIssuer,
    ResourceTokenStore,
    StaticHostSettings,
)
from .provider.client import TextToSpeechClient
from .synthesis.duration import FfprobeDurationProber
from .synthesis.pipeline import SynthesisPipeline
from .synthesis.playback import CommandPlaybackSurface, PlaybackRouter
from .telemetry.usage import UsageTracker


_log = logger.bind(component="context")


@dataclass(slots=True)
class PluginContext:
    """Long-lived plugin objects created at start and disposed at close."""

    config: PluginConfig
    catalog: CatalogStore
    client: TextToSpeechClient
    pipeline: SynthesisPipeline
    usage: UsageTracker
    refresh_task: asyncio.Task[RefreshOutcome] | None = field(default=None)

    @classmethod
    def start(
        cls,
        config: PluginConfig,
        *,
        credentials: CredentialProvider | None = None,
        settings: HostSettings | None = None,
        playback: PlaybackSurface | None = None,
        overlay: OverlaySurface | None = None,
        tokens: ResourceTokenIssuer | None = None,
        prober: DurationProber | None = None,
        refresh_on_start: bool = True,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> PluginContext:
        """Build a context and load the catalog.

        When called inside a running event loop and the voice list is due for a
        refresh, the refresh runs as a background task.
        """

        config.validate()
        catalog = CatalogStore(
            config.data_dir,
            write_delay_seconds=config.write_delay_seconds,
            write_retry_seconds=config.write_retry_seconds,
            pricing_overrides=config.pricing_overrides,
        )
        catalog.load()

        client = TextToSpeechClient(
            credentials or KeyringCredentialProvider(api_key=config.api_key),
            api_version=config.api_version,
            timeout_seconds=config.request_timeout_seconds,
        )
        usage = UsageTracker()
        pipeline = SynthesisPipeline(
            catalog=catalog,
            client=client,
            prober=prober or FfprobeDurationProber(),
            router=PlaybackRouter(settings or StaticHostSettings()),
            playback=playback or CommandPlaybackSurface(),
            overlay=overlay,
            tokens=tokens or ResourceTokenStore(),
            audio_dir=config.audio_dir,
            usage=usage,
            fallback_duration_seconds=config.fallback_duration_seconds,
        )
        context = cls(
            config=config,
            catalog=catalog,
            client=client,
            pipeline=pipeline,
            usage=usage,
        )

        if refresh_on_start and is_refresh_due(
            catalog.last_voice_check,
            config.voice_update_check_interval,
            clock(),
            on_start=True,
        ):
            context._schedule_refresh()
        _log.debug("Started plugin context with catalog {}", catalog.file_path)
        return context

    def _schedule_refresh(self) -> None:
        """Start a background voice refresh on the running loop, if there is one."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _log.debug("No running event loop; skipping background voice refresh")
            return
        self.refresh_task = loop.create_task(refresh_voices_async(self.catalog, self.client))

    async def aclose(self) -> None:
        """Wait for background work, then flush the catalog."""

        if self.refresh_task is not None:
            await self.refresh_task
        await self.pipeline.wait_for_cleanups()
        self.close()

    def close(self) -> None:
        """Flush a pending catalog write and release the refresh task."""

        if self.refresh_task is not None and not self.refresh_task.done():
            self.refresh_task.cancel()
        self.refresh_task = None
        self.catalog.close()
