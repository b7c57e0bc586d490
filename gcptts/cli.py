"""Command-line interface for gcptts.

Responsibilities:
- Expose catalog, refresh, synthesis, SSML, and credential commands.
- Convert CLI arguments into `PluginConfig` and synthesis requests.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from .catalog.models import PricingTier, VoiceFilter, VoiceGender, VoiceType
from .catalog.refresh import RefreshOutcome, refresh_voices_async
from .cli_rendering import (
    echo_locale_list,
    echo_refresh_outcome,
    echo_synthesis_outcome,
    echo_voice_list,
    exit_with_command_error,
)
from .config import ConfigLoader, PluginConfig
from .context import PluginContext
from .credentials import KeyringCredentialProvider, create_credential_store
from .errors import PipelineStageError, ValidationError
from .parsing import normalize_optional_string
from .provider.client import normalize_api_version
from .synthesis.request import AudioEncoding, SynthesisOutcome, SynthesisRequest
from .synthesis.ssml import encode_for_ssml
from .telemetry.logger import configure_logging

app = typer.Typer(
    name="gcptts",
    no_args_is_help=True,
    help="Google Cloud Text-to-Speech CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Optional YAML config file; environment is used otherwise."),
]


def _load_config(config_path: Path | None) -> PluginConfig:
    """Load config from YAML when requested, otherwise from the environment."""

    try:
        if config_path is None:
            return ConfigLoader.from_env()
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _start_context(config: PluginConfig) -> PluginContext:
    """Start a plugin context wired to the CLI credential store."""

    configure_logging(config.log_level)
    credentials = KeyringCredentialProvider(
        api_key=config.api_key,
        store=create_credential_store(),
    )
    return PluginContext.start(config, credentials=credentials, refresh_on_start=False)


def _parse_choice(value: str | None, parser, option_name: str):
    """Parse an optional enum option or raise an arguments-stage error."""

    if value is None:
        return None
    try:
        return parser(value)
    except ValueError as exc:
        raise PipelineStageError(
            stage="arguments",
            detail=f"Invalid value for `{option_name}`: {value}.",
        ) from exc


@app.command("voices")
def voices_command(
    lang: Annotated[
        str | None, typer.Option("--lang", help="Language code prefix, such as `en` or `en-GB`.")
    ] = None,
    name: Annotated[str | None, typer.Option("--name", help="Exact voice name.")] = None,
    gender: Annotated[
        str | None, typer.Option("--gender", help="FEMALE, MALE, or SSML_VOICE_GENDER_UNSPECIFIED.")
    ] = None,
    tier: Annotated[str | None, typer.Option("--tier", help="Pricing tier, such as `Wavenet`.")] = None,
    voice_type: Annotated[
        str | None, typer.Option("--type", help="Voice type, such as `News`.")
    ] = None,
    config_file: ConfigOption = None,
) -> None:
    """List catalog voices with their locale and classification."""

    try:
        voice_filter = VoiceFilter(
            name=normalize_optional_string(name),
            language_code=normalize_optional_string(lang),
            gender=_parse_choice(gender, lambda raw: VoiceGender(raw.strip().upper()), "--gender"),
            pricing_tier=_parse_choice(tier, lambda raw: PricingTier(raw.strip()), "--tier"),
            voice_type=_parse_choice(voice_type, lambda raw: VoiceType(raw.strip()), "--type"),
        )
        context = _start_context(_load_config(config_file))
        try:
            voices = context.catalog.extended_voices(voice_filter)
        finally:
            context.close()
    except Exception as exc:
        exit_with_command_error("voices", exc)

    echo_voice_list(voices)


@app.command("locales")
def locales_command(config_file: ConfigOption = None) -> None:
    """List catalog locales."""

    try:
        context = _start_context(_load_config(config_file))
        try:
            locales = context.catalog.locales
        finally:
            context.close()
    except Exception as exc:
        exit_with_command_error("locales", exc)

    echo_locale_list(locales)


async def _run_refresh(config: PluginConfig, lang: str) -> RefreshOutcome:
    """Refresh voices inside an event loop so catalog writes are debounced."""

    context = _start_context(config)
    try:
        return await refresh_voices_async(context.catalog, context.client, lang)
    finally:
        await context.aclose()


@app.command("refresh-voices")
def refresh_voices_command(
    lang: Annotated[
        str,
        typer.Option("--lang", help="Language code to refresh, or `all` for every language."),
    ] = "all",
    config_file: ConfigOption = None,
) -> None:
    """Fetch the provider voice list and update the local catalog."""

    try:
        outcome = asyncio.run(_run_refresh(_load_config(config_file), lang))
    except Exception as exc:
        exit_with_command_error("refresh-voices", exc)

    echo_refresh_outcome(outcome)


async def _run_speak(config: PluginConfig, request: SynthesisRequest) -> tuple[SynthesisOutcome, PluginContext]:
    """Run one synthesis inside an event loop and dispose the context afterwards."""

    context = _start_context(config)
    try:
        outcome = await context.pipeline.run(request)
    finally:
        await context.aclose()
    return outcome, context


@app.command("speak")
def speak_command(
    text: Annotated[str, typer.Argument(help="Text or SSML markup to speak.")],
    voice: Annotated[str, typer.Option("--voice", help="Provider voice name.")] = "en-US-Neural2-C",
    ssml: Annotated[bool, typer.Option("--ssml", help="Treat TEXT as SSML markup.")] = False,
    encoding: Annotated[
        str, typer.Option("--encoding", help="ALAW, LINEAR16, MP3, MP3_64_KBPS, MULAW, or OGG_OPUS.")
    ] = AudioEncoding.OGG_OPUS.value,
    pitch: Annotated[float, typer.Option("--pitch", help="Pitch shift in semitones, -20 to 20.")] = 0.0,
    rate: Annotated[float, typer.Option("--rate", help="Speaking rate, 0.25 to 4.")] = 1.0,
    gain: Annotated[float, typer.Option("--gain", help="Volume gain in dB, -96 to 16.")] = 0.0,
    volume: Annotated[float, typer.Option("--volume", help="Playback volume, 1 to 10.")] = 5.0,
    language: Annotated[
        str | None, typer.Option("--language", help="Language code override.")
    ] = None,
    api_version: Annotated[
        str | None, typer.Option("--api-version", help="`v1` or `v1beta1`; defaults to config.")
    ] = None,
    config_file: ConfigOption = None,
) -> None:
    """Synthesize TEXT and play it locally, waiting until playback ends."""

    try:
        config = _load_config(config_file)
        request = SynthesisRequest(
            input_text=text,
            voice_name=voice,
            is_ssml=ssml,
            language_code_override=normalize_optional_string(language),
            audio_encoding=AudioEncoding.parse(encoding),
            pitch_adjust=pitch,
            speaking_rate=rate,
            amplitude_adjust=gain,
            output_volume=volume,
            wait_for_playback=True,
            api_version=normalize_api_version(api_version or config.api_version),
        )
        outcome, context = asyncio.run(_run_speak(config, request))
    except ValidationError as exc:
        exit_with_command_error(
            "speak",
            PipelineStageError(stage="validate", detail=str(exc)),
        )
    except Exception as exc:
        exit_with_command_error("speak", exc)

    if not outcome.success:
        exit_with_command_error(
            "speak",
            PipelineStageError(
                stage=outcome.failed_stage or "unknown",
                detail=outcome.error_detail or "Synthesis failed.",
                hint="Check the API key with `gcptts credentials` and the voice name with `gcptts voices`.",
            ),
        )
    echo_synthesis_outcome(outcome, context.usage)


@app.command("encode-ssml")
def encode_ssml_command(
    text: Annotated[str, typer.Argument(help="Untrusted text to make safe for SSML input.")],
) -> None:
    """Escape characters that would break SSML parsing."""

    typer.echo(encode_for_ssml(text))


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage the securely stored Google Cloud API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "Google Cloud API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key()
        if removed:
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    has_stored_key = credential_store.get_api_key() is not None
    status = "present" if has_stored_key else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored Google Cloud API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
