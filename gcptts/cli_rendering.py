"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
voice and locale listings, refresh results, and synthesis outcomes.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .catalog.models import ExtendedVoiceInfo, LocaleRecord
from .catalog.refresh import RefreshOutcome
from .errors import PipelineStageError
from .synthesis.request import SynthesisOutcome
from .telemetry.usage import UsageTracker


_GENDER_LABELS = {
    "FEMALE": "Female",
    "MALE": "Male",
    "SSML_VOICE_GENDER_UNSPECIFIED": "Unknown",
}


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_voice_list(voices: list[ExtendedVoiceInfo]) -> None:
    """Print one row per voice: name, gender, language, type, and pricing."""

    if not voices:
        typer.echo("No voices matched.")
        return
    for voice in voices:
        gender = _GENDER_LABELS.get(voice.gender.value, "Unknown")
        typer.echo(
            f"{voice.name} | {gender} | {voice.language_name} | "
            f"{voice.voice_type.value} Category | {voice.pricing_tier.value} Pricing"
        )


def echo_locale_list(locales: list[LocaleRecord]) -> None:
    """Print compact locale id/description rows."""

    for locale in locales:
        typer.echo(f"{locale.id}: {locale.description}")


def echo_refresh_outcome(outcome: RefreshOutcome) -> None:
    """Print voice refresh results."""

    if outcome.error_message:
        typer.secho(outcome.error_message, fg=typer.colors.YELLOW, err=True)
    typer.echo(f"Voices added: {len(outcome.added)}")
    for name in outcome.added:
        typer.echo(f"  + {name}")
    typer.echo(f"Voices removed: {len(outcome.removed)}")
    for name in outcome.removed:
        typer.echo(f"  - {name}")


def echo_synthesis_outcome(outcome: SynthesisOutcome, usage: UsageTracker) -> None:
    """Print usage details for a successful synthesis."""

    typer.echo(f"Voice: {outcome.voice_name} ({outcome.voice_type})")
    typer.echo(f"Billed units: {outcome.billed_units} ({outcome.pricing_bucket} pricing)")
    typer.echo(f"Session billed units: {usage.total_units()}")
