"""Voice-name classification rules.

Provider voice names embed their technology, e.g. `en-US-Wavenet-C` or
`en-US-News-K`. Both lookups scan the markers below in order and stop at the
first substring hit. Matching is case-sensitive against provider naming, so
callers must pass names as received.
"""

from __future__ import annotations

from typing import Mapping

from .models import PricingTier, VoiceType


_MARKERS: tuple[tuple[str, PricingTier, VoiceType], ...] = (
    # Casual pricing is not published; it bills like Studio until shown otherwise.
    ("Casual", PricingTier.STUDIO, VoiceType.CASUAL),
    ("Journey", PricingTier.JOURNEY, VoiceType.JOURNEY),
    ("Neural2", PricingTier.NEURAL2, VoiceType.NEURAL2),
    ("News", PricingTier.STUDIO, VoiceType.NEWS),
    ("Polyglot", PricingTier.POLYGLOT, VoiceType.POLYGLOT),
    ("Standard", PricingTier.STANDARD, VoiceType.STANDARD),
    ("Studio", PricingTier.STUDIO, VoiceType.STUDIO),
    ("Wavenet", PricingTier.WAVENET, VoiceType.WAVENET),
)

CHARACTER_BILLED_TYPES = frozenset({VoiceType.STANDARD, VoiceType.WAVENET})


def pricing_tier(
    name: object,
    overrides: Mapping[str, PricingTier] | None = None,
) -> PricingTier:
    """Return the pricing tier for a voice name, or `Unknown` when no marker matches.

    Args:
        name: Provider voice name.
        overrides: Optional marker-to-tier replacements, e.g. `{"Casual": PricingTier.JOURNEY}`.
    """

    if not isinstance(name, str):
        return PricingTier.UNKNOWN
    for marker, tier, _voice_type in _MARKERS:
        if marker in name:
            if overrides and marker in overrides:
                return overrides[marker]
            return tier
    return PricingTier.UNKNOWN


def voice_type(name: object) -> VoiceType:
    """Return the voice technology tag for a voice name, or `Unknown`."""

    if not isinstance(name, str):
        return VoiceType.UNKNOWN
    for marker, _tier, tag in _MARKERS:
        if marker in name:
            return tag
    return VoiceType.UNKNOWN


def is_character_billed(name: object) -> bool:
    """Return whether synthesis with this voice is billed per character instead of per byte."""

    return voice_type(name) in CHARACTER_BILLED_TYPES
