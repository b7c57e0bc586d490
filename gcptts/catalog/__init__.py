"""Voice and locale catalog.

This package holds the catalog records, name-based classification rules, the
debounced JSON store, and the provider refresh operation.
"""

from .classification import is_character_billed, pricing_tier, voice_type
from .models import (
    ExtendedVoiceInfo,
    LocaleRecord,
    PricingTier,
    VoiceChanges,
    VoiceFilter,
    VoiceGender,
    VoiceRecord,
    VoiceType,
)
from .refresh import RefreshOutcome, UpdateCheckFrequency, is_refresh_due, refresh_voices
from .store import CatalogStore

__all__ = [
    "CatalogStore",
    "ExtendedVoiceInfo",
    "LocaleRecord",
    "PricingTier",
    "RefreshOutcome",
    "UpdateCheckFrequency",
    "VoiceChanges",
    "VoiceFilter",
    "VoiceGender",
    "VoiceRecord",
    "VoiceType",
    "is_character_billed",
    "is_refresh_due",
    "pricing_tier",
    "refresh_voices",
    "voice_type",
]
