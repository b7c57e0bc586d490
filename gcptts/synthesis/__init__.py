"""Synthesis request models, playback routing, and the execution pipeline."""

from .pipeline import SynthesisPipeline
from .playback import PlaybackRoute, PlaybackRouter, RouteKind
from .request import (
    AudioEncoding,
    EffectProfile,
    SynthesisOutcome,
    SynthesisRequest,
    migrate_effect_payload,
)
from .ssml import encode_for_ssml

__all__ = [
    "AudioEncoding",
    "EffectProfile",
    "PlaybackRoute",
    "PlaybackRouter",
    "RouteKind",
    "SynthesisOutcome",
    "SynthesisPipeline",
    "SynthesisRequest",
    "encode_for_ssml",
    "migrate_effect_payload",
]
