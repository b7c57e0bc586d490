"""Cloud Text-to-Speech REST client."""

from .client import TextToSpeechClient, validate_synthesis_parameters

__all__ = ["TextToSpeechClient", "validate_synthesis_parameters"]
