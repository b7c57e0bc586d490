"""Logging and usage accounting helpers."""

from .logger import RunLogger, configure_logging
from .usage import UsageTracker

__all__ = ["RunLogger", "UsageTracker", "configure_logging"]
