"""Top-level package for gcptts.

This package provides a Google Cloud Text-to-Speech plugin core: a persisted
voice catalog and a synthesis pipeline that plays and then removes audio. The
main entry point is `PluginContext`.
"""

__version__ = "0.4.0"

from .context import PluginContext  # noqa: E402

__all__ = ["PluginContext", "__version__"]
