"""SSML reserved-character encoding."""

from __future__ import annotations


# Ampersand must be first: every other replacement emits one.
_SSML_ESCAPES: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("'", "&apos;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
)


def encode_for_ssml(text: object) -> str:
    """Escape characters that interfere with SSML parsing.

    Non-string values are converted with `str()`; `None` and empty input return `""`.
    """

    if text is None:
        return ""
    encoded = text if isinstance(text, str) else str(text)
    if not encoded:
        return ""
    for raw, escaped in _SSML_ESCAPES:
        encoded = encoded.replace(raw, escaped)
    return encoded
