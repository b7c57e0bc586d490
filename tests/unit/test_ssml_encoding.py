"""Unit tests for SSML reserved-character encoding."""

from __future__ import annotations

import pytest

from gcptts.synthesis.ssml import encode_for_ssml


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Tom & Jerry", "Tom &amp; Jerry"),
        ("<b>'hi'</b>", "&lt;b&gt;&apos;hi&apos;&lt;/b&gt;"),
        ('say "a" & "b"', "say &quot;a&quot; &amp; &quot;b&quot;"),
        ("&amp;", "&amp;amp;"),
        ("plain text", "plain text"),
    ],
)
def test_encode_for_ssml_escapes_every_occurrence(text: str, expected: str) -> None:
    """All reserved characters should be escaped, with ampersands escaped first."""

    assert encode_for_ssml(text) == expected


def test_encode_for_ssml_handles_empty_and_non_string_values() -> None:
    """Empty inputs return an empty string and other values are stringified."""

    assert encode_for_ssml(None) == ""
    assert encode_for_ssml("") == ""
    assert encode_for_ssml(3 < 4) == "True"
    assert encode_for_ssml(42) == "42"
