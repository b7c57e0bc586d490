"""Integration tests for catalog, refresh, speak, and SSML CLI commands."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from gcptts.cli import app
from gcptts.provider import client as tts_client


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(self, *, payload: bytes, status_code: int = 200) -> None:
        """Initialize response with raw payload bytes and HTTP status."""

        self.content = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        """Raise HTTPError when the response status represents a failure."""

        if self.status_code >= 400:
            raise tts_client.requests.HTTPError(f"HTTP {self.status_code} error", response=self)


def test_encode_ssml_command_escapes_reserved_characters() -> None:
    """The SSML command should print escaped text."""

    result = CliRunner().invoke(app, ["encode-ssml", "Tom & <Jerry>"])

    assert result.exit_code == 0
    assert result.output.strip() == "Tom &amp; &lt;Jerry&gt;"


def test_voices_command_filters_catalog(credential_store, config_file: Path) -> None:  # type: ignore[no-untyped-def]
    """Voice listing should apply language and pricing filters to the catalog."""

    result = CliRunner().invoke(
        app,
        ["voices", "--lang", "en-US", "--tier", "Studio", "--config", str(config_file)],
    )

    assert result.exit_code == 0
    lines = [line for line in result.output.splitlines() if line.strip()]
    assert lines == [
        "en-US-Casual-K | Male | English (United States) | Casual Category | Studio Pricing",
        "en-US-News-K | Female | English (United States) | News Category | Studio Pricing",
        "en-US-Studio-O | Female | English (United States) | Studio Category | Studio Pricing",
    ]


def test_voices_command_rejects_unknown_gender(credential_store, config_file: Path) -> None:  # type: ignore[no-untyped-def]
    """Unknown enum values should fail with an arguments-stage diagnostic."""

    result = CliRunner().invoke(
        app, ["voices", "--gender", "robot", "--config", str(config_file)]
    )

    assert result.exit_code == 1
    assert "voices failed at stage `arguments`" in result.output


def test_locales_command_lists_bundled_locales(credential_store, config_file: Path) -> None:  # type: ignore[no-untyped-def]
    """Locale listing should print id and description rows."""

    result = CliRunner().invoke(app, ["locales", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "en-US: English (United States)" in result.output


def test_missing_config_file_reports_config_stage(tmp_path: Path) -> None:
    """A missing config path should fail at the config stage with a hint."""

    result = CliRunner().invoke(
        app, ["locales", "--config", str(tmp_path / "missing.yaml")]
    )

    assert result.exit_code == 1
    assert "locales failed at stage `config`" in result.output
    assert "Hint:" in result.output


def test_refresh_voices_command_reports_changes(
    monkeypatch: pytest.MonkeyPatch,
    credential_store,  # type: ignore[no-untyped-def]
    config_file: Path,
    tmp_path: Path,
) -> None:
    """Refreshing a language should print added/removed voices and persist the catalog."""

    credential_store.set_api_key("stored-key")
    captured: dict[str, object] = {}
    payload = {
        "voices": [
            {
                "languageCodes": ["sv-SE"],
                "name": "sv-SE-Standard-D",
                "ssmlGender": "FEMALE",
                "naturalSampleRateHertz": 22050,
            }
        ]
    }

    def _mock_get(_url: str, **kwargs: object) -> _MockRequestsResponse:
        """Capture the query and return one voice."""

        captured.update(kwargs)
        return _MockRequestsResponse(payload=json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr("gcptts.provider.client.requests.get", _mock_get)

    result = CliRunner().invoke(
        app, ["refresh-voices", "--lang", "sv-SE", "--config", str(config_file)]
    )

    assert result.exit_code == 0
    assert captured["params"] == {"key": "stored-key", "languageCode": "sv-SE"}
    assert "Voices added: 1" in result.output
    assert "  + sv-SE-Standard-D" in result.output
    assert "  - sv-SE-Wavenet-A" in result.output
    persisted = json.loads((tmp_path / "data" / "gttsdata.json").read_text(encoding="utf-8"))
    assert "sv-SE-Standard-D" in [voice["name"] for voice in persisted["voices"]]


def test_refresh_voices_without_key_reports_empty_result(
    credential_store, config_file: Path  # type: ignore[no-untyped-def]
) -> None:
    """Without a connected key the refresh should report that no voices were received."""

    result = CliRunner().invoke(app, ["refresh-voices", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "No voices were received" in result.output
    assert "Voices added: 0" in result.output


def test_speak_command_synthesizes_and_plays(
    monkeypatch: pytest.MonkeyPatch,
    credential_store,  # type: ignore[no-untyped-def]
    fake_media_tools,  # type: ignore[no-untyped-def]
    config_file: Path,
    tmp_path: Path,
) -> None:
    """Speak should synthesize with the stored key, play locally, and report billing."""

    credential_store.set_api_key("stored-key")
    sent: list[dict[str, object]] = []

    def _mock_post(_url: str, **kwargs: object) -> _MockRequestsResponse:
        """Capture the body and return audio content."""

        sent.append(kwargs["json"])  # type: ignore[arg-type]
        audio = base64.b64encode(b"RIFF-fake").decode("ascii")
        return _MockRequestsResponse(payload=json.dumps({"audioContent": audio}).encode("utf-8"))

    monkeypatch.setattr("gcptts.provider.client.requests.post", _mock_post)

    result = CliRunner().invoke(
        app,
        [
            "speak",
            "Hello",
            "--voice",
            "en-US-Standard-C",
            "--encoding",
            "LINEAR16",
            "--volume",
            "8",
            "--config",
            str(config_file),
        ],
    )

    assert result.exit_code == 0, result.output
    assert sent[0]["audioConfig"] == {"audioEncoding": "LINEAR16"}
    assert "Billed units: 5 (Standard pricing)" in result.output
    assert len(fake_media_tools.payloads) == 1
    played = fake_media_tools.payloads[0]
    assert played["format"] == "wav"
    assert played["volume"] == 8
    assert not Path(str(played["filepath"])).exists()
    assert list((tmp_path / "audio").iterdir()) == []


@pytest.mark.parametrize("pitch", ["25", "nan"])
def test_speak_command_rejects_out_of_range_pitch(
    pitch: str,
    monkeypatch: pytest.MonkeyPatch,
    credential_store,  # type: ignore[no-untyped-def]
    fake_media_tools,  # type: ignore[no-untyped-def]
    config_file: Path,
) -> None:
    """Out-of-range parameters should fail at validation without calling the provider."""

    def _unexpected_post(*_args: object, **_kwargs: object) -> _MockRequestsResponse:
        """Fail if the transport is used."""

        raise AssertionError("HTTP should not be called for invalid parameters")

    monkeypatch.setattr("gcptts.provider.client.requests.post", _unexpected_post)

    result = CliRunner().invoke(
        app,
        ["speak", "Hello", "--pitch", pitch, "--config", str(config_file)],
    )

    assert result.exit_code == 1
    assert "speak failed at stage `validate`" in result.output
    assert "Pitch adjustment" in result.output
    assert fake_media_tools.payloads == []


def test_speak_command_without_key_fails_at_synthesize(
    credential_store,  # type: ignore[no-untyped-def]
    fake_media_tools,  # type: ignore[no-untyped-def]
    config_file: Path,
) -> None:
    """A disconnected credential should fail the synthesis stage with a hint."""

    result = CliRunner().invoke(app, ["speak", "Hello", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "speak failed at stage `synthesize`" in result.output
    assert "The provider returned no audio content." in result.output
    assert "Hint:" in result.output


def test_refresh_voices_command_flushes_debounced_write_on_exit(
    monkeypatch: pytest.MonkeyPatch,
    credential_store,  # type: ignore[no-untyped-def]
    tmp_path: Path,
) -> None:
    """A long write delay should still leave the refreshed catalog on disk after the command."""

    credential_store.set_api_key("stored-key")
    config_path = tmp_path / "slow-writes.yaml"
    config_path.write_text(
        "\n".join(
            [
                f"data_dir: {tmp_path / 'data'}",
                f"audio_dir: {tmp_path / 'audio'}",
                "voice_update_check_interval: Never",
                "write_delay_seconds: 60",
            ]
        ),
        encoding="utf-8",
    )
    payload = {
        "voices": [
            {
                "languageCodes": ["cs-CZ"],
                "name": "cs-CZ-Neural2-A",
                "ssmlGender": "FEMALE",
                "naturalSampleRateHertz": 24000,
            }
        ]
    }

    def _mock_get(_url: str, **_kwargs: object) -> _MockRequestsResponse:
        """Return one voice."""

        return _MockRequestsResponse(payload=json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr("gcptts.provider.client.requests.get", _mock_get)

    result = CliRunner().invoke(
        app, ["refresh-voices", "--lang", "cs-CZ", "--config", str(config_path)]
    )

    assert result.exit_code == 0, result.output
    persisted = json.loads((tmp_path / "data" / "gttsdata.json").read_text(encoding="utf-8"))
    names = [voice["name"] for voice in persisted["voices"]]
    assert "cs-CZ-Neural2-A" in names
    assert "cs-CZ-Standard-A" not in names
    assert "voices" in persisted["lastChecks"]
