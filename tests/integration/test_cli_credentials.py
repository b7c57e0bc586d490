"""Integration tests for secure credential CLI flows."""

from __future__ import annotations

from typer.testing import CliRunner

from gcptts.cli import app


def test_credentials_status_reports_missing_key(credential_store) -> None:  # type: ignore[no-untyped-def]
    """Status output should report storage availability and key presence."""

    result = CliRunner().invoke(app, ["credentials"])

    assert result.exit_code == 0
    assert "Secure credential storage: available" in result.output
    assert "Stored Google Cloud API key: not set" in result.output


def test_credentials_set_and_clear_api_key(credential_store) -> None:  # type: ignore[no-untyped-def]
    """Setting should prompt with hidden input and clearing should remove the key."""

    runner = CliRunner()

    set_result = runner.invoke(app, ["credentials", "--set-api-key"], input="  secret-key  \n")

    assert set_result.exit_code == 0
    assert "API key stored in secure credential storage." in set_result.output
    assert "secret-key" not in set_result.output
    assert credential_store.get_api_key() == "secret-key"

    clear_result = runner.invoke(app, ["credentials", "--clear-api-key"])

    assert clear_result.exit_code == 0
    assert "Stored API key cleared" in clear_result.output
    assert credential_store.get_api_key() is None

    again = runner.invoke(app, ["credentials", "--clear-api-key"])
    assert "No stored API key found" in again.output


def test_credentials_rejects_conflicting_flags(credential_store) -> None:  # type: ignore[no-untyped-def]
    """Set and clear together should fail with a credentials-stage error."""

    result = CliRunner().invoke(app, ["credentials", "--set-api-key", "--clear-api-key"])

    assert result.exit_code == 1
    assert "credentials failed at stage `credentials`" in result.output


def test_credentials_rejects_blank_prompt(credential_store) -> None:  # type: ignore[no-untyped-def]
    """An empty prompt answer should not store anything."""

    result = CliRunner().invoke(app, ["credentials", "--set-api-key"], input="\n")

    assert result.exit_code == 1
    assert "No API key entered." in result.output
    assert credential_store.get_api_key() is None
