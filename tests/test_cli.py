"""Tests for the command-line entry point."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from portfolio_contact import cli
from portfolio_contact.core.config import AppSettings, SmtpSettings


def test_info_prints_configuration(capsys: pytest.CaptureFixture[str]) -> None:
    settings = AppSettings(smtp=SmtpSettings(username="me@example.com"))
    args = cli.build_parser().parse_args(["info"])

    assert cli.execute(args, settings) == 0

    output = capsys.readouterr().out
    assert "smtp.gmail.com:587" in output
    assert "Recipient: me@example.com" in output
    assert "5 per 3600s" in output


def test_check_mail_requires_credentials(capsys: pytest.CaptureFixture[str]) -> None:
    args = cli.build_parser().parse_args(["check-mail"])

    assert cli.execute(args, AppSettings()) == 1
    assert "not configured" in capsys.readouterr().out


def test_serve_runs_uvicorn_with_overrides() -> None:
    args = cli.build_parser().parse_args(["serve", "--port", "8080"])

    with patch.object(cli.uvicorn, "run") as run:
        assert cli.execute(args, AppSettings()) == 0

    _, kwargs = run.call_args
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 8080
