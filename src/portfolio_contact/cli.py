"""Command-line entry point for the portfolio contact service."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import uvicorn

from portfolio_contact.contact import MailDispatcher
from portfolio_contact.core import AppSettings, configure_logging, load_app_settings
from portfolio_contact.transport import SmtpMailTransport
from portfolio_contact.web import create_app


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Portfolio contact-form relay")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "serve", "check-mail"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Bind address for the serve command (default from settings).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Bind port for the serve command (default from settings).",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return an exit code."""
    command = args.command
    if command == "info":
        print("Portfolio contact API. Configure SMTP settings to enable delivery.")
        print(f"SMTP host: {settings.smtp.host}:{settings.smtp.port}")
        print(f"SMTP user: {settings.smtp.username or '(not set)'}")
        print(f"Recipient: {settings.recipient or '(not set)'}")
        print(
            "Rate limit: "
            f"{settings.rate_limit.max_requests} per "
            f"{settings.rate_limit.window_seconds:g}s"
        )
        return 0
    if command == "serve":
        uvicorn.run(
            create_app(settings),
            host=args.host or settings.server.host,
            port=args.port or settings.server.port,
            log_config=None,
        )
        return 0
    if command == "check-mail":
        return _check_mail(settings)
    raise ValueError(f"Unsupported command: {command}")


def _check_mail(settings: AppSettings) -> int:
    transport = SmtpMailTransport(settings.smtp)
    if not transport.configured:
        print("SMTP is not configured: set username and password.")
        return 1
    dispatcher = MailDispatcher(
        transport, timeout_seconds=settings.contact.dispatch_timeout_seconds
    )
    if asyncio.run(dispatcher.verify()):
        print(f"SMTP connection to {settings.smtp.host} succeeded.")
        return 0
    print(f"SMTP connection to {settings.smtp.host} failed; see log for details.")
    return 1


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    return execute(args, settings)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
