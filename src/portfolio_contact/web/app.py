"""FastAPI web application exposing the contact endpoint."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from portfolio_contact.contact import (
    MailComposer,
    MailDispatcher,
    RateLimiter,
    SubmissionHandler,
)
from portfolio_contact.core import AppSettings, load_app_settings
from portfolio_contact.core.datetime_utils import serialize_datetime, utc_now
from portfolio_contact.core.interfaces import MailTransport
from portfolio_contact.transport import SmtpMailTransport

from .health import MailReachabilityCheck

LOGGER = logging.getLogger(__name__)

_ENV_FILE_OVERRIDE_VAR = "PORTFOLIO_CONTACT_ENV_FILE"
_DEFAULT_ENV_FILE = Path(".env")


def _resolve_env_file() -> Path:
    override = os.environ.get(_ENV_FILE_OVERRIDE_VAR)
    if override:
        return Path(override).expanduser()
    return _DEFAULT_ENV_FILE


def _client_identity(request: Request, trust_forwarded_for: bool) -> str:
    """Return the key used to bucket a client for rate limiting."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def create_app(
    settings: AppSettings | None = None,
    *,
    transport: MailTransport | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` and ``rate_limiter`` default to an SMTP relay and an
    in-memory limiter built from ``settings``; tests inject their own.
    """
    app_settings = settings or load_app_settings(env_file=_resolve_env_file())
    started_at = time.monotonic()

    mail_transport = transport or SmtpMailTransport(app_settings.smtp)
    limiter = rate_limiter or RateLimiter(
        max_requests=app_settings.rate_limit.max_requests,
        window_seconds=app_settings.rate_limit.window_seconds,
    )
    dispatcher = MailDispatcher(
        mail_transport, timeout_seconds=app_settings.contact.dispatch_timeout_seconds
    )
    composer = MailComposer(
        recipient=app_settings.recipient or "",
        sender=app_settings.smtp.username or "",
        sender_name=app_settings.smtp.from_name,
        subject_prefix=app_settings.contact.subject_prefix,
    )
    handler = SubmissionHandler(limiter, dispatcher, composer)
    reachability = MailReachabilityCheck(
        dispatcher,
        enabled=app_settings.health.verify_mail,
        ttl_seconds=app_settings.health.cache_seconds,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        LOGGER.info(
            "Contact API starting (mail configured: %s)", mail_transport.configured
        )
        if not mail_transport.configured:
            LOGGER.warning("SMTP credentials missing; submissions will fail to send")
        yield
        LOGGER.info("Contact API shutting down")

    app = FastAPI(title="Portfolio Contact API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors.allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
        expose_headers=["RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
    )

    app.state.settings = app_settings
    app.state.rate_limiter = limiter
    app.state.dispatcher = dispatcher

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return "Contact API is running."

    @app.get("/health")
    async def health() -> dict[str, Any]:
        reachable = await reachability.reachable()
        return {
            "status": "degraded" if reachable is False else "ok",
            "uptime": round(time.monotonic() - started_at, 3),
            "timestamp": serialize_datetime(utc_now()),
            "mail": {"configured": reachability.configured, "reachable": reachable},
        }

    @app.post("/contact")
    async def submit_contact(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        identity = _client_identity(
            request, app_settings.rate_limit.trust_forwarded_for
        )
        result = await handler.handle(
            payload, identity=identity, origin=request.headers.get("origin")
        )
        return JSONResponse(
            status_code=result.status_code,
            content=result.body,
            headers=result.headers,
        )

    return app


__all__ = ["create_app"]
