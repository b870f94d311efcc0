"""Orchestrate a contact submission from request body to HTTP result."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from portfolio_contact.core.datetime_utils import serialize_datetime, utc_now
from portfolio_contact.core.models import (
    DispatchCode,
    Failed,
    HandlerResponse,
    InvalidField,
    RateLimitDecision,
    SubmissionRequest,
)

from .composer import MailComposer
from .dispatcher import MailDispatcher
from .rate_limit import RateLimiter, reset_header_value
from .validation import validate_submission

LOGGER = logging.getLogger(__name__)

MALFORMED_REQUEST_MESSAGE = "Invalid request format."
RATE_LIMITED_MESSAGE = "Too many contact requests. Please try again later."
SUCCESS_MESSAGE = "Email sent successfully! Thank you for your message."

STATUS_BY_CODE: Mapping[DispatchCode, int] = {
    DispatchCode.CONNECTION_REFUSED: 503,
    DispatchCode.AUTH_FAILURE: 500,
    DispatchCode.TRANSPORT_TIMEOUT: 504,
    DispatchCode.REQUEST_TIMEOUT: 408,
    DispatchCode.UNKNOWN: 500,
}


def _rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": reset_header_value(decision),
    }
    if not decision.allowed:
        headers["Retry-After"] = reset_header_value(decision)
    return headers


class SubmissionHandler:
    """Run one submission through rate limiting, validation and delivery.

    The handler never raises for a submission: every path, including
    transport failures, ends in exactly one :class:`HandlerResponse`.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        dispatcher: MailDispatcher,
        composer: MailComposer,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._dispatcher = dispatcher
        self._composer = composer
        self._clock = clock

    async def handle(
        self, payload: Any, *, identity: str, origin: str | None = None
    ) -> HandlerResponse:
        """Process a decoded request body and return the response to send."""
        if not isinstance(payload, Mapping):
            LOGGER.info("Rejected malformed contact request from %s", identity)
            return HandlerResponse(400, {"error": MALFORMED_REQUEST_MESSAGE})

        request = SubmissionRequest(
            name=payload.get("name"),
            email=payload.get("email"),
            message=payload.get("message"),
            identity=identity,
            received_at=self._clock(),
            origin=origin,
        )

        decision = self._rate_limiter.check(request.identity)
        headers = _rate_limit_headers(decision)
        if not decision.allowed:
            LOGGER.info("Rate limited contact request from %s", request.identity)
            return HandlerResponse(429, {"error": RATE_LIMITED_MESSAGE}, headers)

        result = validate_submission(request.name, request.email, request.message)
        if isinstance(result, InvalidField):
            LOGGER.info(
                "Contact submission rejected on %s: %s", result.field, result.reason
            )
            return HandlerResponse(
                400, {"error": result.reason, "field": result.field}, headers
            )

        message = self._composer.compose(
            result, origin=request.origin, received_at=request.received_at
        )
        outcome = await self._dispatcher.send(message)
        timestamp = serialize_datetime(self._clock())

        if isinstance(outcome, Failed):
            return HandlerResponse(
                STATUS_BY_CODE[outcome.code],
                {
                    "success": False,
                    "error": outcome.message,
                    "code": outcome.code.value,
                    "timestamp": timestamp,
                },
                headers,
            )

        LOGGER.info("Contact submission from %s delivered", request.identity)
        return HandlerResponse(
            200,
            {
                "success": True,
                "message": SUCCESS_MESSAGE,
                "timestamp": timestamp,
                "messageId": outcome.message_id,
            },
            headers,
        )


__all__ = ["STATUS_BY_CODE", "SubmissionHandler"]
