"""Deliver composed messages through a mail transport with a bounded wait."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from portfolio_contact.core.interfaces import MailTransport, TransportError
from portfolio_contact.core.models import (
    ComposedMessage,
    DispatchCode,
    DispatchOutcome,
    Failed,
    Sent,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

_TRANSPORT_CODES: Mapping[str, DispatchCode] = {
    "ECONNREFUSED": DispatchCode.CONNECTION_REFUSED,
    "ECONNECTION": DispatchCode.CONNECTION_REFUSED,
    "EAUTH": DispatchCode.AUTH_FAILURE,
    "ETIMEDOUT": DispatchCode.TRANSPORT_TIMEOUT,
}

_USER_MESSAGES: Mapping[DispatchCode, str] = {
    DispatchCode.CONNECTION_REFUSED: (
        "Email service is temporarily unavailable. Please try again later."
    ),
    DispatchCode.AUTH_FAILURE: (
        "Email service configuration error. Please try again later."
    ),
    DispatchCode.TRANSPORT_TIMEOUT: (
        "Email service timed out. Please try again later."
    ),
    DispatchCode.REQUEST_TIMEOUT: (
        "Sending your message took too long. Please try again later."
    ),
    DispatchCode.UNKNOWN: "Failed to send email. Please try again later.",
}


def map_transport_code(code: str | None) -> DispatchCode:
    """Translate a transport error code into a dispatch code."""
    if code is None:
        return DispatchCode.UNKNOWN
    return _TRANSPORT_CODES.get(code.upper(), DispatchCode.UNKNOWN)


def failure(code: DispatchCode) -> Failed:
    """Build a :class:`Failed` outcome with the generic message for ``code``."""
    return Failed(code=code, message=_USER_MESSAGES[code])


def _discard_late_result(task: asyncio.Task) -> None:
    """Consume the result of an abandoned send so it is never reported."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.warning("Mail transport finished after timeout with error: %s", exc)
    else:
        LOGGER.warning("Mail transport finished after timeout; result discarded")


class MailDispatcher:
    """Make one delivery attempt per call, racing it against a timeout."""

    def __init__(
        self,
        transport: MailTransport,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._transport = transport
        self._timeout_seconds = timeout_seconds

    @property
    def transport(self) -> MailTransport:
        return self._transport

    async def send(
        self, message: ComposedMessage, timeout_seconds: float | None = None
    ) -> DispatchOutcome:
        """Send ``message`` and report the outcome without raising.

        When the timeout fires first, the pending send is cancelled and its
        eventual result is discarded, and ``REQUEST_TIMEOUT`` is returned.
        """
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        task = asyncio.ensure_future(self._transport.send_mail(message))
        done, _ = await asyncio.wait({task}, timeout=timeout)

        if task not in done:
            task.add_done_callback(_discard_late_result)
            task.cancel()
            LOGGER.error(
                "Mail delivery to %s timed out after %.1fs", message.recipient, timeout
            )
            return failure(DispatchCode.REQUEST_TIMEOUT)

        try:
            receipt = task.result()
        except TransportError as exc:
            code = map_transport_code(exc.code)
            LOGGER.error(
                "Mail transport error (code=%s, command=%s): %s",
                exc.code,
                exc.command,
                exc,
            )
            return failure(code)
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected error while sending mail")
            return failure(DispatchCode.UNKNOWN)

        LOGGER.info("Mail delivered: %s (%s)", receipt.message_id, receipt.response)
        return Sent(message_id=receipt.message_id)

    async def verify(self, timeout_seconds: float | None = None) -> bool:
        """Return whether the transport is reachable within the timeout."""
        if not self._transport.configured:
            return False
        timeout = self._timeout_seconds if timeout_seconds is None else timeout_seconds
        try:
            return await asyncio.wait_for(self._transport.verify(), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Mail transport verification timed out")
            return False
        except TransportError as exc:
            LOGGER.warning("Mail transport verification failed: %s", exc)
            return False


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "MailDispatcher",
    "failure",
    "map_transport_code",
]
