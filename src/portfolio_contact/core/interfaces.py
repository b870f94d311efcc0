"""Protocol interfaces for decoupling the pipeline from its collaborators."""

from __future__ import annotations

from typing import Protocol

from .models import ComposedMessage, TransportReceipt


class TransportError(RuntimeError):
    """Raised by a mail transport when delivery fails.

    Attributes:
        code: Transport error code such as ``ECONNREFUSED`` or ``EAUTH``
        command: Protocol command that was running when the failure occurred
    """

    def __init__(
        self, message: str, *, code: str | None = None, command: str | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.command = command


class MailTransport(Protocol):
    """Abstraction over an outbound mail relay such as SMTP."""

    @property
    def configured(self) -> bool:
        """Return ``True`` when the transport has enough settings to send."""
        raise NotImplementedError

    async def send_mail(self, message: ComposedMessage) -> TransportReceipt:
        """Deliver ``message``; raise :class:`TransportError` on failure."""
        raise NotImplementedError

    async def verify(self) -> bool:
        """Return ``True`` when the relay accepts a connection and login."""
        raise NotImplementedError


__all__ = ["MailTransport", "TransportError"]
