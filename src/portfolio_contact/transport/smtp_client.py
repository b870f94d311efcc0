"""SMTP transport for relaying contact notifications."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import TYPE_CHECKING

from portfolio_contact.core.interfaces import TransportError
from portfolio_contact.core.models import ComposedMessage, TransportReceipt

if TYPE_CHECKING:
    from portfolio_contact.core import SmtpSettings

LOGGER = logging.getLogger(__name__)


def _translate_error(exc: Exception, command: str) -> TransportError:
    """Map an smtplib/socket exception onto a coded :class:`TransportError`."""
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        code = "EAUTH"
    elif isinstance(exc, smtplib.SMTPConnectError | ConnectionRefusedError):
        code = "ECONNREFUSED"
    elif isinstance(exc, smtplib.SMTPServerDisconnected):
        code = "ECONNECTION"
    elif isinstance(exc, smtplib.SMTPException):
        code = "EMESSAGE"
    elif isinstance(exc, TimeoutError):
        code = "ETIMEDOUT"
    else:
        code = "ECONNECTION"
    return TransportError(str(exc) or exc.__class__.__name__, code=code, command=command)


class SmtpMailTransport:
    """Send composed messages through an SMTP relay.

    Each call opens its own connection in a worker thread, so a slow relay
    never blocks the event loop and nothing is shared between requests.

    Example:
        >>> transport = SmtpMailTransport(SmtpSettings(username="me@gmail.com", ...))
        >>> receipt = await transport.send_mail(message)
    """

    def __init__(self, settings: SmtpSettings) -> None:
        self._settings = settings

    @property
    def configured(self) -> bool:
        return self._settings.configured

    async def send_mail(self, message: ComposedMessage) -> TransportReceipt:
        """Deliver ``message``.

        Raises:
            TransportError: If connecting, authenticating or sending fails
        """
        if not self.configured:
            raise TransportError(
                "SMTP credentials not configured", code="EAUTH", command="AUTH"
            )
        return await asyncio.to_thread(self._send_blocking, message)

    async def verify(self) -> bool:
        """Open and authenticate a connection without sending anything."""
        await asyncio.to_thread(self._verify_blocking)
        return True

    def _connect(self) -> smtplib.SMTP:
        """Establish an SMTP connection and authenticate.

        Raises:
            TransportError: If connection or authentication fails
        """
        if not self._settings.host:
            raise TransportError("SMTP host not configured", code="ECONNECTION")

        LOGGER.debug(
            "Attempting SMTP connection to %s:%d",
            self._settings.host,
            self._settings.port,
        )

        command = "CONN"
        connection: smtplib.SMTP | None = None
        try:
            if self._settings.use_tls:
                connection = smtplib.SMTP(
                    self._settings.host,
                    self._settings.port,
                    timeout=self._settings.timeout_seconds,
                )
                command = "STARTTLS"
                connection.starttls()
            else:
                connection = smtplib.SMTP_SSL(
                    self._settings.host,
                    self._settings.port,
                    timeout=self._settings.timeout_seconds,
                )

            if self._settings.username and self._settings.password:
                command = "AUTH"
                connection.login(self._settings.username, self._settings.password)
        except OSError as exc:
            LOGGER.error("SMTP %s failed: %s", command, exc)
            if connection is not None:
                connection.close()
            raise _translate_error(exc, command) from exc

        LOGGER.debug("Connected to SMTP server: %s", self._settings.host)
        return connection

    def _send_blocking(self, message: ComposedMessage) -> TransportReceipt:
        mime_message = self.build_mime_message(message)
        connection = self._connect()
        try:
            refused = connection.send_message(mime_message)
        except OSError as exc:
            LOGGER.error("Failed to send email: %s", exc)
            raise _translate_error(exc, "DATA") from exc
        finally:
            _quit(connection)

        if refused:
            LOGGER.warning("Some recipients were refused: %s", refused)
            raise TransportError(
                f"Recipients refused: {', '.join(refused)}",
                code="EENVELOPE",
                command="RCPT TO",
            )

        message_id = mime_message["Message-ID"]
        LOGGER.info("Email sent to %s: %s", message.recipient, message_id)
        return TransportReceipt(
            message_id=message_id, response=f"accepted for {message.recipient}"
        )

    def _verify_blocking(self) -> None:
        _quit(self._connect())

    def build_mime_message(self, message: ComposedMessage) -> MIMEMultipart:
        """Build a ``multipart/alternative`` MIME message with text and HTML parts."""
        mime_msg = MIMEMultipart("alternative")
        mime_msg["From"] = formataddr((message.sender_name or "", message.sender))
        mime_msg["To"] = message.recipient
        mime_msg["Subject"] = message.subject
        mime_msg["Reply-To"] = message.reply_to
        mime_msg["Date"] = formatdate(localtime=False)
        domain = message.sender.rpartition("@")[2] or None
        mime_msg["Message-ID"] = make_msgid(domain=domain)
        for key, value in message.headers.items():
            mime_msg[key] = value

        mime_msg.attach(MIMEText(message.text_body, "plain", "utf-8"))
        mime_msg.attach(MIMEText(message.html_body, "html", "utf-8"))
        return mime_msg


def _quit(connection: smtplib.SMTP) -> None:
    """Close an SMTP connection gracefully."""
    try:
        connection.quit()
    except OSError as exc:
        LOGGER.warning("Error closing SMTP connection: %s", exc)
        connection.close()


__all__ = ["SmtpMailTransport"]
