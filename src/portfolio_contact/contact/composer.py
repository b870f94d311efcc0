"""Build notification emails from validated submissions."""

from __future__ import annotations

from datetime import datetime

from jinja2 import Environment, PackageLoader, StrictUndefined

from portfolio_contact.core.datetime_utils import serialize_datetime
from portfolio_contact.core.models import ComposedMessage, ValidContact

from .sanitizer import sanitize_multiline, sanitize_text

DEFAULT_SUBJECT_PREFIX = "New Contact Form Submission"

# Autoescape stays off: every value is passed through the sanitizer first.
_jinja_env = Environment(
    loader=PackageLoader("portfolio_contact", "templates"),
    autoescape=False,
    undefined=StrictUndefined,
)

HTML_TEMPLATE_NAME = "contact_notification.html"
TEXT_TEMPLATE_NAME = "contact_notification.txt"


class MailComposer:
    """Turn a :class:`ValidContact` into a :class:`ComposedMessage`.

    The plain-text body carries the validated values as typed. The HTML body
    only ever sees sanitized copies, and the subject embeds the sanitized name.
    """

    def __init__(
        self,
        recipient: str,
        sender: str,
        *,
        sender_name: str | None = None,
        subject_prefix: str = DEFAULT_SUBJECT_PREFIX,
    ) -> None:
        self._recipient = recipient
        self._sender = sender
        self._sender_name = sender_name
        self._subject_prefix = subject_prefix

    def compose(
        self,
        contact: ValidContact,
        *,
        origin: str | None,
        received_at: datetime,
    ) -> ComposedMessage:
        """Build the notification email for ``contact``."""
        timestamp = serialize_datetime(received_at)
        safe_name = sanitize_text(contact.name)

        text_body = _jinja_env.get_template(TEXT_TEMPLATE_NAME).render(
            name=contact.name,
            email=contact.email,
            origin=origin,
            received_at=timestamp,
            message=contact.message,
        )
        html_body = _jinja_env.get_template(HTML_TEMPLATE_NAME).render(
            heading=sanitize_text(self._subject_prefix),
            name=safe_name,
            email=sanitize_text(contact.email),
            origin=sanitize_text(origin) if origin else None,
            received_at=timestamp,
            message=sanitize_multiline(contact.message),
        )

        headers = {"X-Submitted-At": timestamp}
        if origin:
            headers["X-Contact-Origin"] = origin

        return ComposedMessage(
            recipient=self._recipient,
            sender=self._sender,
            sender_name=self._sender_name,
            subject=f"{self._subject_prefix} from {safe_name}",
            text_body=text_body,
            html_body=html_body,
            reply_to=contact.email,
            headers=headers,
        )


__all__ = ["DEFAULT_SUBJECT_PREFIX", "MailComposer"]
