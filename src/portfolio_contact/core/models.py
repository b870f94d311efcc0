"""Core domain models used across the contact pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class SubmissionRequest:
    """A single contact-form submission as received over HTTP."""

    name: Any
    email: Any
    message: Any
    identity: str
    received_at: datetime
    origin: str | None = None


@dataclass(frozen=True, slots=True)
class ValidContact:
    """Trimmed and normalised submission fields."""

    name: str
    email: str
    message: str


@dataclass(frozen=True, slots=True)
class InvalidField:
    """The first field that failed validation and why."""

    field: str
    reason: str


ValidationResult = ValidContact | InvalidField


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a rate-limit admission check."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: float


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True, slots=True)
class ComposedMessage:
    """Outgoing notification email built from a submission."""

    recipient: str
    sender: str
    subject: str
    text_body: str
    html_body: str
    reply_to: str
    sender_name: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TransportReceipt:
    """Acknowledgement returned by a mail transport."""

    message_id: str
    response: str


class DispatchCode(str, Enum):
    """Stable failure codes reported by the mail dispatcher."""

    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    AUTH_FAILURE = "AUTH_FAILURE"
    TRANSPORT_TIMEOUT = "TRANSPORT_TIMEOUT"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class Sent:
    """Successful delivery attempt."""

    message_id: str


@dataclass(frozen=True, slots=True)
class Failed:
    """Failed delivery attempt with a user-safe description."""

    code: DispatchCode
    message: str


DispatchOutcome = Sent | Failed


@dataclass(slots=True)
class HandlerResponse:
    """HTTP-level result produced by the submission handler."""

    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


__all__ = [
    "ComposedMessage",
    "DispatchCode",
    "DispatchOutcome",
    "Failed",
    "HandlerResponse",
    "InvalidField",
    "RateLimitDecision",
    "Sent",
    "SubmissionRequest",
    "TransportReceipt",
    "ValidContact",
    "ValidationResult",
]
