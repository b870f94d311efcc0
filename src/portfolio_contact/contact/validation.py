"""Field validation for contact-form submissions."""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

from portfolio_contact.core.models import InvalidField, ValidContact, ValidationResult

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 254
MESSAGE_MIN_LENGTH = 10
MESSAGE_MAX_LENGTH = 2000

FIELD_ORDER: tuple[str, ...] = ("name", "email", "message")

# Letters of any script, spaces, hyphen, apostrophe and period.
_NAME_PATTERN = re.compile(r"^(?:[^\W\d_]|[ \-'.])+$")

_LABEL = r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
_EMAIL_PATTERN = re.compile(
    r"^[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
    rf"@{_LABEL}(?:\.{_LABEL})+$"
)

_LENGTH_REASONS: dict[str, str] = {
    "name": (
        f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters."
    ),
    "email": "Please provide a valid email address.",
    "message": (
        f"Message must be between {MESSAGE_MIN_LENGTH} and "
        f"{MESSAGE_MAX_LENGTH} characters."
    ),
}

NameText = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH
    ),
]
EmailText = Annotated[
    str, StringConstraints(strip_whitespace=True, max_length=EMAIL_MAX_LENGTH)
]
MessageText = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        min_length=MESSAGE_MIN_LENGTH,
        max_length=MESSAGE_MAX_LENGTH,
    ),
]


class ContactSubmission(BaseModel):
    """Contact form fields as submitted by a visitor.

    Attributes:
        name: Visitor's name; inner whitespace runs collapse to single spaces
        email: Reply address, lower-cased
        message: Free-text message body
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: NameText = Field(..., description="Full name of the person reaching out")
    email: EmailText = Field(..., description="Email address for the reply")
    message: MessageText = Field(..., description="The message from the visitor")

    @field_validator("name", mode="before")
    @classmethod
    def _collapse_name_whitespace(cls, value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.split())
        return value

    @field_validator("name")
    @classmethod
    def _check_name_characters(cls, value: str) -> str:
        if not _NAME_PATTERN.match(value):
            raise PydanticCustomError(
                "name_pattern",
                "Name may only contain letters, spaces, hyphens, apostrophes "
                "and periods.",
            )
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("email")
    @classmethod
    def _check_email_format(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("email_missing", "Email is required.")
        if not _EMAIL_PATTERN.match(value):
            raise PydanticCustomError(
                "email_format", "Please provide a valid email address."
            )
        return value


def _reason_for(field: str, error: dict[str, Any]) -> str:
    """Translate a pydantic error entry into a user-facing reason."""
    label = field.capitalize()
    error_type = error["type"]
    if error_type == "missing" or error.get("input") is None:
        return f"{label} is required."
    if error_type == "string_type":
        return f"{label} must be a string."
    if error_type in ("string_too_short", "string_too_long"):
        return _LENGTH_REASONS[field]
    return error["msg"]


def validate_submission(name: Any, email: Any, message: Any) -> ValidationResult:
    """Validate all fields in order, returning the first failure if any."""
    try:
        submission = ContactSubmission.model_validate(
            {"name": name, "email": email, "message": message}
        )
    except ValidationError as exc:
        errors = {
            str(error["loc"][0]): error for error in exc.errors() if error["loc"]
        }
        field = next(field for field in FIELD_ORDER if field in errors)
        return InvalidField(field, _reason_for(field, errors[field]))
    return ValidContact(
        name=submission.name, email=submission.email, message=submission.message
    )


__all__ = ["ContactSubmission", "validate_submission"]
