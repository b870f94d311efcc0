"""Contact submission pipeline: validation through delivery."""

from .composer import MailComposer
from .dispatcher import MailDispatcher
from .handler import SubmissionHandler
from .rate_limit import RateLimiter
from .sanitizer import sanitize_multiline, sanitize_text
from .validation import validate_submission

__all__ = [
    "MailComposer",
    "MailDispatcher",
    "RateLimiter",
    "SubmissionHandler",
    "sanitize_multiline",
    "sanitize_text",
    "validate_submission",
]
