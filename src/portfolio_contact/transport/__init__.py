"""Transport adapters for outbound mail providers."""

from .smtp_client import SmtpMailTransport

__all__ = ["SmtpMailTransport"]
