"""Core utilities for configuration, logging, and shared models."""

from .config import AppSettings, SmtpSettings, load_app_settings
from .logging import configure_logging

__all__ = [
    "AppSettings",
    "SmtpSettings",
    "configure_logging",
    "load_app_settings",
]
