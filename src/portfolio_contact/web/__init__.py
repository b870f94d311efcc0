"""Web application entry point for the contact service."""

from .app import create_app

__all__ = ["create_app"]
