"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator


class SmtpSettings(BaseModel):
    """Settings controlling the outbound SMTP relay."""

    host: str | None = Field(default="smtp.gmail.com", description="SMTP hostname")
    port: int = Field(default=587, description="SMTP port, 587 for STARTTLS")
    username: str | None = Field(default=None, description="Account username")
    password: str | None = Field(default=None, description="Account app password")
    use_tls: bool = Field(
        default=True, description="Use STARTTLS; implicit SSL when disabled"
    )
    from_name: str | None = Field(
        default=None, description="Display name used in the From header"
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Socket timeout for SMTP operations"
    )

    @property
    def configured(self) -> bool:
        """Return ``True`` when enough settings exist to attempt delivery."""
        return bool(self.host and self.username and self.password)


class ContactSettings(BaseModel):
    """Settings for the contact submission pipeline."""

    recipient: str | None = Field(
        default=None, description="Mailbox receiving contact submissions"
    )
    subject_prefix: str = Field(
        default="New Contact Form Submission",
        description="Prefix for notification subjects",
    )
    dispatch_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Upper bound for a single delivery attempt"
    )


class RateLimitSettings(BaseModel):
    """Per-client submission budget."""

    max_requests: int = Field(default=5, ge=1, description="Submissions per window")
    window_seconds: float = Field(
        default=3600.0, gt=0, description="Length of a rate-limit window"
    )
    trust_forwarded_for: bool = Field(
        default=False,
        description="Identify clients by the first X-Forwarded-For entry",
    )


class CorsSettings(BaseModel):
    """Cross-origin settings for the portfolio front end."""

    allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class HealthSettings(BaseModel):
    """Settings for the liveness endpoint."""

    verify_mail: bool = Field(
        default=True, description="Check SMTP reachability from /health"
    )
    cache_seconds: float = Field(
        default=60.0, ge=0, description="How long a reachability result is reused"
    )


class ServerSettings(BaseModel):
    """Settings used when serving the app from the CLI."""

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Bind port")


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    smtp: SmtpSettings = Field(default_factory=SmtpSettings)
    contact: ContactSettings = Field(default_factory=ContactSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def recipient(self) -> str | None:
        """Mailbox receiving submissions, defaulting to the SMTP account."""
        return self.contact.recipient or self.smtp.username


ENV_PREFIX = "PORTFOLIO_CONTACT_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, include_environment: bool
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "ContactSettings",
    "CorsSettings",
    "HealthSettings",
    "LoggingSettings",
    "RateLimitSettings",
    "ServerSettings",
    "SmtpSettings",
    "load_app_settings",
]
