"""Application configuration helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
import os

from gateway.core.errors import AppError
from gateway.core.errors import ErrorKind

DEVELOPMENT_ENVIRONMENT = "development"
DEFAULT_ENVIRONMENT = "production"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ACCESS_TOKEN_TTL_SECONDS = 15 * 60
DEFAULT_REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60


def is_development(environment: str) -> bool:
    """Return whether ``environment`` names the development configuration."""
    return environment.strip().lower() == DEVELOPMENT_ENVIRONMENT


def redact_secret(secret: str) -> str:
    """Return a non-recoverable placeholder for sensitive values."""
    if not secret:
        return "<empty>"
    return "<redacted>"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, loaded once at startup and never mutated."""

    environment: str
    log_level: str
    access_token_secret: str
    access_token_ttl_seconds: int
    refresh_token_secret: str
    refresh_token_ttl_seconds: int

    @property
    def is_development(self) -> bool:
        return is_development(self.environment)

    def validate(self) -> Settings:
        """Raise a CONFIG error naming every missing or invalid setting."""
        problems: list[str] = []
        if not self.access_token_secret:
            problems.append("GATEWAY_ACCESS_TOKEN_SECRET is required")
        if not self.refresh_token_secret:
            problems.append("GATEWAY_REFRESH_TOKEN_SECRET is required")
        if self.access_token_ttl_seconds <= 0:
            problems.append("GATEWAY_ACCESS_TOKEN_TTL_SECONDS must be positive")
        if self.refresh_token_ttl_seconds <= 0:
            problems.append("GATEWAY_REFRESH_TOKEN_TTL_SECONDS must be positive")
        if problems:
            raise AppError(
                ErrorKind.CONFIG,
                "Invalid configuration: " + "; ".join(problems),
                details={"problems": problems},
            )
        return self

    def safe_for_logging(self) -> dict[str, str | int]:
        """Return settings safe for logs."""
        return {
            "environment": self.environment,
            "log_level": self.log_level,
            "access_token_secret": redact_secret(self.access_token_secret),
            "access_token_ttl_seconds": self.access_token_ttl_seconds,
            "refresh_token_secret": redact_secret(self.refresh_token_secret),
            "refresh_token_ttl_seconds": self.refresh_token_ttl_seconds,
        }


def _get_int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise AppError(
            ErrorKind.CONFIG,
            f"Invalid configuration: {name} must be an integer",
            details={"problems": [f"{name} must be an integer"]},
        ) from exc


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Load and validate settings from the environment."""
    environ = os.environ if environ is None else environ
    settings = Settings(
        environment=environ.get("GATEWAY_ENV", DEFAULT_ENVIRONMENT),
        log_level=environ.get("GATEWAY_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        access_token_secret=environ.get("GATEWAY_ACCESS_TOKEN_SECRET", ""),
        access_token_ttl_seconds=_get_int_env(
            environ, "GATEWAY_ACCESS_TOKEN_TTL_SECONDS", DEFAULT_ACCESS_TOKEN_TTL_SECONDS
        ),
        refresh_token_secret=environ.get("GATEWAY_REFRESH_TOKEN_SECRET", ""),
        refresh_token_ttl_seconds=_get_int_env(
            environ, "GATEWAY_REFRESH_TOKEN_TTL_SECONDS", DEFAULT_REFRESH_TOKEN_TTL_SECONDS
        ),
    )
    return settings.validate()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    return load_settings()
