"""FastAPI application factory.

Run with ``uvicorn --factory gateway.main:create_app``. Settings and the token
service are built before the app is returned, so an invalid configuration
stops the process before it serves any request.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from gateway.api.auth import router as auth_router
from gateway.core.config import Settings
from gateway.core.config import get_settings
from gateway.core.dispatcher import register_error_handlers
from gateway.core.errors import AppError
from gateway.core.logging import configure_logging
from gateway.schemas.envelope import ResponseEnvelope
from gateway.schemas.envelope import success_envelope
from gateway.tokens import CredentialPolicy
from gateway.tokens import TokenService

logger = logging.getLogger(__name__)


def build_token_service(settings: Settings) -> TokenService:
    """Bind access and refresh policies from validated settings."""
    return TokenService(
        access=CredentialPolicy(
            secret=settings.access_token_secret,
            ttl=settings.access_token_ttl_seconds,
        ),
        refresh=CredentialPolicy(
            secret=settings.refresh_token_secret,
            ttl=settings.refresh_token_ttl_seconds,
        ),
    )


def create_app(settings: Settings | None = None, *, configure_logs: bool = True) -> FastAPI:
    """Build the application, refusing to start on invalid configuration."""
    try:
        settings = (settings or get_settings()).validate()
        token_service = build_token_service(settings)
    except AppError as exc:
        logger.critical("Refusing to start: %s", exc.message)
        raise

    if configure_logs:
        configure_logging(settings.log_level)
    logger.info("Starting gateway with settings=%s", settings.safe_for_logging())

    app = FastAPI(title="gateway")
    app.state.settings = settings
    app.state.token_service = token_service
    register_error_handlers(app, settings)
    app.include_router(auth_router)

    @app.get("/health", response_model=ResponseEnvelope[dict[str, str]])
    def health() -> ResponseEnvelope[dict[str, str]]:
        """Health check endpoint for service readiness."""
        return success_envelope({"status": "ok"})

    return app
