"""Global error dispatcher and exception handler registration.

Every failure raised while handling a request ends up in :func:`dispatch`,
which is the only place an error becomes a response body.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import traceback
from typing import Any

from fastapi import FastAPI
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.core.config import Settings
from gateway.core.config import is_development
from gateway.core.errors import AppError
from gateway.core.errors import ErrorKind
from gateway.core.errors import normalize_error
from gateway.core.issues import issues_from_details
from gateway.schemas.envelope import ResponseEnvelope
from gateway.schemas.envelope import failure_envelope

logger = logging.getLogger(__name__)

_REPORTED_MARKER = "_gateway_reported"


@dataclass(frozen=True)
class DispatchResult:
    """Status code and body for one failed request."""

    status_code: int
    envelope: ResponseEnvelope[Any]

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.envelope.to_payload())


def dispatch(
    error: BaseException,
    environment: str,
    *,
    request: Request | None = None,
) -> DispatchResult:
    """Turn any failure into the shared failure envelope and report it once."""
    app_error = normalize_error(error)
    _report(error, app_error, request)

    if app_error.is_operational:
        message = app_error.message
    else:
        message = app_error.kind.default_message

    issues = None
    if app_error.kind is ErrorKind.VALIDATION:
        issues = issues_from_details(app_error.details, message=message)

    stack = None
    if is_development(environment):
        stack = format_trace(error)

    envelope = failure_envelope(message, issues=issues, stack=stack)
    return DispatchResult(status_code=app_error.status_code, envelope=envelope)


def format_trace(error: BaseException) -> str:
    """Format the full trace of ``error``, including chained causes."""
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def _report(original: BaseException, app_error: AppError, request: Request | None) -> None:
    if getattr(original, _REPORTED_MARKER, False):
        return
    setattr(original, _REPORTED_MARKER, True)

    extra = {
        "error_kind": app_error.kind.value,
        "status_code": app_error.status_code,
        "operational": app_error.is_operational,
        "location": _origin_location(original),
        "request_path": request.url.path if request is not None else None,
        "request_method": request.method if request is not None else None,
    }
    if app_error.is_operational:
        logger.warning(
            "%s %s failed with %s: %s",
            extra["request_method"],
            extra["request_path"],
            app_error.kind.value,
            app_error.message,
            extra=extra,
        )
        return

    logger.error(
        "%s %s failed with %s: %s",
        extra["request_method"],
        extra["request_path"],
        app_error.kind.value,
        original,
        extra=extra,
        exc_info=(type(original), original, original.__traceback__),
    )


def _origin_location(error: BaseException) -> str | None:
    tb = error.__traceback__
    if tb is None:
        return None
    frame = traceback.extract_tb(tb)[-1]
    return f"{frame.filename}:{frame.lineno}:{frame.name}"


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Route every failure the framework can raise through :func:`dispatch`."""

    async def handle_failure(request: Request, exc: Exception) -> JSONResponse:
        return dispatch(exc, settings.environment, request=request).to_response()

    app.add_exception_handler(AppError, handle_failure)
    app.add_exception_handler(RequestValidationError, handle_failure)
    app.add_exception_handler(StarletteHTTPException, handle_failure)
    app.add_exception_handler(Exception, handle_failure)
