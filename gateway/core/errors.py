"""Closed error taxonomy and normalization of arbitrary failures into it."""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import Sequence
from enum import Enum
from typing import Any

from fastapi import status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.core.issues import ValidationIssue
from gateway.core.issues import issues_from_pydantic

GENERIC_INTERNAL_MESSAGE = "Internal server error"


class ErrorKind(str, Enum):
    """Every failure kind the service can report."""

    VALIDATION = "VALIDATION"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"

    @property
    def default_status(self) -> int:
        return _KIND_DEFAULTS[self][0]

    @property
    def is_operational(self) -> bool:
        return _KIND_DEFAULTS[self][1]

    @property
    def default_message(self) -> str:
        return _KIND_DEFAULTS[self][2]

    @classmethod
    def parse(cls, value: Any) -> ErrorKind | None:
        """Return the kind named by ``value`` or ``None`` when it is not recognized."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return None
        return None


_KIND_DEFAULTS: dict[ErrorKind, tuple[int, bool, str]] = {
    ErrorKind.VALIDATION: (status.HTTP_400_BAD_REQUEST, True, "Request validation failed"),
    ErrorKind.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, True, "Authentication required"),
    ErrorKind.FORBIDDEN: (status.HTTP_403_FORBIDDEN, True, "Access denied"),
    ErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, True, "Resource not found"),
    ErrorKind.CONFLICT: (status.HTTP_409_CONFLICT, True, "Resource already exists"),
    ErrorKind.CONFIG: (status.HTTP_500_INTERNAL_SERVER_ERROR, False, "Invalid service configuration"),
    ErrorKind.INTERNAL: (status.HTTP_500_INTERNAL_SERVER_ERROR, False, GENERIC_INTERNAL_MESSAGE),
}

_HTTP_STATUS_KINDS: dict[int, ErrorKind] = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
    422: ErrorKind.VALIDATION,
}


class AppError(Exception):
    """Single failure record for the whole service.

    The ``kind`` tag decides how a failure is reported; there are no
    subclasses. Attributes are read-only once the error is built.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        *,
        status_code: int | None = None,
        details: Any = None,
        is_operational: bool | None = None,
    ) -> None:
        message = message or kind.default_message
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._status_code = status_code if status_code is not None else kind.default_status
        self._is_operational = kind.is_operational if is_operational is None else is_operational
        self._details = _freeze_details(details)

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def is_operational(self) -> bool:
        return self._is_operational

    @property
    def details(self) -> Any:
        return self._details

    @classmethod
    def from_issues(
        cls,
        issues: Iterable[ValidationIssue],
        *,
        message: str | None = None,
        status_code: int | None = None,
    ) -> AppError:
        """Build the VALIDATION error reporting ``issues``."""
        return cls(ErrorKind.VALIDATION, message, status_code=status_code, details=tuple(issues))

    def __repr__(self) -> str:
        return f"AppError(kind={self._kind.value}, status_code={self._status_code}, message={self._message!r})"


def _freeze_details(details: Any) -> Any:
    if isinstance(details, Mapping):
        return dict(details)
    if isinstance(details, list):
        return tuple(details)
    return details


def normalize_error(exc: BaseException) -> AppError:
    """Convert any failure into an ``AppError``.

    Recognized kinds are preserved. Everything else becomes ``INTERNAL`` with a
    generic message; the original exception stays reachable via ``__cause__``.
    """
    if isinstance(exc, AppError):
        return exc

    if isinstance(exc, RequestValidationError):
        return _from_request_validation(exc)

    if isinstance(exc, StarletteHTTPException):
        return _from_http_exception(exc)

    tagged_kind = ErrorKind.parse(getattr(exc, "kind", None))
    if tagged_kind is not None:
        message = str(exc) or tagged_kind.default_message
        if not tagged_kind.is_operational:
            message = tagged_kind.default_message
        error = AppError(tagged_kind, message, details=getattr(exc, "details", None))
    else:
        error = AppError(ErrorKind.INTERNAL, GENERIC_INTERNAL_MESSAGE)

    error.__cause__ = exc
    error.__traceback__ = exc.__traceback__
    return error


def _from_http_exception(exc: StarletteHTTPException) -> AppError:
    kind = _HTTP_STATUS_KINDS.get(exc.status_code)
    if kind is None:
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            kind = ErrorKind.INTERNAL
        else:
            kind = ErrorKind.VALIDATION

    if not kind.is_operational:
        error = AppError(kind, status_code=exc.status_code)
    else:
        message = exc.detail if isinstance(exc.detail, str) and exc.detail else None
        details: Sequence[Any] | None = () if kind is ErrorKind.VALIDATION else None
        error = AppError(kind, message, status_code=exc.status_code, details=details)

    error.__cause__ = exc
    error.__traceback__ = exc.__traceback__
    return error


def _from_request_validation(exc: RequestValidationError) -> AppError:
    error = AppError.from_issues(issues_from_pydantic(exc.errors()))
    error.__cause__ = exc
    error.__traceback__ = exc.__traceback__
    return error
