"""Request-scoped dependencies for authentication and authorization."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from fastapi import Depends
from fastapi import Request

from gateway.core.errors import AppError
from gateway.core.errors import ErrorKind
from gateway.tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


def get_token_service(request: Request) -> TokenService:
    """Return the token service built at application startup."""
    return request.app.state.token_service


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != BEARER_SCHEME or not token.strip():
        raise AppError(
            ErrorKind.UNAUTHORIZED,
            "Missing bearer credentials",
            details={"reason": "missing_credentials"},
        )
    return token.strip()


def require_access_token(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> dict[str, Any]:
    """Return verified access-token claims or raise UNAUTHORIZED."""
    token = _bearer_token(request)
    try:
        return tokens.verify_access(token)
    except AppError as exc:
        claimed = tokens.inspect(token) or {}
        logger.info(
            "Rejected access token for claimed subject=%s reason=%s",
            claimed.get("sub"),
            (exc.details or {}).get("reason"),
        )
        raise


def require_role(*roles: str) -> Callable[..., dict[str, Any]]:
    """Build a dependency that only admits verified claims with one of ``roles``."""
    allowed = frozenset(roles)

    def dependency(claims: dict[str, Any] = Depends(require_access_token)) -> dict[str, Any]:
        if claims.get("role") not in allowed:
            raise AppError(ErrorKind.FORBIDDEN, "Insufficient role for this resource")
        return claims

    return dependency
