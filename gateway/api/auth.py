"""Authentication routes."""

from __future__ import annotations

import logging
from typing import Any
import uuid

from fastapi import APIRouter
from fastapi import Depends

from gateway.api.dependencies import get_token_service
from gateway.api.dependencies import require_access_token
from gateway.schemas.auth import RefreshBody
from gateway.schemas.auth import RegisterBody
from gateway.schemas.auth import RegisterResult
from gateway.schemas.auth import TokenBundle
from gateway.schemas.auth import User
from gateway.schemas.envelope import ResponseEnvelope
from gateway.schemas.envelope import success_envelope
from gateway.tokens import TokenService
from gateway.tokens.service import EXPIRY_CLAIM
from gateway.validation import RequestSchema
from gateway.validation import ValidatedRequest
from gateway.validation import validate_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

REGISTER_SCHEMA = RequestSchema(body=RegisterBody)
REFRESH_SCHEMA = RequestSchema(body=RefreshBody)


def _token_bundle(tokens: TokenService, claims: dict[str, Any]) -> TokenBundle:
    pair = tokens.issue_pair(claims)
    return TokenBundle(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        access_expires_in=pair.access_expires_in,
        refresh_expires_in=pair.refresh_expires_in,
    )


@router.post(
    "/register",
    response_model=ResponseEnvelope[RegisterResult],
    status_code=201,
)
def register_endpoint(
    request: ValidatedRequest = Depends(validate_request(REGISTER_SCHEMA)),
    tokens: TokenService = Depends(get_token_service),
) -> ResponseEnvelope[RegisterResult]:
    """Register a user and issue its first credential pair."""
    body: RegisterBody = request.body
    user = User(id=uuid.uuid4(), email=body.email, name=body.name, role=body.role)
    claims = {"sub": str(user.id), "email": user.email, "role": user.role.value}

    logger.info("Registered user id=%s role=%s", user.id, user.role.value)
    return success_envelope(
        RegisterResult(user=user, tokens=_token_bundle(tokens, claims)),
        message="User registered",
    )


@router.post("/refresh", response_model=ResponseEnvelope[TokenBundle])
def refresh_endpoint(
    request: ValidatedRequest = Depends(validate_request(REFRESH_SCHEMA)),
    tokens: TokenService = Depends(get_token_service),
) -> ResponseEnvelope[TokenBundle]:
    """Exchange a valid refresh token for a new credential pair."""
    body: RefreshBody = request.body
    claims = tokens.verify_refresh(body.refresh_token)
    claims.pop(EXPIRY_CLAIM, None)
    return success_envelope(_token_bundle(tokens, claims), message="Tokens refreshed")


@router.get("/me", response_model=ResponseEnvelope[dict[str, Any]])
def me_endpoint(claims: dict[str, Any] = Depends(require_access_token)) -> ResponseEnvelope[dict[str, Any]]:
    """Return the verified claims of the caller's access token."""
    return success_envelope(claims, message="Authenticated")
