"""Signed, time-bounded credentials.

Tokens use the compact ``header.payload.signature`` layout with an
HMAC-SHA256 signature over the first two segments. The signing secret is
never part of the token.

Only :func:`verify` may back an access decision. :func:`inspect` decodes the
payload without any check and must stay that way.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
import hashlib
import hmac
import json
import math
import time
from typing import Any

from gateway.core.errors import AppError
from gateway.core.errors import ErrorKind

EXPIRY_CLAIM = "exp"
_HEADER = {"alg": "HS256", "typ": "JWT"}

TtlLike = int | float | timedelta


class TokenReason(str, Enum):
    """Why ``verify`` rejected a credential."""

    EXPIRED = "expired"
    SIGNATURE_INVALID = "signature_invalid"


@dataclass(frozen=True)
class CredentialPolicy:
    """Secret and lifetime for one class of credential."""

    secret: str
    ttl: TtlLike


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _encode_json(value: Mapping[str, Any]) -> str:
    return _b64encode(json.dumps(value, separators=(",", ":"), sort_keys=True).encode("utf-8"))


def _sign(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def _require_secret(secret: str) -> None:
    if not secret:
        raise AppError(ErrorKind.CONFIG, "Token signing secret is not configured")


def ttl_seconds(ttl: TtlLike) -> int:
    """Normalize a ttl to whole seconds."""
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds < 0 or math.isnan(seconds):
        raise AppError(ErrorKind.CONFIG, "Token ttl must not be negative")
    return int(seconds)


def _unauthorized(reason: TokenReason, message: str) -> AppError:
    return AppError(ErrorKind.UNAUTHORIZED, message, details={"reason": reason.value})


def issue(payload: Mapping[str, Any], secret: str, ttl: TtlLike, *, now: float | None = None) -> str:
    """Sign ``payload`` with an expiry of ``now + ttl``."""
    _require_secret(secret)
    if not isinstance(payload, Mapping):
        raise TypeError("token payload must be a mapping")

    issued_at = time.time() if now is None else now
    claims = dict(payload)
    claims[EXPIRY_CLAIM] = int(math.floor(issued_at)) + ttl_seconds(ttl)

    signing_input = f"{_encode_json(_HEADER)}.{_encode_json(claims)}"
    return f"{signing_input}.{_sign(signing_input, secret)}"


def verify(token: str, secret: str, *, now: float | None = None) -> dict[str, Any]:
    """Return the claims of ``token`` if its signature holds and it has not expired."""
    _require_secret(secret)

    segments = token.split(".") if isinstance(token, str) else []
    if len(segments) != 3:
        raise _unauthorized(TokenReason.SIGNATURE_INVALID, "Invalid token")

    header_segment, payload_segment, signature = segments
    try:
        expected = _sign(f"{header_segment}.{payload_segment}", secret)
    except UnicodeEncodeError:
        raise _unauthorized(TokenReason.SIGNATURE_INVALID, "Invalid token") from None
    if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
        raise _unauthorized(TokenReason.SIGNATURE_INVALID, "Invalid token")

    claims = _decode_claims(payload_segment)
    if claims is None:
        raise _unauthorized(TokenReason.SIGNATURE_INVALID, "Invalid token")

    expires_at = claims.get(EXPIRY_CLAIM)
    current = time.time() if now is None else now
    if not isinstance(expires_at, (int, float)) or current >= expires_at:
        raise _unauthorized(TokenReason.EXPIRED, "Token has expired")
    return claims


def inspect(token: str) -> dict[str, Any] | None:
    """Decode the claims of ``token`` without verifying anything.

    Never use the result for access control. Returns ``None`` when the token
    cannot be decoded at all; never raises.
    """
    if not isinstance(token, str):
        return None
    segments = token.split(".")
    if len(segments) != 3:
        return None
    return _decode_claims(segments[1])


def _decode_claims(segment: str) -> dict[str, Any] | None:
    try:
        decoded = json.loads(_b64decode(segment))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not isinstance(decoded, dict):
        return None
    return decoded


class TokenService:
    """Access and refresh credential operations bound to their policies.

    Both policies are checked at construction so that a missing secret stops
    the process before it serves requests.
    """

    def __init__(
        self,
        access: CredentialPolicy,
        refresh: CredentialPolicy,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        for policy in (access, refresh):
            _require_secret(policy.secret)
            ttl_seconds(policy.ttl)
        self._access = access
        self._refresh = refresh
        self._clock = clock

    @property
    def access_ttl_seconds(self) -> int:
        return ttl_seconds(self._access.ttl)

    @property
    def refresh_ttl_seconds(self) -> int:
        return ttl_seconds(self._refresh.ttl)

    def issue_access(self, payload: Mapping[str, Any]) -> str:
        return issue(payload, self._access.secret, self._access.ttl, now=self._clock())

    def issue_refresh(self, payload: Mapping[str, Any]) -> str:
        return issue(payload, self._refresh.secret, self._refresh.ttl, now=self._clock())

    def issue_pair(self, payload: Mapping[str, Any]) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access(payload),
            refresh_token=self.issue_refresh(payload),
            access_expires_in=self.access_ttl_seconds,
            refresh_expires_in=self.refresh_ttl_seconds,
        )

    def verify_access(self, token: str) -> dict[str, Any]:
        return verify(token, self._access.secret, now=self._clock())

    def verify_refresh(self, token: str) -> dict[str, Any]:
        return verify(token, self._refresh.secret, now=self._clock())

    @staticmethod
    def inspect(token: str) -> dict[str, Any] | None:
        return inspect(token)
