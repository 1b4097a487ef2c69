"""Unit tests for signed credential issuance and verification."""

from __future__ import annotations

import base64
from datetime import timedelta
import json

import pytest

from gateway.core.errors import AppError
from gateway.core.errors import ErrorKind
from gateway.tokens import CredentialPolicy
from gateway.tokens import TokenReason
from gateway.tokens import TokenService
from gateway.tokens import inspect
from gateway.tokens import issue
from gateway.tokens import verify

SECRET = "unit-test-secret"
NOW = 1_760_000_000.0
PAYLOAD = {"sub": "user-1", "role": "admin"}


def _tamper(token: str) -> str:
    header, payload, signature = token.split(".")
    index = len(payload) // 2
    replacement = "A" if payload[index] != "A" else "B"
    return ".".join([header, payload[:index] + replacement + payload[index + 1 :], signature])


def _reason(excinfo: pytest.ExceptionInfo[AppError]) -> str:
    return excinfo.value.details["reason"]


def test_round_trip_returns_original_payload_plus_expiry() -> None:
    token = issue(PAYLOAD, SECRET, 900, now=NOW)

    claims = verify(token, SECRET, now=NOW + 899)

    assert claims.pop("exp") == int(NOW) + 900
    assert claims == PAYLOAD


def test_issue_accepts_timedelta_ttl() -> None:
    token = issue(PAYLOAD, SECRET, timedelta(minutes=15), now=NOW)

    assert verify(token, SECRET, now=NOW)["exp"] == int(NOW) + 15 * 60


def test_zero_ttl_is_expired_not_signature_invalid() -> None:
    token = issue(PAYLOAD, SECRET, 0, now=NOW)

    with pytest.raises(AppError) as excinfo:
        verify(token, SECRET, now=NOW)

    assert excinfo.value.kind is ErrorKind.UNAUTHORIZED
    assert _reason(excinfo) == TokenReason.EXPIRED.value


def test_verify_after_ttl_elapsed_is_expired() -> None:
    token = issue(PAYLOAD, SECRET, 60, now=NOW)

    with pytest.raises(AppError) as excinfo:
        verify(token, SECRET, now=NOW + 61)

    assert _reason(excinfo) == "expired"


def test_tampered_payload_is_signature_invalid() -> None:
    token = issue(PAYLOAD, SECRET, 900, now=NOW)

    with pytest.raises(AppError) as excinfo:
        verify(_tamper(token), SECRET, now=NOW)

    assert excinfo.value.kind is ErrorKind.UNAUTHORIZED
    assert excinfo.value.status_code == 401
    assert _reason(excinfo) == TokenReason.SIGNATURE_INVALID.value


def test_signature_is_checked_before_expiry() -> None:
    token = issue(PAYLOAD, SECRET, 0, now=NOW)

    with pytest.raises(AppError) as excinfo:
        verify(token, "another-secret", now=NOW + 10)

    assert _reason(excinfo) == "signature_invalid"


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b", "a.b.c.d", "é.é.é"])
def test_malformed_tokens_are_signature_invalid(garbage: str) -> None:
    with pytest.raises(AppError) as excinfo:
        verify(garbage, SECRET, now=NOW)

    assert _reason(excinfo) == "signature_invalid"


def test_inspect_returns_forged_payload_without_error() -> None:
    header, _, signature = issue(PAYLOAD, SECRET, 900, now=NOW).split(".")
    forged_claims = {"sub": "attacker", "role": "admin", "exp": int(NOW) + 900}
    forged_segment = base64.urlsafe_b64encode(json.dumps(forged_claims).encode()).rstrip(b"=").decode()
    forged = ".".join([header, forged_segment, signature])

    assert inspect(forged) == forged_claims
    with pytest.raises(AppError) as excinfo:
        verify(forged, SECRET, now=NOW)
    assert _reason(excinfo) == "signature_invalid"


def test_inspect_never_raises_on_garbage() -> None:
    assert inspect("garbage") is None
    assert inspect("a.%%%.c") is None
    assert inspect(None) is None  # type: ignore[arg-type]


@pytest.mark.parametrize("operation", ["issue", "verify"])
def test_empty_secret_is_config_error(operation: str) -> None:
    with pytest.raises(AppError) as excinfo:
        if operation == "issue":
            issue(PAYLOAD, "", 900)
        else:
            verify("a.b.c", "")

    assert excinfo.value.kind is ErrorKind.CONFIG
    assert excinfo.value.is_operational is False


def test_negative_ttl_is_config_error() -> None:
    with pytest.raises(AppError) as excinfo:
        issue(PAYLOAD, SECRET, -1)

    assert excinfo.value.kind is ErrorKind.CONFIG


def test_token_service_rejects_missing_secret_at_construction() -> None:
    with pytest.raises(AppError) as excinfo:
        TokenService(CredentialPolicy("a", 900), CredentialPolicy("", 3600))

    assert excinfo.value.kind is ErrorKind.CONFIG


def test_token_service_keeps_access_and_refresh_independent() -> None:
    clock = [NOW]
    service = TokenService(
        CredentialPolicy("access-secret", timedelta(minutes=15)),
        CredentialPolicy("refresh-secret", timedelta(days=7)),
        clock=lambda: clock[0],
    )

    pair = service.issue_pair(PAYLOAD)

    assert service.verify_access(pair.access_token)["exp"] == int(NOW) + 15 * 60
    assert service.verify_refresh(pair.refresh_token)["exp"] == int(NOW) + 7 * 24 * 3600
    assert pair.access_expires_in == 900
    assert pair.refresh_expires_in == 604800
    with pytest.raises(AppError) as excinfo:
        service.verify_access(pair.refresh_token)
    assert _reason(excinfo) == "signature_invalid"

    clock[0] = NOW + 16 * 60
    with pytest.raises(AppError) as excinfo:
        service.verify_access(pair.access_token)
    assert _reason(excinfo) == "expired"
    assert service.verify_refresh(pair.refresh_token)["sub"] == "user-1"
