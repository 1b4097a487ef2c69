"""Signed credential issuance and verification."""

from gateway.tokens.service import CredentialPolicy
from gateway.tokens.service import TokenPair
from gateway.tokens.service import TokenReason
from gateway.tokens.service import TokenService
from gateway.tokens.service import inspect
from gateway.tokens.service import issue
from gateway.tokens.service import verify

__all__ = [
    "CredentialPolicy",
    "TokenPair",
    "TokenReason",
    "TokenService",
    "inspect",
    "issue",
    "verify",
]
