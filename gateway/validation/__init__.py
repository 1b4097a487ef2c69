"""Request schema validation."""

from gateway.validation.dependencies import validate_request
from gateway.validation.validator import RawRequest
from gateway.validation.validator import RequestSchema
from gateway.validation.validator import ValidatedRequest
from gateway.validation.validator import ValidationResult
from gateway.validation.validator import validate

__all__ = [
    "RawRequest",
    "RequestSchema",
    "ValidatedRequest",
    "ValidationResult",
    "validate",
    "validate_request",
]
