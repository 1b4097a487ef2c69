"""Response envelope schemas shared by every handler."""

from __future__ import annotations

from typing import Any
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel
from pydantic import SerializerFunctionWrapHandler
from pydantic import model_serializer
from pydantic import model_validator

from gateway.core.issues import ValidationIssue

DataT = TypeVar("DataT")

# Omitted from the wire when unset; nulls nested inside `data` are kept.
_OPTIONAL_FIELDS = ("data", "errors", "stack")


class IssueDetail(BaseModel):
    """Wire form of a single field-level issue."""

    path: str
    message: str
    code: str | None = None

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> IssueDetail:
        return cls(path=issue.dotted_path, message=issue.message, code=issue.code)

    @model_serializer(mode="wrap")
    def _omit_absent_code(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        payload = handler(self)
        if payload.get("code") is None:
            payload.pop("code", None)
        return payload


class ResponseEnvelope(BaseModel, Generic[DataT]):
    """Uniform success/failure response body."""

    success: bool
    message: str
    data: DataT | None = None
    errors: list[IssueDetail] | None = None
    stack: str | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> ResponseEnvelope:
        if self.success and (self.errors is not None or self.stack is not None):
            raise ValueError("a successful envelope cannot carry errors or a stack")
        if not self.success and self.data is not None:
            raise ValueError("a failed envelope cannot carry data")
        return self

    @model_serializer(mode="wrap")
    def _omit_absent_fields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        payload = handler(self)
        for key in _OPTIONAL_FIELDS:
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload

    def to_payload(self) -> dict[str, Any]:
        """Serialize, omitting absent top-level fields instead of emitting nulls."""
        return self.model_dump(mode="json")


def success_envelope(data: Any = None, message: str = "OK") -> ResponseEnvelope[Any]:
    return ResponseEnvelope[Any](success=True, message=message, data=data)


def failure_envelope(
    message: str,
    *,
    issues: list[ValidationIssue] | tuple[ValidationIssue, ...] | None = None,
    stack: str | None = None,
) -> ResponseEnvelope[Any]:
    errors = [IssueDetail.from_issue(issue) for issue in issues] if issues is not None else None
    return ResponseEnvelope[Any](success=False, message=message, errors=errors, stack=stack)
