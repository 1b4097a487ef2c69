"""Declarative request schemas and the pure validation pass over them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError

from gateway.core.errors import AppError
from gateway.core.issues import ValidationIssue
from gateway.core.issues import issues_from_pydantic

SECTIONS = ("body", "query", "params")


@dataclass(frozen=True)
class RequestSchema:
    """Expected shape of a request's body, query string and path parameters.

    Each section is a pydantic model whose field declaration order is the
    order issues are reported in. A section left as ``None`` is not checked
    and is passed through unchanged.
    """

    body: type[BaseModel] | None = None
    query: type[BaseModel] | None = None
    params: type[BaseModel] | None = None

    def section_model(self, name: str) -> type[BaseModel] | None:
        return getattr(self, name)


@dataclass(frozen=True)
class RawRequest:
    """The three request sections as handed over by the web framework."""

    body: Any = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidatedRequest:
    """Request sections coerced to their declared types."""

    body: Any
    query: Any
    params: Any


@dataclass(frozen=True)
class ValidationResult:
    """Either a validated request or the ordered issues that prevented it."""

    value: ValidatedRequest | None
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues

    def raise_for_issues(self) -> ValidatedRequest:
        """Return the validated request or raise the VALIDATION error."""
        if self.issues or self.value is None:
            raise AppError.from_issues(self.issues)
        return self.value


def validate(schema: RequestSchema, raw_request: RawRequest | Mapping[str, Any] | Any) -> ValidationResult:
    """Validate every section of ``raw_request`` against ``schema``.

    All failing fields are collected: body fields first, then query, then
    path parameters, each in schema declaration order.
    """
    validated: dict[str, Any] = {}
    issues: list[ValidationIssue] = []

    for section in SECTIONS:
        raw = _read_section(raw_request, section)
        if raw is None:
            raw = {}

        model = schema.section_model(section)
        if model is None:
            validated[section] = dict(raw) if isinstance(raw, Mapping) else raw
            continue

        if not isinstance(raw, Mapping):
            issues.append(
                ValidationIssue(
                    path=(section,),
                    message=f"Request {section} must be an object",
                    code="dict_type",
                )
            )
            continue

        try:
            validated[section] = model.model_validate(dict(raw))
        except ValidationError as exc:
            section_issues = issues_from_pydantic(exc.errors(), prefix=(section,))
            issues.extend(_in_declared_order(model, section_issues))

    if issues:
        return ValidationResult(value=None, issues=tuple(issues))
    return ValidationResult(value=ValidatedRequest(**validated))


def _read_section(raw_request: Any, section: str) -> Any:
    if isinstance(raw_request, Mapping):
        return raw_request.get(section)
    return getattr(raw_request, section, None)


def _in_declared_order(model: type[BaseModel], issues: list[ValidationIssue]) -> list[ValidationIssue]:
    positions = {name: index for index, name in enumerate(model.model_fields)}
    for index, info in enumerate(model.model_fields.values()):
        if info.alias:
            positions.setdefault(info.alias, index)

    def position(issue: ValidationIssue) -> int:
        if len(issue.path) < 2:
            return -1
        return positions.get(issue.path[1], len(positions))

    return sorted(issues, key=position)
