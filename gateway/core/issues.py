"""Field-level validation issues and their derivation from pydantic errors."""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

_SECTION_ALIASES = {"path": "params"}

# Lower rank wins when one field fails several constraints.
_PRESENCE_RANK = 0
_TYPE_RANK = 1
_CONSTRAINT_RANK = 2


@dataclass(frozen=True)
class ValidationIssue:
    """One failing field, identified by its path inside the request."""

    path: tuple[str, ...]
    message: str
    code: str | None = None

    @property
    def dotted_path(self) -> str:
        return ".".join(self.path) if self.path else "request"

    def as_dict(self) -> dict[str, str]:
        payload = {"path": self.dotted_path, "message": self.message}
        if self.code:
            payload["code"] = self.code
        return payload


def issue_rank(error_type: str) -> int:
    """Rank a pydantic error type as presence, type or constraint failure."""
    if error_type == "missing":
        return _PRESENCE_RANK
    if error_type.endswith("_type") or error_type.endswith("_parsing"):
        return _TYPE_RANK
    return _CONSTRAINT_RANK


def issues_from_pydantic(
    errors: Iterable[Mapping[str, Any]],
    *,
    prefix: tuple[str, ...] = (),
) -> list[ValidationIssue]:
    """Collapse pydantic errors into at most one issue per field path.

    Paths keep the order in which pydantic first reported them; within a path
    the highest-priority failure is kept.
    """
    selected: dict[tuple[str, ...], tuple[int, ValidationIssue]] = {}
    for error in errors:
        path = prefix + _normalize_location(error.get("loc", ()))
        error_type = str(error.get("type", "value_error"))
        rank = issue_rank(error_type)
        current = selected.get(path)
        if current is not None and current[0] <= rank:
            continue
        issue = ValidationIssue(
            path=path,
            message=str(error.get("msg", "Invalid value")),
            code=error_type,
        )
        selected[path] = (rank, issue)
    return [issue for _, issue in selected.values()]


def _normalize_location(location: Any) -> tuple[str, ...]:
    if not isinstance(location, (tuple, list)):
        return (str(location),)

    parts = [str(part) for part in location]
    if parts and parts[0] in _SECTION_ALIASES:
        parts[0] = _SECTION_ALIASES[parts[0]]
    return tuple(parts)


def issues_from_details(details: Any, *, message: str) -> list[ValidationIssue]:
    """Read whatever a VALIDATION error carries as ``details`` into issues.

    Accepts issues, ``{"path", "message"}`` or ``{"field", "issue"}`` mappings
    and a bare field name (reported with ``message``). Anything else is
    dropped.
    """
    if details is None:
        return []
    if isinstance(details, (str, Mapping, ValidationIssue)):
        details = [details]
    if not isinstance(details, Iterable):
        return []

    issues: list[ValidationIssue] = []
    for item in details:
        issue = _issue_from_item(item, message)
        if issue is not None:
            issues.append(issue)
    return issues


def _issue_from_item(item: Any, message: str) -> ValidationIssue | None:
    if isinstance(item, ValidationIssue):
        return item
    if isinstance(item, str) and item:
        return ValidationIssue(path=_split_path(item), message=message)
    if not isinstance(item, Mapping):
        return None

    raw_path = item.get("path", item.get("field"))
    if raw_path in (None, ""):
        return None
    if isinstance(raw_path, str):
        path = _split_path(raw_path)
    elif isinstance(raw_path, (tuple, list)):
        path = tuple(str(part) for part in raw_path)
    else:
        path = (str(raw_path),)

    item_message = item.get("message", item.get("issue")) or message
    code = item.get("code")
    return ValidationIssue(path=path, message=str(item_message), code=str(code) if code else None)


def _split_path(dotted: str) -> tuple[str, ...]:
    return tuple(part for part in dotted.split(".") if part)
