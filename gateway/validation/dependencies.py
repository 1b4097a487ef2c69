"""FastAPI dependency that runs request validation before a route handler."""

from __future__ import annotations

from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import replace
import json
from typing import Any

from fastapi import Request

from gateway.core.errors import AppError
from gateway.core.issues import ValidationIssue
from gateway.validation.validator import RawRequest
from gateway.validation.validator import RequestSchema
from gateway.validation.validator import ValidatedRequest
from gateway.validation.validator import validate


class _MalformedBody(ValueError):
    pass


async def _read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise _MalformedBody(str(exc)) from exc


def validate_request(schema: RequestSchema) -> Callable[[Request], Awaitable[ValidatedRequest]]:
    """Build a dependency returning the validated request or raising VALIDATION."""

    async def dependency(request: Request) -> ValidatedRequest:
        leading: list[ValidationIssue] = []
        effective_schema = schema
        body: Any = {}
        if schema.body is not None:
            try:
                body = await _read_json_body(request)
            except _MalformedBody:
                leading.append(
                    ValidationIssue(path=("body",), message="Request body must be valid JSON", code="json_invalid")
                )
                effective_schema = replace(schema, body=None)

        raw_request = RawRequest(
            body=body,
            query=dict(request.query_params),
            params=dict(request.path_params),
        )
        result = validate(effective_schema, raw_request)
        if leading or result.issues:
            raise AppError.from_issues([*leading, *result.issues])
        return result.raise_for_issues()

    return dependency
