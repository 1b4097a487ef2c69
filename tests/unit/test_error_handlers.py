"""Unit tests for exception handler registration on a FastAPI app."""

from __future__ import annotations

from dataclasses import replace
import logging

from fastapi import Depends
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from pydantic import Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.core.dispatcher import register_error_handlers
from gateway.core.errors import AppError
from gateway.core.errors import ErrorKind
from gateway.validation import RequestSchema
from gateway.validation import ValidatedRequest
from gateway.validation import validate_request


class PipelineBody(BaseModel):
    name: str = Field(min_length=3)
    retries: int = Field(ge=0)


class PipelineParams(BaseModel):
    pipeline_id: int


PIPELINE_SCHEMA = RequestSchema(body=PipelineBody, params=PipelineParams)


class DuplicateKeyError(Exception):
    kind = "CONFLICT"


class SearchQuery(BaseModel):
    limit: int = Field(ge=1)


SEARCH_SCHEMA = RequestSchema(query=SearchQuery)


class RejectedRowError(Exception):
    kind = "VALIDATION"
    details = [{"path": "body.email", "message": "Email is already registered"}]


def _build_client(settings, *, raise_server_exceptions: bool = True) -> TestClient:
    app = FastAPI()
    register_error_handlers(app, settings)

    @app.get("/query")
    def query(limit: int) -> dict[str, int]:
        return {"limit": limit}

    @app.put("/pipelines/{pipeline_id}")
    def update_pipeline(request: ValidatedRequest = Depends(validate_request(PIPELINE_SCHEMA))) -> dict:
        return {"id": request.params.pipeline_id, "retries": request.body.retries}

    @app.get("/not-found")
    def not_found() -> None:
        raise AppError(ErrorKind.NOT_FOUND, "Pipeline not found")

    @app.get("/duplicate")
    def duplicate() -> None:
        raise DuplicateKeyError("Pipeline name must be unique")

    @app.get("/rejected-row")
    def rejected_row() -> None:
        raise RejectedRowError("Row rejected")

    @app.post("/search")
    def search(request: ValidatedRequest = Depends(validate_request(SEARCH_SCHEMA))) -> dict[str, int]:
        return {"limit": request.query.limit}

    @app.get("/http")
    def http_error() -> None:
        raise StarletteHTTPException(status_code=404, detail="Client not found")

    @app.get("/crash")
    def crash() -> None:
        raise RuntimeError("secret connection string")

    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


def test_framework_validation_errors_use_shared_envelope(settings) -> None:
    client = _build_client(settings)

    response = client.get("/query")

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Request validation failed"
    assert payload["errors"][0]["path"] == "query.limit"


def test_schema_validation_reports_all_sections(settings) -> None:
    client = _build_client(settings)

    response = client.put("/pipelines/abc", json={"name": "x"})

    assert response.status_code == 400
    paths = [item["path"] for item in response.json()["errors"]]
    assert paths == ["body.name", "body.retries", "params.pipeline_id"]


def test_schema_validation_passes_coerced_values(settings) -> None:
    client = _build_client(settings)

    response = client.put("/pipelines/7", json={"name": "nightly", "retries": "2"})

    assert response.status_code == 200
    assert response.json() == {"id": 7, "retries": 2}


def test_malformed_json_body_is_a_validation_issue(settings) -> None:
    client = _build_client(settings)

    response = client.put(
        "/pipelines/7",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert [item["path"] for item in response.json()["errors"]] == ["body"]


def test_domain_errors_use_shared_envelope(settings) -> None:
    client = _build_client(settings)

    response = client.get("/not-found")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Pipeline not found"}


def test_tagged_lower_layer_errors_keep_their_kind(settings) -> None:
    client = _build_client(settings, raise_server_exceptions=False)

    response = client.get("/duplicate")

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Pipeline name must be unique"}


def test_http_errors_are_wrapped_in_shared_envelope(settings) -> None:
    client = _build_client(settings)

    response = client.get("/http")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Client not found"}


def test_unknown_routes_are_not_found(settings) -> None:
    client = _build_client(settings)

    response = client.get("/missing")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_unexpected_errors_do_not_leak(settings, caplog) -> None:
    client = _build_client(settings, raise_server_exceptions=False)

    with caplog.at_level(logging.ERROR, logger="gateway.core.dispatcher"):
        response = client.get("/crash")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
    records = [record for record in caplog.records if record.name == "gateway.core.dispatcher"]
    assert len(records) == 1
    assert records[0].request_path == "/crash"
    assert records[0].request_method == "GET"


def test_development_exposes_stack(settings) -> None:
    client = _build_client(replace(settings, environment="development"), raise_server_exceptions=False)

    response = client.get("/crash")

    payload = response.json()
    assert payload["message"] == "Internal server error"
    assert "RuntimeError" in payload["stack"]


def test_tagged_validation_errors_report_their_details(settings) -> None:
    client = _build_client(settings, raise_server_exceptions=False)

    response = client.get("/rejected-row")

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Row rejected",
        "errors": [{"path": "body.email", "message": "Email is already registered"}],
    }


def test_query_only_schema_ignores_non_json_body(settings) -> None:
    client = _build_client(settings)

    response = client.post(
        "/search?limit=3",
        content=b"a=1&b=2",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 200
    assert response.json() == {"limit": 3}
