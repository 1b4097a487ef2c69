"""Shared pytest fixtures for gateway test suites."""

from collections.abc import Generator
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

ACCESS_SECRET = "access-test-secret"
REFRESH_SECRET = "refresh-test-secret"


@pytest.fixture
def settings():
    """Validated production-mode settings with independent secrets."""
    from gateway.core.config import Settings

    return Settings(
        environment="production",
        log_level="INFO",
        access_token_secret=ACCESS_SECRET,
        access_token_ttl_seconds=15 * 60,
        refresh_token_secret=REFRESH_SECRET,
        refresh_token_ttl_seconds=7 * 24 * 60 * 60,
    )


@pytest.fixture
def client(settings) -> Generator[TestClient, None, None]:
    """Provide an API test client for contract suites."""
    from gateway.main import create_app

    app = create_app(settings, configure_logs=False)
    with TestClient(app) as test_client:
        yield test_client
