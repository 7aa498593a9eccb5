"""Pytest configuration and fixtures."""

import json
import os
import tempfile
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from dotenv import load_dotenv

# Load test environment variables
load_dotenv()

# Set test environment (before app modules read their configuration)
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault(
    "TENANTS_FILE",
    os.path.join(tempfile.gettempdir(), "maximo-mcp-tests", "absent", "tenants.json"),
)
os.environ.pop("TENANT_STORE_URL", None)
os.environ.pop("ADMIN_API_KEY", None)


def _make_response(
    status_code: int = 200,
    body: Any = None,
    content_type: str = "application/json",
    text: Optional[str] = None,
) -> MagicMock:
    """httpx.Response stand-in exposing the attributes the adapters read."""
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.headers = {"content-type": content_type}
    response.text = text if text is not None else json.dumps(body if body is not None else {})
    return response


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def http_client():
    """Patch httpx.AsyncClient; yields the client used inside `async with`."""
    with patch("httpx.AsyncClient") as mock_client_class:
        client = AsyncMock()
        mock_client_class.return_value.__aenter__.return_value = client
        mock_client_class.return_value.__aexit__.return_value = False
        yield client


@pytest.fixture
def tenant_record():
    """Factory for camelCase tenant records (apiKey mode by default)."""
    def _record(**overrides):
        record = {
            "tenantId": "t1",
            "baseUrl": "https://maximo.example.com/maximo",
            "authMode": "apiKey",
            "apiKey": "test-api-key",
        }
        record.update(overrides)
        return record
    return _record
