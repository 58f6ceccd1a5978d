"""Tests for global exception handlers.

Validates that domain errors are rendered with a consistent structure and
that unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import AppError, ValidationAppError
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers
from app.core.validation import validate_project_name, validate_slug


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/projects")
        async def create_project():
            validate_project_name("x" * 51)

        response = client.post("/projects")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "project_name_too_long"
        assert error["message"] == "Project name cannot exceed 50 characters"
        assert error["details"] == {"field": "project_name", "max_length": 50, "actual_length": 51}
        assert "request_id" in error

    def test_details_omitted_when_empty(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/plain")
        async def plain():
            raise AppError(code="plain_error", message="Plain")

        error = client.get("/plain").json()["error"]

        assert error["code"] == "plain_error"
        assert "details" not in error

    def test_handler_result_matches_validator_message(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/slug")
        async def slug():
            validate_slug("!!!")

        response = client.get("/slug")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Slug contains no valid characters"


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_returns_generic_500(self):
        request = AsyncMock()
        request.url.path = "/api/projects"
        request.method = "GET"

        exc = RuntimeError("connection to hosted database failed")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "database" not in data["error"]["message"]
        assert "request_id" in data["error"]

    def test_never_leaks_exception_type(self):
        request = AsyncMock()
        request.url.path = "/api/projects"
        request.method = "POST"

        response = asyncio.run(general_exception_handler(request, ValueError("secret detail")))

        body = bytes(response.body).decode()
        assert "Traceback" not in body
        assert "ValueError" not in body
        assert "secret detail" not in body


def test_setup_registers_handlers_and_is_repeatable():
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
    assert Exception in app.exception_handlers


def test_app_error_str_is_message():
    error = ValidationAppError(code="c", message="Readable message")
    assert str(error) == "Readable message"
