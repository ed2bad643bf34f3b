"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AppError,
    ChangelogParseError,
    NotFoundAppError,
)
from app.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_plain_app_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def endpoint():
            raise AppError(code="bad_filter", message="Bad filter")

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "bad_filter"
        assert data["error"]["message"] == "Bad filter"
        assert "request_id" in data["error"]

    def test_not_found_error_returns_404_with_details(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-missing")
        async def endpoint():
            raise NotFoundAppError(
                code="changelog_not_found",
                message="Changelog not found.",
                details={"path": "CHANGELOG.md"},
            )

        response = client.get("/test-missing")

        assert response.status_code == 404
        data = response.json()
        assert data["error"]["code"] == "changelog_not_found"
        assert data["error"]["details"] == {"path": "CHANGELOG.md"}

    def test_parse_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-parse")
        async def endpoint():
            raise ChangelogParseError(code="changelog_undecodable", message="Not UTF-8")

        response = client.get("/test-parse")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "changelog_undecodable"

    def test_details_omitted_when_absent(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-format")
        async def endpoint():
            raise AppError(code="test", message="test")

        data = client.get("/test-format").json()

        assert set(data["error"]) == {"code", "message", "request_id"}


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (AppError(code="x", message="x"), 400),
        (NotFoundAppError(code="x", message="x"), 404),
        (ChangelogParseError(code="x", message="x"), 500),
    ],
)
def test_status_code_for(exc: AppError, expected: int):
    assert status_code_for(exc) == expected


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_generic_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/boom")
        async def endpoint():
            raise RuntimeError("template cache exploded")

        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "exploded" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("details")))

        body = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        text = json.dumps(body)
        assert "Traceback" not in text
        assert "ValueError" not in text
        assert "details" not in body["error"]["message"]


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
