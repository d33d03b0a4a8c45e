"""Tests for the FastAPI application shell.

Health endpoints, middleware and route registration. Webhook behaviour is
covered by the contract tests.
"""

import pytest
from fastapi.testclient import TestClient

from piecefund import __version__
from piecefund.models.errors import ERROR_MESSAGES, ERROR_RECOVERY, ErrorCode


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    from piecefund_api.main import app
    return TestClient(app)


class TestHealthCheck:
    """Tests for the health check endpoints."""

    def test_ping_returns_ok(self, client: TestClient):
        """Ping should return ok status."""
        response = client.get("/api/ping")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "piecefund-billing"
        assert "timestamp" in data

    def test_health_endpoint_returns_healthy(self, client: TestClient):
        """Health router endpoint should return healthy status."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__


class TestCorrelationId:
    """Tests for the correlation ID middleware."""

    def test_incoming_correlation_id_is_echoed(self, client: TestClient):
        response = client.get("/api/ping", headers={"X-Correlation-ID": "req-abc-123"})

        assert response.headers["X-Correlation-ID"] == "req-abc-123"

    def test_correlation_id_is_generated(self, client: TestClient):
        response = client.get("/api/ping")

        assert response.headers.get("X-Correlation-ID")


class TestCorsConfiguration:
    """Tests for CORS middleware configuration."""

    def test_cors_allows_local_frontend(self, client: TestClient):
        """CORS should allow the Vite dev server origin."""
        response = client.options(
            "/api/ping",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestRoutesRegistered:
    """Tests that all expected routes are registered."""

    def test_webhook_route_registered_outside_api_prefix(self):
        from piecefund_api.main import app

        route_paths = app.openapi()["paths"]

        assert "/webhooks/stripe" in route_paths
        assert "/api/health" in route_paths
        assert "/api/ping" in route_paths

    def test_lambda_handler_is_exposed(self):
        from mangum import Mangum

        from piecefund_api.main import handler

        assert isinstance(handler, Mangum)


class TestErrorCodeMapping:
    """Every error code renders a complete response."""

    @pytest.mark.parametrize("code", list(ErrorCode))
    def test_code_has_message_recovery_and_status(self, code: ErrorCode):
        from piecefund_api.exceptions import ERROR_CODE_TO_HTTP_STATUS

        assert ERROR_MESSAGES[code]
        assert ERROR_RECOVERY[code]
        assert code in ERROR_CODE_TO_HTTP_STATUS
