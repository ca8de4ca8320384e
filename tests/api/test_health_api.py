"""API tests for the health controller.

Verifies the health endpoint's status code and body shape, and that the
PostgreSQL and Redis checks are delegated to the mocked clients.
"""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_reports_healthy_when_both_stores_respond(self, client: TestClient) -> None:
        """GET /health reports healthy with both stores connected."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "postgres": "connected",
            "redis": "connected",
        }

    def test_checks_postgres_dependency(
        self, client: TestClient, mock_postgres_client: MagicMock
    ) -> None:
        """GET /health calls postgres_client.health_check."""
        client.get("/health")

        mock_postgres_client.health_check.assert_awaited_once()

    def test_checks_redis_dependency(
        self, client: TestClient, mock_redis_client: MagicMock
    ) -> None:
        """GET /health pings Redis."""
        client.get("/health")

        mock_redis_client.ping.assert_awaited_once()

    def test_reports_unhealthy_with_error_when_postgres_fails(
        self, client: TestClient, mock_postgres_client: MagicMock
    ) -> None:
        """A failing PostgreSQL check yields status unhealthy and the error text."""
        mock_postgres_client.health_check = AsyncMock(
            side_effect=ConnectionError("connection refused")
        )

        body = client.get("/health").json()

        assert body["status"] == "unhealthy"
        assert "connection refused" in body["error"]
        assert "postgres" not in body
