"""
Tests for the FastAPI application factory.

Covers health endpoints, request correlation headers and the generic error
handlers that wrap every route.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from printfarm.core.config import get_settings
from printfarm.core.logging import (
    add_correlation_ids,
    clear_context,
    get_request_id,
    get_station_id,
    set_request_id,
    set_station_id,
)
from printfarm.main import ERROR_STATUS_CODES, create_app


class TestHealthEndpoints:
    async def test_health_check_returns_200(self, client: AsyncClient, settings) -> None:
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == settings.app_name
        assert data["environment"] == "test"

    async def test_readiness_check_when_database_answers(
        self, client: AsyncClient
    ) -> None:
        response = await client.get("/ready")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ready"
        assert data["dependencies_ready"] is True
        assert data["database"] == "healthy"

    async def test_readiness_check_when_database_is_down(
        self, client: AsyncClient, store
    ) -> None:
        with patch.object(store, "is_healthy", AsyncMock(return_value=False)):
            response = await client.get("/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["database"] == "unhealthy"


class TestRequestCorrelation:
    async def test_request_id_is_echoed(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    async def test_request_id_is_generated(self, client: AsyncClient) -> None:
        first = await client.get("/health")
        second = await client.get("/health")

        assert first.headers["X-Request-ID"]
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]

    async def test_context_is_cleared_after_request(self, client: AsyncClient) -> None:
        await client.get(
            "/health", headers={"X-Request-ID": "req-9", "X-Station-ID": "packing"}
        )

        assert get_request_id() == ""
        assert get_station_id() is None

    def test_log_events_carry_correlation_ids(self) -> None:
        set_request_id("req-42")
        set_station_id("printfarm-2")
        try:
            event = add_correlation_ids(None, "info", {"event": "Item advanced"})
        finally:
            clear_context()

        assert event == {
            "event": "Item advanced",
            "request_id": "req-42",
            "station_id": "printfarm-2",
        }
        assert add_correlation_ids(None, "info", {"event": "idle"}) == {"event": "idle"}


class TestErrorHandlers:
    @pytest.mark.parametrize(
        "code,expected",
        [
            ("not_found", 404),
            ("invalid_transition", 409),
            ("noop_transition", 409),
            ("transaction_conflict", 409),
            ("unknown_part", 422),
            ("inactive_reference", 422),
            ("storage_error", 503),
        ],
    )
    def test_error_code_mapping(self, code: str, expected: int) -> None:
        assert ERROR_STATUS_CODES[code] == expected

    async def test_unhandled_exception_returns_generic_500(
        self, settings, store
    ) -> None:
        app = create_app(settings=settings, store=store)
        app.dependency_overrides[get_settings] = lambda: settings

        @app.get("/boom")
        async def boom() -> None:
            raise RuntimeError("secret internals")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/boom")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        body = response.json()
        assert body["error"] == "internal_error"
        assert "secret" not in body["message"]

    async def test_unknown_route(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/nothing-here")
        assert response.status_code == status.HTTP_404_NOT_FOUND
