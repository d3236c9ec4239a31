"""
Integration tests de los endpoints de health check.

- /health y /health/live - El proceso responde
- /health/db - Conectividad con la base
- /health/ready - Base, sweeper de expiración y breaker del proveedor de pagos
"""

import pytest
from httpx import AsyncClient

from app.infrastructure.circuit_breaker import payment_breaker
from app.infrastructure.messaging.expiry_worker import ExpirySweepWorker
from app.main import app

pytestmark = pytest.mark.asyncio


async def _noop_sweep() -> dict:
    return {"expired_holds": 0, "expired_bookings": 0}


@pytest.fixture
def reset_sweeper_state():
    yield
    app.state.sweeper = None


class TestHealthChecks:
    async def test_basic_health_endpoint(self, client: AsyncClient):
        """Debe retornar 200 OK sin dependencias externas."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "rental-reservations-api"}

    async def test_liveness_alias(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_database_health_check(self, client: AsyncClient):
        """Ejecuta SELECT 1 contra la base de test."""
        response = await client.get("/health/db")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "component": "database"}


class TestReadiness:
    async def test_ready_without_sweeper(self, client: AsyncClient):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"database": "healthy", "sweeper": "disabled", "payment_provider": "closed"},
        }

    async def test_running_sweeper_is_reported(self, client: AsyncClient, reset_sweeper_state):
        worker = ExpirySweepWorker(sweep=_noop_sweep)
        worker._running = True
        app.state.sweeper = worker

        data = (await client.get("/health/ready")).json()

        assert data["status"] == "ready"
        assert data["checks"]["sweeper"] == "running"

    async def test_stopped_sweeper_degrades_readiness(self, client: AsyncClient, reset_sweeper_state):
        worker = ExpirySweepWorker(sweep=_noop_sweep)
        await worker.stop()
        app.state.sweeper = worker

        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["sweeper"] == "stopped"

    async def test_open_payment_breaker_degrades_readiness(self, client: AsyncClient):
        payment_breaker.open()

        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["payment_provider"] == "open"


@pytest.mark.integration
class TestOrchestratorChecks:
    async def test_repeated_liveness_checks(self, client: AsyncClient):
        """El orquestador llama /health/live cada N segundos; varias fallas reinician el pod."""
        for i in range(3):
            response = await client.get("/health/live")
            assert response.status_code == 200, f"Liveness check {i + 1}/3 falló"

    async def test_health_checks_no_side_effects(self, client: AsyncClient, seeded_property):
        """Los health checks son de solo lectura y no tocan el inventario."""
        for _ in range(5):
            await client.get("/health")
            await client.get("/health/db")
            await client.get("/health/ready")

        calendar = await client.get(
            "/api/v1/properties/P1/calendar", params={"from": "2025-06-01", "to": "2025-07-01"}
        )
        assert calendar.json()["events"] == []
