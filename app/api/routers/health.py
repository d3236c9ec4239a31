"""
Health endpoints for the reservations service.

- /health, /health/live: the process answers
- /health/db: the database accepts queries
- /health/ready: database, expiry sweeper and payment provider breaker
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session
from app.infrastructure.circuit_breaker import payment_breaker

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "rental-reservations-api"


async def _database_ok(session: AsyncSession) -> bool:
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed", exc_info=e)
        return False
    return True


def _sweeper_state(request: Request) -> str:
    worker = getattr(request.app.state, "sweeper", None)
    if worker is None:
        return "disabled"
    return "running" if worker.is_running else "stopped"


@router.get("/health")
@router.get("/health/live")
async def health_check():
    """Liveness: responde mientras el proceso esté vivo."""
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/db")
async def health_check_db(session: AsyncSession = Depends(get_db_session)):
    if not await _database_ok(session):
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "component": "database", "error": "Database connection failed"},
        )
    return {"status": "healthy", "component": "database"}


@router.get("/health/ready")
async def health_check_ready(request: Request, session: AsyncSession = Depends(get_db_session)):
    """
    Readiness del servicio.

    Solo la base de datos saca la instancia de rotación. Un sweeper detenido
    o el breaker del proveedor abierto se reportan como "degraded": las
    reservas siguen funcionando y la expiración perezosa cubre al sweeper,
    pero abrir sesiones de pago y reembolsar fallará rápido.
    """
    checks = {
        "database": "healthy" if await _database_ok(session) else "unhealthy",
        "sweeper": _sweeper_state(request),
        "payment_provider": payment_breaker.current_state,
    }

    if checks["database"] != "healthy":
        return JSONResponse(status_code=503, content={"status": "not_ready", "checks": checks})

    degraded = checks["sweeper"] == "stopped" or checks["payment_provider"] != "closed"
    if degraded:
        logger.warning("Readiness degraded", extra=checks)
    return {"status": "degraded" if degraded else "ready", "checks": checks}
