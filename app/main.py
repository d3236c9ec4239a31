import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_clock, run_expiry_sweep
from app.api.deps import AsyncSessionLocal, engine
from app.api.routers.admin import router as admin_router
from app.api.routers.health import router as health_router
from app.api.routers.reservations import router as reservations_router
from app.api.routers.webhooks import router as webhooks_router
from app.api.routers.worker import router as worker_router
from app.config import get_settings
from app.domain.errors import DomainError, HoldConflictError, NotFoundError
from app.infrastructure.db.tables import metadata
from app.infrastructure.messaging.expiry_worker import ExpirySweepWorker

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ERROR_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "WEBHOOK_SIGNATURE_INVALID": 401,
    "NOT_OWNER": 403,
    "HOLD_CONFLICT": 409,
    "HOLD_EXPIRED": 409,
    "INVALID_TRANSITION": 409,
    "CONCURRENT_MODIFICATION": 409,
    "CANCELLATION_NOT_ALLOWED": 409,
    "REFUND_NOT_ALLOWED": 409,
    "STATEMENT_ALREADY_FINALIZED": 409,
    "STATEMENT_TRANSITION_DENIED": 409,
    "PAYOUT_TRANSITION_DENIED": 409,
    "PAYMENT_MISMATCH": 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Initialize DB tables (for dev/demo purposes)
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    worker = None
    worker_task = None
    if settings.sweeper_enabled:
        worker = ExpirySweepWorker(
            sweep=partial(run_expiry_sweep, AsyncSessionLocal, settings, get_clock()),
            poll_interval_seconds=settings.sweep_interval_seconds,
        )
        worker_task = asyncio.create_task(worker.start())
    app.state.sweeper = worker
    yield
    # Cleanup
    if worker is not None:
        await worker.stop()
        await worker_task
    await engine.dispose()

app = FastAPI(
    title="Rental Reservations API",
    version="0.1.0",
    lifespan=lifespan
)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Map domain errors to HTTP responses with a stable machine-readable code."""
    if isinstance(exc, NotFoundError):
        status_code = 404
    else:
        status_code = ERROR_STATUS_BY_CODE.get(exc.code, 400)

    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, HoldConflictError):
        content["conflicts"] = [
            {"kind": kind, "start": start.isoformat(), "end": end.isoformat()}
            for kind, start, end in exc.conflicts
        ]

    logger.info(
        "Domain error",
        extra={"path": request.url.path, "code": exc.code, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content=content)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to prevent stack trace exposure to clients.
    All unhandled exceptions are logged internally and return a generic error message.
    """
    error_id = str(uuid.uuid4())

    # Log the full error with context for internal debugging
    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        }
    )

    # Return a generic error to the client without exposing internal details
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please contact support with the error_id if the issue persists."
        }
    )


app.include_router(health_router, tags=["Health"])
app.include_router(reservations_router, prefix="/api/v1", tags=["Reservations"])
app.include_router(webhooks_router, prefix="/api/v1", tags=["Webhooks"])
app.include_router(admin_router, prefix="/api/v1/admin", tags=["Admin"])
app.include_router(worker_router, prefix="/api/v1", tags=["Worker"])
