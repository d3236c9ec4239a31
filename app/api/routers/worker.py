from functools import partial
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.dependencies import get_clock, run_expiry_sweep
from app.api.deps import get_session_maker
from app.application.interfaces.clock import Clock
from app.config import Settings, get_settings
from app.infrastructure.db.retry import retry_on_deadlock

router = APIRouter()


@router.post("/workers/sweep-expired", status_code=status.HTTP_200_OK)
async def sweep_expired(
    session_maker: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_maker)],
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> dict:
    """
    Reclaim expired holds and bookings past their payment window.

    Runs the same cycle as the background sweeper, with automatic deadlock retry.
    """
    return await retry_on_deadlock(
        partial(run_expiry_sweep, session_maker, settings, clock), max_attempts=3, base_delay=0.1
    )
