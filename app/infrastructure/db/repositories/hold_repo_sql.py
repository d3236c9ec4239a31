from datetime import datetime
from typing import Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.hold_repo import HoldRepo
from app.domain.entities.hold import Hold, HoldStatus
from app.infrastructure.db.tables import holds


class HoldRepoSQL(HoldRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, hold: Hold) -> Hold:
        await self._session.execute(
            insert(holds).values(
                id=hold.id,
                property_id=hold.property_id,
                customer_id=hold.customer_id,
                check_in=hold.check_in,
                check_out=hold.check_out,
                guests=hold.guests,
                status=hold.status.value,
                expires_at=hold.expires_at,
                booking_id=hold.booking_id,
                created_at=hold.created_at,
                updated_at=hold.updated_at,
            )
        )
        return hold

    async def get(self, hold_id: str) -> Hold | None:
        result = await self._session.execute(select(holds).where(holds.c.id == hold_id))
        row = result.mappings().first()
        return self._map_hold(row) if row else None

    async def save(self, hold: Hold) -> Hold:
        await self._session.execute(
            update(holds)
            .where(holds.c.id == hold.id)
            .values(
                status=hold.status.value,
                booking_id=hold.booking_id,
                updated_at=hold.updated_at,
            )
        )
        return hold

    async def list_expired_active(self, now: datetime, limit: int) -> Sequence[Hold]:
        stmt = (
            select(holds)
            .where(holds.c.status == HoldStatus.ACTIVE.value, holds.c.expires_at <= now)
            .order_by(holds.c.expires_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._map_hold(row) for row in result.mappings().all()]

    def _map_hold(self, row) -> Hold:
        return Hold(
            id=row["id"],
            property_id=row["property_id"],
            customer_id=row["customer_id"],
            check_in=row["check_in"],
            check_out=row["check_out"],
            guests=row["guests"],
            expires_at=row["expires_at"],
            status=HoldStatus(row["status"]),
            booking_id=row["booking_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
