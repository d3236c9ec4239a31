from datetime import datetime
from typing import Sequence

from sqlalchemy import and_, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.availability_repo import AvailabilityRepo
from app.domain.entities.availability_event import AvailabilityEvent, AvailabilityKind
from app.domain.value_objects.date_range import DateRange
from app.infrastructure.db.tables import availability_events


class AvailabilityRepoSQL(AvailabilityRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _overlaps(self, property_id: str, stay: DateRange):
        # [a,b) y [c,d) se solapan si a < d y c < b
        return and_(
            availability_events.c.property_id == property_id,
            availability_events.c.start_date < stay.end,
            availability_events.c.end_date > stay.start,
            availability_events.c.released_at.is_(None),
        )

    def _active(self, now: datetime):
        return or_(
            availability_events.c.expires_at.is_(None),
            availability_events.c.expires_at > now,
        )

    async def find_overlapping(
        self,
        property_id: str,
        stay: DateRange,
        now: datetime,
        kinds: Sequence[AvailabilityKind] | None = None,
    ) -> Sequence[AvailabilityEvent]:
        stmt = select(availability_events).where(self._overlaps(property_id, stay), self._active(now))
        if kinds:
            stmt = stmt.where(availability_events.c.kind.in_([kind.value for kind in kinds]))
        result = await self._session.execute(stmt.order_by(availability_events.c.start_date))
        return [self._map_event(row) for row in result.mappings().all()]

    async def find_stale(
        self,
        property_id: str,
        stay: DateRange,
        now: datetime,
        kind: AvailabilityKind,
    ) -> Sequence[AvailabilityEvent]:
        stmt = select(availability_events).where(
            self._overlaps(property_id, stay),
            availability_events.c.kind == kind.value,
            availability_events.c.expires_at <= now,
        )
        result = await self._session.execute(stmt)
        return [self._map_event(row) for row in result.mappings().all()]

    async def add(self, event: AvailabilityEvent) -> AvailabilityEvent:
        await self._session.execute(
            insert(availability_events).values(
                id=event.id,
                property_id=event.property_id,
                kind=event.kind.value,
                start_date=event.start,
                end_date=event.end,
                ref_id=event.ref_id,
                expires_at=event.expires_at,
                released_at=event.released_at,
                note=event.note,
                created_at=event.created_at,
            )
        )
        return event

    async def get(self, event_id: str) -> AvailabilityEvent | None:
        result = await self._session.execute(
            select(availability_events).where(availability_events.c.id == event_id)
        )
        row = result.mappings().first()
        return self._map_event(row) if row else None

    async def release(self, event_id: str, now: datetime) -> None:
        await self._session.execute(
            update(availability_events)
            .where(
                availability_events.c.id == event_id,
                availability_events.c.released_at.is_(None),
            )
            .values(released_at=now)
        )

    async def release_by_ref(self, ref_id: str, now: datetime) -> int:
        result = await self._session.execute(
            update(availability_events)
            .where(
                availability_events.c.ref_id == ref_id,
                availability_events.c.released_at.is_(None),
            )
            .values(released_at=now)
        )
        return result.rowcount

    async def upgrade_hold_to_booking(
        self,
        hold_id: str,
        booking_id: str,
        expires_at: datetime,
    ) -> int:
        result = await self._session.execute(
            update(availability_events)
            .where(
                availability_events.c.ref_id == hold_id,
                availability_events.c.kind == AvailabilityKind.HOLD.value,
                availability_events.c.released_at.is_(None),
            )
            .values(
                kind=AvailabilityKind.BOOKING.value,
                ref_id=booking_id,
                expires_at=expires_at,
            )
        )
        return result.rowcount

    async def clear_expiry(self, ref_id: str) -> int:
        result = await self._session.execute(
            update(availability_events)
            .where(
                availability_events.c.ref_id == ref_id,
                availability_events.c.released_at.is_(None),
            )
            .values(expires_at=None)
        )
        return result.rowcount

    async def list_active(
        self,
        property_id: str,
        stay: DateRange,
        now: datetime,
    ) -> Sequence[AvailabilityEvent]:
        return await self.find_overlapping(property_id, stay, now)

    def _map_event(self, row) -> AvailabilityEvent:
        return AvailabilityEvent(
            id=row["id"],
            property_id=row["property_id"],
            kind=AvailabilityKind(row["kind"]),
            start=row["start_date"],
            end=row["end_date"],
            ref_id=row["ref_id"],
            expires_at=row["expires_at"],
            released_at=row["released_at"],
            note=row["note"],
            created_at=row["created_at"],
        )
