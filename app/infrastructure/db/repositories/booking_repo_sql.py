from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.booking_repo import BookingRepo
from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.statement import StatementLineKind, StatementPeriod, StatementStatus
from app.domain.errors import ConcurrentModificationError
from app.infrastructure.db.tables import bookings, statement_lines, vendor_statements


class BookingRepoSQL(BookingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, booking: Booking) -> Booking:
        await self._session.execute(
            insert(bookings).values(
                id=booking.id,
                property_id=booking.property_id,
                vendor_id=booking.vendor_id,
                customer_id=booking.customer_id,
                hold_id=booking.hold_id,
                check_in=booking.check_in,
                check_out=booking.check_out,
                guests=booking.guests,
                currency=booking.currency,
                base_amount=booking.base_amount,
                cleaning_fee=booking.cleaning_fee,
                service_fee=booking.service_fee,
                taxes=booking.taxes,
                total_amount=booking.total_amount,
                status=booking.status.value,
                expires_at=booking.expires_at,
                version=booking.version,
                created_at=booking.created_at,
                updated_at=booking.updated_at,
            )
        )
        return booking

    async def get(self, booking_id: str) -> Booking | None:
        result = await self._session.execute(select(bookings).where(bookings.c.id == booking_id))
        row = result.mappings().first()
        return self._map_booking(row) if row else None

    async def get_by_hold(self, hold_id: str) -> Booking | None:
        result = await self._session.execute(select(bookings).where(bookings.c.hold_id == hold_id))
        row = result.mappings().first()
        return self._map_booking(row) if row else None

    async def save_transition(self, booking: Booking, expected_version: int) -> Booking:
        stmt = (
            update(bookings)
            .where(bookings.c.id == booking.id, bookings.c.version == expected_version)
            .values(
                status=booking.status.value,
                version=bookings.c.version + 1,
                confirmed_event_id=booking.confirmed_event_id,
                confirmed_at=booking.confirmed_at,
                cancelled_at=booking.cancelled_at,
                expired_at=booking.expired_at,
                updated_at=booking.updated_at,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModificationError(booking.id, expected_version)
        return booking

    async def list_overdue_ids(self, now: datetime, limit: int) -> Sequence[str]:
        stmt = (
            select(bookings.c.id)
            .where(
                bookings.c.status == BookingStatus.PENDING_PAYMENT.value,
                bookings.c.expires_at <= now,
            )
            .order_by(bookings.c.expires_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _already_stated(self):
        return (
            select(statement_lines.c.ref_id)
            .join(vendor_statements, vendor_statements.c.id == statement_lines.c.statement_id)
            .where(
                statement_lines.c.kind == StatementLineKind.BOOKING.value,
                vendor_statements.c.status != StatementStatus.VOID.value,
            )
        )

    def _eligible(self, currency: str, period: StatementPeriod):
        return (
            bookings.c.status == BookingStatus.CONFIRMED.value,
            bookings.c.currency == currency,
            bookings.c.check_out >= period.start,
            bookings.c.check_out < period.end,
            bookings.c.id.not_in(self._already_stated()),
        )

    async def list_unstated_confirmed(
        self,
        vendor_id: str,
        currency: str,
        period: StatementPeriod,
    ) -> Sequence[Booking]:
        stmt = (
            select(bookings)
            .where(bookings.c.vendor_id == vendor_id, *self._eligible(currency, period))
            .order_by(bookings.c.check_out, bookings.c.id)
        )
        result = await self._session.execute(stmt)
        return [self._map_booking(row) for row in result.mappings().all()]

    async def list_vendor_ids(self, currency: str, period: StatementPeriod) -> Sequence[str]:
        stmt = (
            select(bookings.c.vendor_id)
            .where(*self._eligible(currency, period))
            .distinct()
            .order_by(bookings.c.vendor_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _map_booking(self, row) -> Booking:
        return Booking(
            id=row["id"],
            property_id=row["property_id"],
            vendor_id=row["vendor_id"],
            customer_id=row["customer_id"],
            hold_id=row["hold_id"],
            check_in=row["check_in"],
            check_out=row["check_out"],
            guests=row["guests"],
            currency=row["currency"],
            base_amount=Decimal(row["base_amount"]),
            cleaning_fee=Decimal(row["cleaning_fee"]),
            service_fee=Decimal(row["service_fee"]),
            taxes=Decimal(row["taxes"]),
            total_amount=Decimal(row["total_amount"]),
            expires_at=row["expires_at"],
            status=BookingStatus(row["status"]),
            version=row["version"],
            confirmed_event_id=row["confirmed_event_id"],
            confirmed_at=row["confirmed_at"],
            cancelled_at=row["cancelled_at"],
            expired_at=row["expired_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
