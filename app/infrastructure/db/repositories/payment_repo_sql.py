from decimal import Decimal
from typing import Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.payment_repo import PaymentRepo
from app.domain.entities.payment import (
    PaymentEvent,
    PaymentEventType,
    PaymentProvider,
    PaymentRecord,
    PaymentStatus,
)
from app.infrastructure.db.tables import payment_events, payment_records


class PaymentRepoSQL(PaymentRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, record: PaymentRecord) -> PaymentRecord:
        await self._session.execute(
            insert(payment_records).values(
                id=record.id,
                booking_id=record.booking_id,
                provider=record.provider.value,
                provider_ref=record.provider_ref,
                redirect_url=record.redirect_url,
                session_attempt=record.session_attempt,
                status=record.status.value,
                amount=record.amount,
                currency=record.currency,
                captured_at=record.captured_at,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )
        )
        return record

    async def save(self, record: PaymentRecord) -> PaymentRecord:
        await self._session.execute(
            update(payment_records)
            .where(payment_records.c.id == record.id)
            .values(
                provider=record.provider.value,
                provider_ref=record.provider_ref,
                redirect_url=record.redirect_url,
                session_attempt=record.session_attempt,
                status=record.status.value,
                amount=record.amount,
                currency=record.currency,
                captured_at=record.captured_at,
                updated_at=record.updated_at,
            )
        )
        return record

    async def get_by_booking(self, booking_id: str) -> PaymentRecord | None:
        result = await self._session.execute(
            select(payment_records).where(payment_records.c.booking_id == booking_id)
        )
        row = result.mappings().first()
        return self._map_payment(row) if row else None

    async def get_by_provider_ref(self, provider_ref: str) -> PaymentRecord | None:
        result = await self._session.execute(
            select(payment_records).where(payment_records.c.provider_ref == provider_ref)
        )
        row = result.mappings().first()
        return self._map_payment(row) if row else None

    async def has_event(self, payment_id: str, provider_event_id: str) -> bool:
        stmt = select(payment_events.c.id).where(
            payment_events.c.payment_id == payment_id,
            payment_events.c.provider_event_id == provider_event_id,
        )
        result = await self._session.execute(stmt)
        return result.first() is not None

    async def add_event(self, event: PaymentEvent) -> PaymentEvent:
        result = await self._session.execute(
            insert(payment_events).values(
                payment_id=event.payment_id,
                provider_event_id=event.provider_event_id,
                event_type=event.event_type.value,
                amount=event.amount,
                currency=event.currency,
                payload=event.payload,
                received_at=event.received_at,
            )
        )
        event.id = result.inserted_primary_key[0]
        return event

    async def list_events(self, payment_id: str) -> Sequence[PaymentEvent]:
        stmt = (
            select(payment_events)
            .where(payment_events.c.payment_id == payment_id)
            .order_by(payment_events.c.id)
        )
        result = await self._session.execute(stmt)
        return [self._map_event(row) for row in result.mappings().all()]

    def _map_payment(self, row) -> PaymentRecord:
        return PaymentRecord(
            id=row["id"],
            booking_id=row["booking_id"],
            provider=PaymentProvider(row["provider"]),
            provider_ref=row["provider_ref"],
            redirect_url=row["redirect_url"],
            session_attempt=row["session_attempt"],
            status=PaymentStatus(row["status"]),
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            captured_at=row["captured_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _map_event(self, row) -> PaymentEvent:
        return PaymentEvent(
            id=row["id"],
            payment_id=row["payment_id"],
            provider_event_id=row["provider_event_id"],
            event_type=PaymentEventType(row["event_type"]),
            amount=Decimal(row["amount"]) if row["amount"] is not None else None,
            currency=row["currency"],
            payload=row["payload"],
            received_at=row["received_at"],
        )
