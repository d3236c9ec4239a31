from decimal import Decimal
from typing import Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.cancellation_repo import CancellationRepo
from app.domain.entities.cancellation import (
    CancellationActor,
    CancellationMode,
    CancellationRecord,
    RefundRecord,
    RefundStatus,
)
from app.domain.entities.statement import StatementLineKind, StatementPeriod, StatementStatus
from app.infrastructure.db.tables import (
    cancellation_records,
    refund_records,
    statement_lines,
    vendor_statements,
)


class CancellationRepoSQL(CancellationRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, record: CancellationRecord) -> CancellationRecord:
        await self._session.execute(
            insert(cancellation_records).values(
                id=record.id,
                booking_id=record.booking_id,
                actor=record.actor.value,
                mode=record.mode.value,
                reason=record.reason,
                penalty_amount=record.penalty_amount,
                refundable_amount=record.refundable_amount,
                amount_paid=record.amount_paid,
                currency=record.currency,
                notes=record.notes,
                policy_snapshot=record.policy_snapshot,
                cancelled_at=record.cancelled_at,
            )
        )
        return record

    async def get_by_booking(self, booking_id: str) -> CancellationRecord | None:
        result = await self._session.execute(
            select(cancellation_records).where(cancellation_records.c.booking_id == booking_id)
        )
        row = result.mappings().first()
        return self._map_cancellation(row) if row else None

    async def add_refund(self, refund: RefundRecord) -> RefundRecord:
        await self._session.execute(
            insert(refund_records).values(
                id=refund.id,
                booking_id=refund.booking_id,
                vendor_id=refund.vendor_id,
                amount=refund.amount,
                currency=refund.currency,
                reason=refund.reason,
                provider=refund.provider,
                status=refund.status.value,
                provider_refund_ref=refund.provider_refund_ref,
                failure_reason=refund.failure_reason,
                created_at=refund.created_at,
                processed_at=refund.processed_at,
            )
        )
        return refund

    async def get_refund(self, refund_id: str) -> RefundRecord | None:
        result = await self._session.execute(
            select(refund_records).where(refund_records.c.id == refund_id)
        )
        row = result.mappings().first()
        return self._map_refund(row) if row else None

    async def save_refund(self, refund: RefundRecord) -> RefundRecord:
        await self._session.execute(
            update(refund_records)
            .where(refund_records.c.id == refund.id)
            .values(
                status=refund.status.value,
                provider_refund_ref=refund.provider_refund_ref,
                failure_reason=refund.failure_reason,
                processed_at=refund.processed_at,
            )
        )
        return refund

    async def list_refunds(self, booking_id: str) -> Sequence[RefundRecord]:
        stmt = (
            select(refund_records)
            .where(refund_records.c.booking_id == booking_id)
            .order_by(refund_records.c.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._map_refund(row) for row in result.mappings().all()]

    def _eligible(self, currency: str, period: StatementPeriod):
        already_stated = (
            select(statement_lines.c.ref_id)
            .join(vendor_statements, vendor_statements.c.id == statement_lines.c.statement_id)
            .where(
                statement_lines.c.kind == StatementLineKind.REFUND.value,
                vendor_statements.c.status != StatementStatus.VOID.value,
            )
        )
        # Solo se descuenta lo que ya se acreditó al anfitrión en un estado vigente.
        credited = (
            select(statement_lines.c.booking_id)
            .join(vendor_statements, vendor_statements.c.id == statement_lines.c.statement_id)
            .where(
                statement_lines.c.kind == StatementLineKind.BOOKING.value,
                vendor_statements.c.status != StatementStatus.VOID.value,
            )
        )
        return (
            refund_records.c.booking_id.in_(credited),
            refund_records.c.status == RefundStatus.SUCCEEDED.value,
            refund_records.c.currency == currency,
            refund_records.c.processed_at >= period.start_at,
            refund_records.c.processed_at < period.end_at,
            refund_records.c.id.not_in(already_stated),
        )

    async def list_unstated_refunds(
        self,
        vendor_id: str,
        currency: str,
        period: StatementPeriod,
    ) -> Sequence[RefundRecord]:
        stmt = (
            select(refund_records)
            .where(refund_records.c.vendor_id == vendor_id, *self._eligible(currency, period))
            .order_by(refund_records.c.processed_at)
        )
        result = await self._session.execute(stmt)
        return [self._map_refund(row) for row in result.mappings().all()]

    async def list_refund_vendor_ids(self, currency: str, period: StatementPeriod) -> Sequence[str]:
        stmt = select(refund_records.c.vendor_id).where(*self._eligible(currency, period)).distinct()
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _map_cancellation(self, row) -> CancellationRecord:
        return CancellationRecord(
            id=row["id"],
            booking_id=row["booking_id"],
            actor=CancellationActor(row["actor"]),
            mode=CancellationMode(row["mode"]),
            reason=row["reason"],
            penalty_amount=Decimal(row["penalty_amount"]),
            refundable_amount=Decimal(row["refundable_amount"]),
            amount_paid=Decimal(row["amount_paid"]),
            currency=row["currency"],
            notes=row["notes"],
            policy_snapshot=row["policy_snapshot"] or {},
            cancelled_at=row["cancelled_at"],
        )

    def _map_refund(self, row) -> RefundRecord:
        return RefundRecord(
            id=row["id"],
            booking_id=row["booking_id"],
            vendor_id=row["vendor_id"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            reason=row["reason"],
            provider=row["provider"],
            status=RefundStatus(row["status"]),
            provider_refund_ref=row["provider_refund_ref"],
            failure_reason=row["failure_reason"],
            created_at=row["created_at"],
            processed_at=row["processed_at"],
        )
