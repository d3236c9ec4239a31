from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.payout_repo import PayoutRepo
from app.domain.entities.payout import Payout, PayoutStatus
from app.infrastructure.db.tables import payouts


class PayoutRepoSQL(PayoutRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, payout: Payout) -> Payout:
        await self._session.execute(
            insert(payouts).values(
                id=payout.id,
                statement_id=payout.statement_id,
                vendor_id=payout.vendor_id,
                amount=payout.amount,
                currency=payout.currency,
                provider=payout.provider,
                created_at=payout.created_at,
                **self._mutable_values(payout),
            )
        )
        return payout

    async def get(self, payout_id: str, for_update: bool = False) -> Payout | None:
        stmt = select(payouts).where(payouts.c.id == payout_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return self._map_payout(row) if row else None

    async def get_by_statement(self, statement_id: str) -> Payout | None:
        result = await self._session.execute(
            select(payouts).where(payouts.c.statement_id == statement_id)
        )
        row = result.mappings().first()
        return self._map_payout(row) if row else None

    async def save(self, payout: Payout) -> Payout:
        await self._session.execute(
            update(payouts).where(payouts.c.id == payout.id).values(**self._mutable_values(payout))
        )
        return payout

    def _mutable_values(self, payout: Payout) -> dict:
        return {
            "status": payout.status.value,
            "provider_ref": payout.provider_ref,
            "failure_reason": payout.failure_reason,
            "idempotency_key": payout.idempotency_key,
            "attempts": payout.attempts,
            "processing_at": payout.processing_at,
            "succeeded_at": payout.succeeded_at,
            "failed_at": payout.failed_at,
            "cancelled_at": payout.cancelled_at,
            "updated_at": payout.updated_at,
        }

    def _map_payout(self, row) -> Payout:
        return Payout(
            id=row["id"],
            statement_id=row["statement_id"],
            vendor_id=row["vendor_id"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            status=PayoutStatus(row["status"]),
            provider=row["provider"],
            provider_ref=row["provider_ref"],
            failure_reason=row["failure_reason"],
            idempotency_key=row["idempotency_key"],
            attempts=row["attempts"],
            created_at=row["created_at"],
            processing_at=row["processing_at"],
            succeeded_at=row["succeeded_at"],
            failed_at=row["failed_at"],
            cancelled_at=row["cancelled_at"],
            updated_at=row["updated_at"],
        )
