from decimal import Decimal
from typing import Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.statement_repo import StatementRepo
from app.domain.entities.statement import (
    StatementLine,
    StatementLineKind,
    StatementPeriod,
    StatementStatus,
    VendorStatement,
)
from app.infrastructure.db.tables import statement_lines, vendor_statements


class StatementRepoSQL(StatementRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, statement: VendorStatement) -> VendorStatement:
        await self._session.execute(
            insert(vendor_statements).values(
                id=statement.id,
                vendor_id=statement.vendor_id,
                period_start=statement.period_start,
                period_end=statement.period_end,
                currency=statement.currency,
                **self._mutable_values(statement),
            )
        )
        return statement

    async def get(self, statement_id: str, for_update: bool = False) -> VendorStatement | None:
        stmt = select(vendor_statements).where(vendor_statements.c.id == statement_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        if not row:
            return None
        statement = self._map_statement(row)
        statement.lines = list(await self.list_lines(statement_id))
        return statement

    async def find_current(
        self,
        vendor_id: str,
        period: StatementPeriod,
        currency: str,
    ) -> VendorStatement | None:
        stmt = (
            select(vendor_statements.c.id)
            .where(
                vendor_statements.c.vendor_id == vendor_id,
                vendor_statements.c.period_start == period.start,
                vendor_statements.c.period_end == period.end,
                vendor_statements.c.currency == currency,
                vendor_statements.c.status != StatementStatus.VOID.value,
            )
            .with_for_update()
        )
        result = await self._session.execute(stmt)
        statement_id = result.scalar()
        return await self.get(statement_id) if statement_id else None

    async def save(self, statement: VendorStatement) -> VendorStatement:
        await self._session.execute(
            update(vendor_statements)
            .where(vendor_statements.c.id == statement.id)
            .values(**self._mutable_values(statement))
        )
        return statement

    async def replace_lines(self, statement_id: str, lines: Sequence[StatementLine]) -> None:
        await self._session.execute(
            delete(statement_lines).where(statement_lines.c.statement_id == statement_id)
        )
        if lines:
            await self._session.execute(
                insert(statement_lines),
                [
                    {
                        "statement_id": statement_id,
                        "kind": line.kind.value,
                        "ref_id": line.ref_id,
                        "booking_id": line.booking_id,
                        "amount": line.amount,
                        "commission": line.commission,
                    }
                    for line in lines
                ],
            )

    async def list_lines(self, statement_id: str) -> Sequence[StatementLine]:
        stmt = (
            select(statement_lines)
            .where(statement_lines.c.statement_id == statement_id)
            .order_by(statement_lines.c.id)
        )
        result = await self._session.execute(stmt)
        return [
            StatementLine(
                id=row["id"],
                statement_id=row["statement_id"],
                kind=StatementLineKind(row["kind"]),
                ref_id=row["ref_id"],
                booking_id=row["booking_id"],
                amount=Decimal(row["amount"]),
                commission=Decimal(row["commission"]),
            )
            for row in result.mappings().all()
        ]

    def _mutable_values(self, statement: VendorStatement) -> dict:
        return {
            "status": statement.status.value,
            "gross_amount": statement.gross_amount,
            "commission_amount": statement.commission_amount,
            "refund_amount": statement.refund_amount,
            "net_payable": statement.net_payable,
            "generated_at": statement.generated_at,
            "finalized_at": statement.finalized_at,
            "paid_at": statement.paid_at,
            "voided_at": statement.voided_at,
            "void_reason": statement.void_reason,
        }

    def _map_statement(self, row) -> VendorStatement:
        return VendorStatement(
            id=row["id"],
            vendor_id=row["vendor_id"],
            period_start=row["period_start"],
            period_end=row["period_end"],
            currency=row["currency"],
            status=StatementStatus(row["status"]),
            gross_amount=Decimal(row["gross_amount"]),
            commission_amount=Decimal(row["commission_amount"]),
            refund_amount=Decimal(row["refund_amount"]),
            net_payable=Decimal(row["net_payable"]),
            generated_at=row["generated_at"],
            finalized_at=row["finalized_at"],
            paid_at=row["paid_at"],
            voided_at=row["voided_at"],
            void_reason=row["void_reason"],
        )
