from typing import Sequence

from app.domain.entities.cancellation import CancellationRecord, RefundRecord
from app.domain.entities.statement import StatementPeriod


class CancellationRepo:
    async def add(self, record: CancellationRecord) -> CancellationRecord:
        raise NotImplementedError

    async def get_by_booking(self, booking_id: str) -> CancellationRecord | None:
        raise NotImplementedError

    async def add_refund(self, refund: RefundRecord) -> RefundRecord:
        raise NotImplementedError

    async def get_refund(self, refund_id: str) -> RefundRecord | None:
        raise NotImplementedError

    async def save_refund(self, refund: RefundRecord) -> RefundRecord:
        raise NotImplementedError

    async def list_refunds(self, booking_id: str) -> Sequence[RefundRecord]:
        raise NotImplementedError

    async def list_unstated_refunds(
        self,
        vendor_id: str,
        currency: str,
        period: StatementPeriod,
    ) -> Sequence[RefundRecord]:
        """
        Reembolsos SUCCEEDED del periodo aún no incluidos en un estado de cuenta
        vigente, cuya reserva ya figura como línea BOOKING en uno.
        """
        raise NotImplementedError

    async def list_refund_vendor_ids(self, currency: str, period: StatementPeriod) -> Sequence[str]:
        raise NotImplementedError
