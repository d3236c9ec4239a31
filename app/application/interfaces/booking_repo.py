from datetime import datetime
from typing import Sequence

from app.domain.entities.booking import Booking
from app.domain.entities.statement import StatementPeriod


class BookingRepo:
    async def add(self, booking: Booking) -> Booking:
        raise NotImplementedError

    async def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    async def get_by_hold(self, hold_id: str) -> Booking | None:
        raise NotImplementedError

    async def save_transition(self, booking: Booking, expected_version: int) -> Booking:
        """
        Persiste el estado si la versión almacenada sigue siendo `expected_version`.

        Raises:
            ConcurrentModificationError: Si otra transacción ganó la carrera.
        """
        raise NotImplementedError

    async def list_overdue_ids(self, now: datetime, limit: int) -> Sequence[str]:
        raise NotImplementedError

    async def list_unstated_confirmed(
        self,
        vendor_id: str,
        currency: str,
        period: StatementPeriod,
    ) -> Sequence[Booking]:
        """Reservas CONFIRMED del periodo aún no incluidas en un estado de cuenta vigente."""
        raise NotImplementedError

    async def list_vendor_ids(self, currency: str, period: StatementPeriod) -> Sequence[str]:
        raise NotImplementedError
