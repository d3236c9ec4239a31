"""Entidad Hold - reserva temporal y exclusiva de un rango de fechas."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from app.domain.errors import InvalidTransitionError
from app.domain.value_objects.date_range import DateRange


class HoldStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CONVERTED = "CONVERTED"
    EXPIRED = "EXPIRED"
    RELEASED = "RELEASED"


_HOLD_TRANSITIONS: dict[HoldStatus, frozenset[HoldStatus]] = {
    HoldStatus.ACTIVE: frozenset({HoldStatus.CONVERTED, HoldStatus.EXPIRED, HoldStatus.RELEASED}),
    HoldStatus.CONVERTED: frozenset(),
    HoldStatus.EXPIRED: frozenset(),
    HoldStatus.RELEASED: frozenset(),
}


@dataclass
class Hold:
    """
    Hold creado por el Hold Manager.

    Pertenece al cliente que lo solicitó hasta que se convierte en reserva,
    expira o se libera.
    """

    id: str
    property_id: str
    customer_id: str
    check_in: date
    check_out: date
    guests: int
    expires_at: datetime
    status: HoldStatus = HoldStatus.ACTIVE
    booking_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def stay(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    def is_expired(self, now: datetime) -> bool:
        """Un hold ACTIVE con TTL vencido se considera expirado."""
        return self.status == HoldStatus.ACTIVE and self.expires_at <= now

    def transition_to(self, target: HoldStatus) -> None:
        if target not in _HOLD_TRANSITIONS[self.status]:
            raise InvalidTransitionError("Hold", self.id, self.status.value, target.value)
        self.status = target
