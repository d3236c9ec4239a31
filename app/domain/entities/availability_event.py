"""Entidad AvailabilityEvent - ocupación de un rango de fechas de una propiedad."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from app.domain.value_objects.date_range import DateRange


class AvailabilityKind(str, Enum):
    """Tipos de ocupación del calendario."""

    BOOKING = "BOOKING"
    HOLD = "HOLD"
    BLOCKED = "BLOCKED"


@dataclass
class AvailabilityEvent:
    """
    Ocupación semiabierta [start, end) del calendario de una propiedad.

    Un evento está activo mientras no se haya liberado y su `expires_at`
    (si lo tiene) siga en el futuro. Los holds y las reservas pendientes de
    pago llevan `expires_at`; las reservas confirmadas y los bloqueos no.
    """

    id: str
    property_id: str
    kind: AvailabilityKind
    start: date
    end: date
    ref_id: str
    expires_at: datetime | None = None
    released_at: datetime | None = None
    note: str | None = None
    created_at: datetime | None = None

    @property
    def range(self) -> DateRange:
        return DateRange(self.start, self.end)

    def is_active(self, now: datetime) -> bool:
        if self.released_at is not None:
            return False
        return self.expires_at is None or self.expires_at > now
