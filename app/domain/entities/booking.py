"""Entidad Booking - ciclo de vida de una reserva confirmable."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from app.domain.errors import InvalidTransitionError
from app.domain.value_objects.date_range import DateRange
from app.domain.value_objects.money import Money


class BookingStatus(str, Enum):
    """Estados posibles de una reserva."""

    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.EXPIRED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
}


@dataclass
class Booking:
    """
    Reserva creada al convertir un hold.

    `version` es el contador de concurrencia optimista: se incrementa en cada
    transición y el repositorio solo persiste si la versión leída coincide.
    """

    id: str
    property_id: str
    vendor_id: str
    customer_id: str
    hold_id: str
    check_in: date
    check_out: date
    guests: int
    currency: str
    base_amount: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    total_amount: Decimal
    expires_at: datetime
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    version: int = 0
    confirmed_event_id: str | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    expired_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # === Propiedades ===

    @property
    def stay(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    @property
    def total(self) -> Money:
        return Money(amount=self.total_amount, currency_code=self.currency)

    @property
    def vendor_earnings(self) -> Money:
        """Lo que corresponde al anfitrión antes de comisión: noches + limpieza."""
        return Money(amount=self.base_amount + self.cleaning_fee, currency_code=self.currency)

    def is_payment_overdue(self, now: datetime) -> bool:
        return self.status == BookingStatus.PENDING_PAYMENT and self.expires_at <= now

    # === Transiciones ===

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in BOOKING_TRANSITIONS[self.status]

    def transition_to(self, target: BookingStatus, at: datetime) -> None:
        """
        Aplica una transición validada e incrementa la versión.

        Raises:
            InvalidTransitionError: Si la transición no está en la tabla.
        """
        if not self.can_transition_to(target):
            raise InvalidTransitionError("Booking", self.id, self.status.value, target.value)
        self.status = target
        self.version += 1
        self.updated_at = at
        if target == BookingStatus.CONFIRMED:
            self.confirmed_at = at
        elif target == BookingStatus.CANCELLED:
            self.cancelled_at = at
        elif target == BookingStatus.EXPIRED:
            self.expired_at = at
