"""Entidades de pago: registro por reserva y eventos del proveedor."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.domain.value_objects.money import Money


class PaymentStatus(str, Enum):
    """Estados posibles de un pago."""

    REQUIRES_ACTION = "REQUIRES_ACTION"
    CAPTURED = "CAPTURED"
    FAILED = "FAILED"
    MISMATCH = "MISMATCH"


class PaymentProvider(str, Enum):
    """Proveedores de pago soportados."""

    STRIPE = "STRIPE"
    MANUAL = "MANUAL"


class PaymentEventType(str, Enum):
    """Tipo normalizado de un evento del proveedor."""

    PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    OTHER = "OTHER"


@dataclass
class PaymentRecord:
    """
    Pago asociado a una reserva (uno por reserva).

    Solo un webhook verificado puede moverlo a CAPTURED.
    """

    id: str
    booking_id: str
    provider: PaymentProvider
    amount: Decimal
    currency: str
    status: PaymentStatus = PaymentStatus.REQUIRES_ACTION
    provider_ref: str | None = None
    redirect_url: str | None = None
    session_attempt: int = 1
    captured_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def money(self) -> Money:
        return Money(amount=self.amount, currency_code=self.currency)

    @property
    def is_captured(self) -> bool:
        return self.status == PaymentStatus.CAPTURED


@dataclass
class PaymentEvent:
    """Evento recibido del proveedor; `provider_event_id` es su clave de idempotencia."""

    payment_id: str
    provider_event_id: str
    event_type: PaymentEventType
    amount: Decimal | None = None
    currency: str | None = None
    payload: dict | None = None
    received_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True)
class HostedSession:
    """Sesión de pago alojada por el proveedor (redirect)."""

    provider_ref: str
    redirect_url: str


@dataclass(frozen=True)
class WebhookEvent:
    """Evento de webhook ya verificado y normalizado por el gateway."""

    event_id: str
    event_type: PaymentEventType
    provider_ref: str | None
    booking_id: str | None
    amount_minor: int | None
    currency: str | None
    raw: dict
