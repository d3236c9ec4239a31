"""Entidades de cancelación y reembolso."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class CancellationActor(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN_OVERRIDE = "ADMIN_OVERRIDE"


class CancellationMode(str, Enum):
    """SOFT respeta la ventana de la política; HARD es el override administrativo."""

    SOFT = "SOFT"
    HARD = "HARD"


class CancellationTier(str, Enum):
    FREE = "FREE"
    PARTIAL = "PARTIAL"
    FULL = "FULL"
    WAIVED = "WAIVED"


@dataclass(frozen=True)
class CancellationDecision:
    """Resultado del motor de políticas (sin efectos)."""

    penalty_amount: Decimal
    refundable_amount: Decimal
    amount_paid: Decimal
    tier: CancellationTier
    hours_to_check_in: float
    notes: str | None = None


@dataclass
class CancellationRecord:
    """
    Registro inmutable de la cancelación de una reserva (uno por reserva).

    `policy_snapshot` guarda la política aplicada y el cálculo para auditoría.
    """

    id: str
    booking_id: str
    actor: CancellationActor
    mode: CancellationMode
    reason: str
    penalty_amount: Decimal
    refundable_amount: Decimal
    amount_paid: Decimal
    currency: str
    cancelled_at: datetime
    notes: str | None = None
    policy_snapshot: dict = field(default_factory=dict)


class RefundStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class RefundRecord:
    """Reembolso solicitado explícitamente tras una cancelación."""

    id: str
    booking_id: str
    vendor_id: str
    amount: Decimal
    currency: str
    reason: str
    provider: str
    status: RefundStatus = RefundStatus.PENDING
    provider_refund_ref: str | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None
