"""Entidades del dominio de reservas."""

from app.domain.entities.availability_event import AvailabilityEvent, AvailabilityKind
from app.domain.entities.booking import BOOKING_TRANSITIONS, Booking, BookingStatus
from app.domain.entities.cancellation import (
    CancellationActor,
    CancellationDecision,
    CancellationMode,
    CancellationRecord,
    CancellationTier,
    RefundRecord,
    RefundStatus,
)
from app.domain.entities.hold import Hold, HoldStatus
from app.domain.entities.payment import (
    HostedSession,
    PaymentEvent,
    PaymentEventType,
    PaymentProvider,
    PaymentRecord,
    PaymentStatus,
    WebhookEvent,
)
from app.domain.entities.payout import PAYOUT_TRANSITIONS, Payout, PayoutStatus
from app.domain.entities.property import CancellationPolicy, PenaltyBand, Property
from app.domain.entities.statement import (
    StatementLine,
    StatementLineKind,
    StatementPeriod,
    StatementStatus,
    VendorStatement,
)

__all__ = [
    "AvailabilityEvent",
    "AvailabilityKind",
    "BOOKING_TRANSITIONS",
    "Booking",
    "BookingStatus",
    "CancellationActor",
    "CancellationDecision",
    "CancellationMode",
    "CancellationPolicy",
    "CancellationRecord",
    "CancellationTier",
    "Hold",
    "HoldStatus",
    "HostedSession",
    "PAYOUT_TRANSITIONS",
    "PaymentEvent",
    "PaymentEventType",
    "PaymentProvider",
    "PaymentRecord",
    "PaymentStatus",
    "Payout",
    "PayoutStatus",
    "PenaltyBand",
    "Property",
    "RefundRecord",
    "RefundStatus",
    "StatementLine",
    "StatementLineKind",
    "StatementPeriod",
    "StatementStatus",
    "VendorStatement",
    "WebhookEvent",
]
