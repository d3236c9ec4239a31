"""Entidad Payout - desembolso 1:1 de un estado de cuenta finalizado."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PayoutStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


PAYOUT_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.PENDING: frozenset(
        {PayoutStatus.PROCESSING, PayoutStatus.FAILED, PayoutStatus.CANCELLED}
    ),
    PayoutStatus.PROCESSING: frozenset(
        {PayoutStatus.SUCCEEDED, PayoutStatus.FAILED, PayoutStatus.CANCELLED}
    ),
    PayoutStatus.FAILED: frozenset({PayoutStatus.PROCESSING}),
    PayoutStatus.SUCCEEDED: frozenset(),
    PayoutStatus.CANCELLED: frozenset(),
}


@dataclass
class Payout:
    id: str
    statement_id: str
    vendor_id: str
    amount: Decimal
    currency: str
    status: PayoutStatus = PayoutStatus.PENDING
    provider: str = "MANUAL"
    provider_ref: str | None = None
    failure_reason: str | None = None
    idempotency_key: str | None = None
    attempts: int = 0
    created_at: datetime | None = None
    processing_at: datetime | None = None
    succeeded_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None

    def can_transition_to(self, target: PayoutStatus) -> bool:
        return target in PAYOUT_TRANSITIONS[self.status]
