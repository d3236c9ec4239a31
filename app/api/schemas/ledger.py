from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, constr

from app.domain.entities.cancellation import RefundStatus
from app.domain.entities.payout import PayoutStatus
from app.domain.entities.statement import StatementLineKind, StatementStatus


class ForceCancelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: constr(strip_whitespace=True, min_length=1, max_length=500) = "admin override"
    notes: str | None = Field(default=None, max_length=1000)
    waive_penalty: bool = True


class RefundRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: constr(strip_whitespace=True, min_length=1, max_length=500)


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_id: str
    vendor_id: str
    amount: Decimal
    currency: str
    reason: str
    provider: str
    status: RefundStatus
    provider_refund_ref: str | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None


class GenerateStatementRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: constr(strip_whitespace=True, pattern=r"^\d{4}-\d{2}$")
    vendor_id: str | None = None
    currency: constr(strip_whitespace=True, min_length=3, max_length=3) | None = None


class StatementLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: StatementLineKind
    ref_id: str
    booking_id: str
    amount: Decimal
    commission: Decimal


class StatementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    vendor_id: str
    period_start: date
    period_end: date
    currency: str
    status: StatementStatus
    gross_amount: Decimal
    commission_amount: Decimal
    refund_amount: Decimal
    net_payable: Decimal
    generated_at: datetime | None = None
    finalized_at: datetime | None = None
    paid_at: datetime | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    lines: list[StatementLineResponse] = Field(default_factory=list)


class GenerateStatementResponse(BaseModel):
    period: str
    statements: list[StatementResponse]


class VoidStatementRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: constr(strip_whitespace=True, min_length=1, max_length=500)


class CreatePayoutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    statement_id: constr(strip_whitespace=True, min_length=1)


class MarkPayoutSucceededRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    idempotency_key: constr(strip_whitespace=True, min_length=1, max_length=128)


class MarkPayoutFailedRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    failure_reason: constr(strip_whitespace=True, min_length=1, max_length=500)


class PayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    statement_id: str
    vendor_id: str
    amount: Decimal
    currency: str
    status: PayoutStatus
    provider: str
    provider_ref: str | None = None
    failure_reason: str | None = None
    idempotency_key: str | None = None
    attempts: int
    created_at: datetime | None = None
    processing_at: datetime | None = None
    succeeded_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None
