from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, constr

from app.domain.entities.availability_event import AvailabilityKind
from app.domain.entities.booking import BookingStatus
from app.domain.entities.cancellation import CancellationActor, CancellationMode
from app.domain.entities.hold import HoldStatus
from app.domain.entities.payment import PaymentProvider


class StayRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    property_id: constr(strip_whitespace=True, min_length=1)
    check_in: date
    check_out: date
    guests: int


class QuoteRequest(StayRequest):
    pass


class ReserveRequest(StayRequest):
    pass


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    nights: int
    base_amount: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    total: Decimal
    currency: str


class HoldResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    customer_id: str
    check_in: date
    check_out: date
    guests: int
    status: HoldStatus
    expires_at: datetime
    booking_id: str | None = None


class ReserveResponse(BaseModel):
    can_reserve: bool
    hold: HoldResponse | None = None
    quote: QuoteResponse | None = None
    reasons: list[str] = Field(default_factory=list)


class ConvertHoldRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hold_id: constr(strip_whitespace=True, min_length=1)


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    status: BookingStatus
    version: int
    expires_at: datetime
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    expired_at: datetime | None = None


class AuthorizePaymentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: PaymentProvider = PaymentProvider.MANUAL


class AuthorizePaymentResponse(BaseModel):
    booking_id: str
    provider: PaymentProvider
    provider_ref: str
    redirect_url: str


class CancelBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: constr(strip_whitespace=True, min_length=1, max_length=500)


class CancellationResponse(BaseModel):
    booking_id: str
    status: BookingStatus
    already_cancelled: bool
    actor: CancellationActor
    mode: CancellationMode
    tier: str | None = None
    penalty_amount: Decimal
    refundable_amount: Decimal
    amount_paid: Decimal
    currency: str
    notes: str | None = None
    cancelled_at: datetime


class WebhookAckResponse(BaseModel):
    status: str
    event_id: str


class CalendarEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: AvailabilityKind
    start: date
    end: date
    ref_id: str
    expires_at: datetime | None = None
    note: str | None = None


class CalendarResponse(BaseModel):
    property_id: str
    start: date
    end: date
    events: list[CalendarEventResponse]


class BlockRangeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: date
    end: date
    note: str | None = Field(default=None, max_length=255)
