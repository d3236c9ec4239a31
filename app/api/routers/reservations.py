from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import get_customer_id, get_use_cases
from app.api.schemas.reservations import (
    AuthorizePaymentRequest,
    AuthorizePaymentResponse,
    BookingResponse,
    CalendarEventResponse,
    CalendarResponse,
    CancelBookingRequest,
    CancellationResponse,
    ConvertHoldRequest,
    HoldResponse,
    QuoteRequest,
    QuoteResponse,
    ReserveRequest,
    ReserveResponse,
)
from app.application.use_cases.booking_state_machine import CancellationOutcome
from app.config import Settings, get_settings
from app.domain.entities.cancellation import CancellationActor, CancellationMode
from app.domain.errors import HoldConflictError
from app.infrastructure.db.retry import retry_on_conflict

router = APIRouter()


def cancellation_response(outcome: CancellationOutcome) -> CancellationResponse:
    record = outcome.record
    return CancellationResponse(
        booking_id=outcome.booking.id,
        status=outcome.booking.status,
        already_cancelled=outcome.already_cancelled,
        actor=record.actor,
        mode=record.mode,
        tier=record.policy_snapshot.get("tier"),
        penalty_amount=record.penalty_amount,
        refundable_amount=record.refundable_amount,
        amount_paid=record.amount_paid,
        currency=record.currency,
        notes=record.notes,
        cancelled_at=record.cancelled_at,
    )


@router.post("/quote", response_model=QuoteResponse, status_code=status.HTTP_200_OK)
async def get_quote(
    payload: QuoteRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> QuoteResponse:
    quote = await use_cases["quote"].execute(
        property_id=payload.property_id,
        check_in=payload.check_in,
        check_out=payload.check_out,
        guests=payload.guests,
    )
    return QuoteResponse.model_validate(quote)


@router.post("/reserve", response_model=ReserveResponse, status_code=status.HTTP_200_OK)
async def reserve(
    payload: ReserveRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
) -> ReserveResponse:
    """
    Create a hold on the requested dates.

    Overlapping occupancy is reported as `can_reserve: false` with the
    conflicting ranges instead of an error status.
    """
    try:
        hold, quote = await use_cases["hold_manager"].reserve(
            property_id=payload.property_id,
            customer_id=customer_id,
            check_in=payload.check_in,
            check_out=payload.check_out,
            guests=payload.guests,
        )
    except HoldConflictError as exc:
        return ReserveResponse(
            can_reserve=False,
            reasons=[f"{kind} {start.isoformat()}..{end.isoformat()}" for kind, start, end in exc.conflicts],
        )
    return ReserveResponse(
        can_reserve=True,
        hold=HoldResponse.model_validate(hold),
        quote=QuoteResponse.model_validate(quote),
    )


@router.get("/holds/{hold_id}", response_model=HoldResponse)
async def get_hold(
    hold_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
) -> HoldResponse:
    hold = await use_cases["hold_manager"].get_hold(hold_id, customer_id=customer_id)
    return HoldResponse.model_validate(hold)


@router.delete("/holds/{hold_id}", response_model=HoldResponse)
async def release_hold(
    hold_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
) -> HoldResponse:
    hold = await use_cases["hold_manager"].release(hold_id, customer_id=customer_id)
    return HoldResponse.model_validate(hold)


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def convert_hold(
    payload: ConvertHoldRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
) -> BookingResponse:
    booking = await use_cases["bookings"].convert_hold(payload.hold_id, customer_id=customer_id)
    return BookingResponse.model_validate(booking)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
) -> BookingResponse:
    booking = await use_cases["bookings"].get_booking(booking_id, customer_id=customer_id)
    return BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/authorize-payment", response_model=AuthorizePaymentResponse)
async def authorize_payment(
    booking_id: str,
    payload: AuthorizePaymentRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
) -> AuthorizePaymentResponse:
    session = await use_cases["payments"].initiate(booking_id, customer_id, provider=payload.provider)
    return AuthorizePaymentResponse(
        booking_id=booking_id,
        provider=payload.provider,
        provider_ref=session.provider_ref,
        redirect_url=session.redirect_url,
    )


@router.post("/bookings/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: str,
    payload: CancelBookingRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    customer_id: Annotated[str, Depends(get_customer_id)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CancellationResponse:
    """Customer cancellation (SOFT mode), retried once on a concurrent state change."""

    async def execute_cancel():
        return await use_cases["bookings"].cancel(
            booking_id,
            actor=CancellationActor.CUSTOMER,
            mode=CancellationMode.SOFT,
            reason=payload.reason,
            customer_id=customer_id,
        )

    outcome = await retry_on_conflict(execute_cancel, max_attempts=settings.concurrency_retry_attempts)
    return cancellation_response(outcome)


@router.get("/properties/{property_id}/calendar", response_model=CalendarResponse)
async def get_calendar(
    property_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    start: Annotated[date, Query(alias="from")],
    end: Annotated[date, Query(alias="to")],
) -> CalendarResponse:
    events = await use_cases["availability"].get_calendar(property_id, start, end)
    return CalendarResponse(
        property_id=property_id,
        start=start,
        end=end,
        events=[CalendarEventResponse.model_validate(event) for event in events],
    )
