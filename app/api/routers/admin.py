from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_use_cases, require_admin
from app.api.routers.reservations import cancellation_response
from app.api.schemas.ledger import (
    CreatePayoutRequest,
    ForceCancelRequest,
    GenerateStatementRequest,
    GenerateStatementResponse,
    MarkPayoutFailedRequest,
    MarkPayoutSucceededRequest,
    PayoutResponse,
    RefundRequest,
    RefundResponse,
    StatementResponse,
    VoidStatementRequest,
)
from app.api.schemas.reservations import BlockRangeRequest, CalendarEventResponse, CancellationResponse
from app.config import Settings, get_settings
from app.domain.entities.cancellation import CancellationActor, CancellationMode
from app.domain.entities.statement import StatementPeriod
from app.infrastructure.db.retry import retry_on_conflict

router = APIRouter(dependencies=[Depends(require_admin)])


# === Inventario ===


@router.post(
    "/properties/{property_id}/blocks",
    response_model=CalendarEventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def block_range(
    property_id: str,
    payload: BlockRangeRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> CalendarEventResponse:
    event = await use_cases["availability"].block_range(property_id, payload.start, payload.end, payload.note)
    return CalendarEventResponse.model_validate(event)


@router.delete("/blocks/{event_id}", response_model=CalendarEventResponse)
async def unblock_range(
    event_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> CalendarEventResponse:
    event = await use_cases["availability"].unblock(event_id)
    return CalendarEventResponse.model_validate(event)


# === Cancelación y reembolsos ===


@router.post("/bookings/{booking_id}/force-cancel", response_model=CancellationResponse)
async def force_cancel(
    booking_id: str,
    payload: ForceCancelRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CancellationResponse:
    """HARD-mode cancellation. Re-cancelling reports `already_cancelled: true`."""

    async def execute_cancel():
        return await use_cases["bookings"].cancel(
            booking_id,
            actor=CancellationActor.ADMIN_OVERRIDE,
            mode=CancellationMode.HARD,
            reason=payload.reason,
            notes=payload.notes,
            waive_penalty=payload.waive_penalty,
        )

    outcome = await retry_on_conflict(execute_cancel, max_attempts=settings.concurrency_retry_attempts)
    return cancellation_response(outcome)


@router.post(
    "/bookings/{booking_id}/refunds",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_refund(
    booking_id: str,
    payload: RefundRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> RefundResponse:
    refund = await use_cases["refunds"].request_refund(booking_id, payload.reason)
    return RefundResponse.model_validate(refund)


@router.post("/refunds/{refund_id}/process", response_model=RefundResponse)
async def process_refund(
    refund_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> RefundResponse:
    refund = await use_cases["refunds"].process_refund(refund_id)
    return RefundResponse.model_validate(refund)


# === Estados de cuenta ===


@router.post("/statements/generate", response_model=GenerateStatementResponse)
async def generate_statements(
    payload: GenerateStatementRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> GenerateStatementResponse:
    period = StatementPeriod.parse(payload.period)
    statements = await use_cases["statements"].generate_statement(
        period, vendor_id=payload.vendor_id, currency=payload.currency
    )
    return GenerateStatementResponse(
        period=period.label,
        statements=[StatementResponse.model_validate(statement) for statement in statements],
    )


@router.get("/statements/{statement_id}", response_model=StatementResponse)
async def get_statement(
    statement_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> StatementResponse:
    statement = await use_cases["statements"].get_statement(statement_id)
    return StatementResponse.model_validate(statement)


@router.post("/statements/{statement_id}/finalize", response_model=StatementResponse)
async def finalize_statement(
    statement_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> StatementResponse:
    statement = await use_cases["statements"].finalize(statement_id)
    return StatementResponse.model_validate(statement)


@router.post("/statements/{statement_id}/void", response_model=StatementResponse)
async def void_statement(
    statement_id: str,
    payload: VoidStatementRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> StatementResponse:
    statement = await use_cases["statements"].void(statement_id, payload.reason)
    return StatementResponse.model_validate(statement)


# === Payouts ===


@router.post("/payouts", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def create_payout(
    payload: CreatePayoutRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> PayoutResponse:
    payout = await use_cases["payouts"].create_payout(payload.statement_id)
    return PayoutResponse.model_validate(payout)


@router.get("/payouts/{payout_id}", response_model=PayoutResponse)
async def get_payout(
    payout_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> PayoutResponse:
    payout = await use_cases["payouts"].get_payout(payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/mark-processing", response_model=PayoutResponse)
async def mark_payout_processing(
    payout_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> PayoutResponse:
    payout = await use_cases["payouts"].mark_processing(payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/mark-succeeded", response_model=PayoutResponse)
async def mark_payout_succeeded(
    payout_id: str,
    payload: MarkPayoutSucceededRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> PayoutResponse:
    payout = await use_cases["payouts"].mark_succeeded(payout_id, payload.idempotency_key)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/mark-failed", response_model=PayoutResponse)
async def mark_payout_failed(
    payout_id: str,
    payload: MarkPayoutFailedRequest,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> PayoutResponse:
    payout = await use_cases["payouts"].mark_failed(payout_id, payload.failure_reason)
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/cancel", response_model=PayoutResponse)
async def cancel_payout(
    payout_id: str,
    use_cases: Annotated[dict, Depends(get_use_cases)],
) -> PayoutResponse:
    payout = await use_cases["payouts"].cancel(payout_id)
    return PayoutResponse.model_validate(payout)
