"""
Integration tests del libro de estados de cuenta y payouts.

Cubre generación y regeneración de borradores, finalización, anulación,
el ciclo de vida del payout y la marca PAID atómica.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from app.domain.entities.cancellation import CancellationActor, CancellationMode
from app.domain.entities.payout import PayoutStatus
from app.domain.entities.statement import StatementLineKind, StatementPeriod, StatementStatus
from app.domain.errors import (
    PayoutTransitionDeniedError,
    StatementAlreadyFinalizedError,
    StatementNotFoundError,
    StatementTransitionDeniedError,
    ValidationError,
)
from factories import STAY, manual_webhook

pytestmark = pytest.mark.asyncio

JUNE = StatementPeriod.parse("2025-06")
MAY = StatementPeriod.parse("2025-05")
JULY = StatementPeriod.parse("2025-07")


async def _confirmed_booking(use_cases, check_in=STAY["check_in"], check_out=STAY["check_out"], event_id="evt_1"):
    hold, _ = await use_cases["hold_manager"].reserve(
        "P1", "C1", check_in=check_in, check_out=check_out, guests=2
    )
    booking = await use_cases["bookings"].convert_hold(hold.id, "C1")
    await use_cases["payments"].initiate(booking.id, "C1")
    body, signature = manual_webhook(event_id, booking.id, amount_minor=int(booking.total_amount * 100))
    await use_cases["payments"].handle_webhook(body, signature)
    return booking


@pytest_asyncio.fixture
async def june_booking(use_cases, seeded_property):
    return await _confirmed_booking(use_cases)


@pytest_asyncio.fixture
async def finalized_statement(use_cases, june_booking):
    [statement] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")
    return await use_cases["statements"].finalize(statement.id)


class TestGenerateStatement:
    async def test_booking_line_with_commission(self, use_cases, june_booking):
        [statement] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")

        assert statement.status == StatementStatus.DRAFT
        assert statement.gross_amount == Decimal("350.00")
        assert statement.commission_amount == Decimal("52.50")
        assert statement.refund_amount == Decimal("0")
        assert statement.net_payable == Decimal("297.50")
        [line] = statement.lines
        assert line.kind == StatementLineKind.BOOKING
        assert line.ref_id == june_booking.id

    async def test_booking_outside_period_is_excluded(self, use_cases, june_booking):
        statements = await use_cases["statements"].generate_statement(MAY)

        assert statements == []

    async def test_regenerating_draft_picks_up_new_activity(self, use_cases, june_booking):
        [first] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")
        await _confirmed_booking(
            use_cases, check_in=date(2025, 6, 20), check_out=date(2025, 6, 22), event_id="evt_2"
        )

        [second] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")

        assert second.id == first.id
        assert len(second.lines) == 2
        assert second.gross_amount == Decimal("600.00")

    async def test_all_vendors_mode_skips_finalized(self, use_cases, finalized_statement):
        assert await use_cases["statements"].generate_statement(JUNE) == []

    async def test_vendor_mode_rejects_finalized(self, use_cases, finalized_statement):
        with pytest.raises(StatementAlreadyFinalizedError):
            await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")

    async def test_refund_for_uncredited_booking_is_not_deducted(self, use_cases, june_booking):
        may_booking = await _confirmed_booking(
            use_cases, check_in=date(2025, 5, 10), check_out=date(2025, 5, 13), event_id="evt_may"
        )
        await use_cases["bookings"].cancel(
            june_booking.id, CancellationActor.CUSTOMER, CancellationMode.SOFT, "cambio", customer_id="C1"
        )
        refund = await use_cases["refunds"].request_refund(june_booking.id, "gratis")
        await use_cases["refunds"].process_refund(refund.id)

        [statement] = await use_cases["statements"].generate_statement(MAY, vendor_id="V1")

        assert [line.ref_id for line in statement.lines] == [may_booking.id]
        assert statement.gross_amount == Decimal("350.00")
        assert statement.commission_amount == Decimal("52.50")
        assert statement.refund_amount == Decimal("0")
        assert statement.net_payable == Decimal("297.50")

    async def test_refund_after_credit_deducts_vendor_share(self, use_cases, clock, june_booking):
        [june] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")
        await use_cases["statements"].finalize(june.id)
        clock.set_time(datetime(2025, 6, 8, 18, 0, tzinfo=timezone.utc))  # 30h antes: 50%
        await use_cases["bookings"].cancel(
            june_booking.id, CancellationActor.CUSTOMER, CancellationMode.SOFT, "cambio", customer_id="C1"
        )
        refund = await use_cases["refunds"].request_refund(june_booking.id, "parcial")
        clock.set_time(datetime(2025, 7, 2, 10, 0, tzinfo=timezone.utc))
        await use_cases["refunds"].process_refund(refund.id)
        await _confirmed_booking(
            use_cases, check_in=date(2025, 7, 10), check_out=date(2025, 7, 13), event_id="evt_jul"
        )

        [statement] = await use_cases["statements"].generate_statement(JULY, vendor_id="V1")

        [refund_line] = [line for line in statement.lines if line.kind == StatementLineKind.REFUND]
        assert refund.amount == Decimal("197.50")
        # 197.50 x 350 / 395: servicio e impuestos no salen del anfitrión
        assert refund_line.amount == Decimal("175.00")
        assert refund_line.commission == Decimal("26.25")
        assert statement.gross_amount == Decimal("350.00")
        assert statement.commission_amount == Decimal("26.25")
        assert statement.net_payable == Decimal("148.75")

    async def test_cancelled_booking_not_stated(self, use_cases, june_booking):
        await use_cases["bookings"].cancel(
            june_booking.id, CancellationActor.ADMIN_OVERRIDE, CancellationMode.HARD, "fraude"
        )

        assert await use_cases["statements"].generate_statement(JUNE) == []


class TestStatementTransitions:
    async def test_finalize_is_idempotent(self, use_cases, finalized_statement):
        again = await use_cases["statements"].finalize(finalized_statement.id)

        assert again.status == StatementStatus.FINALIZED
        assert again.finalized_at == finalized_statement.finalized_at

    async def test_void_requires_reason(self, use_cases, finalized_statement):
        with pytest.raises(ValidationError):
            await use_cases["statements"].void(finalized_statement.id, "  ")

    async def test_void_returns_activity_to_pool(self, use_cases, june_booking):
        [draft] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")

        voided = await use_cases["statements"].void(draft.id, "error de comisión")
        [regenerated] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")

        assert voided.status == StatementStatus.VOID
        assert regenerated.id != draft.id
        assert [line.ref_id for line in regenerated.lines] == [june_booking.id]
        # El anulado conserva sus líneas para auditoría
        kept = await use_cases["statements"].get_statement(draft.id)
        assert len(kept.lines) == 1

    async def test_voided_statement_cannot_be_finalized(self, use_cases, june_booking):
        [draft] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")
        await use_cases["statements"].void(draft.id, "duplicado")

        with pytest.raises(StatementTransitionDeniedError):
            await use_cases["statements"].finalize(draft.id)

    async def test_void_denied_with_live_payout(self, use_cases, finalized_statement):
        await use_cases["payouts"].create_payout(finalized_statement.id)

        with pytest.raises(StatementTransitionDeniedError):
            await use_cases["statements"].void(finalized_statement.id, "tarde")

    async def test_void_allowed_after_payout_cancelled(self, use_cases, finalized_statement):
        payout = await use_cases["payouts"].create_payout(finalized_statement.id)
        await use_cases["payouts"].cancel(payout.id)

        voided = await use_cases["statements"].void(finalized_statement.id, "recalcular")

        assert voided.status == StatementStatus.VOID

    async def test_unknown_statement(self, use_cases):
        with pytest.raises(StatementNotFoundError):
            await use_cases["statements"].get_statement("no-existe")


class TestPayouts:
    async def test_payout_requires_finalized_statement(self, use_cases, june_booking):
        [draft] = await use_cases["statements"].generate_statement(JUNE, vendor_id="V1")

        with pytest.raises(PayoutTransitionDeniedError):
            await use_cases["payouts"].create_payout(draft.id)

    async def test_create_payout_is_idempotent(self, use_cases, finalized_statement):
        first = await use_cases["payouts"].create_payout(finalized_statement.id)
        second = await use_cases["payouts"].create_payout(finalized_statement.id)

        assert first.id == second.id
        assert first.amount == Decimal("297.50")
        assert first.status == PayoutStatus.PENDING

    async def test_succeeded_payout_marks_statement_paid(self, use_cases, finalized_statement):
        payout = await use_cases["payouts"].create_payout(finalized_statement.id)
        await use_cases["payouts"].mark_processing(payout.id)

        paid = await use_cases["payouts"].mark_succeeded(payout.id, "bank-tx-1")

        assert paid.status == PayoutStatus.SUCCEEDED
        statement = await use_cases["statements"].get_statement(finalized_statement.id)
        assert statement.status == StatementStatus.PAID
        with pytest.raises(StatementTransitionDeniedError):
            await use_cases["statements"].void(statement.id, "tarde")
        with pytest.raises(StatementAlreadyFinalizedError):
            await use_cases["statements"].finalize(statement.id)

    async def test_succeeded_replay_checks_idempotency_key(self, use_cases, finalized_statement):
        payout = await use_cases["payouts"].create_payout(finalized_statement.id)
        await use_cases["payouts"].mark_processing(payout.id)
        await use_cases["payouts"].mark_succeeded(payout.id, "bank-tx-1")

        replay = await use_cases["payouts"].mark_succeeded(payout.id, "bank-tx-1")

        assert replay.status == PayoutStatus.SUCCEEDED
        with pytest.raises(PayoutTransitionDeniedError):
            await use_cases["payouts"].mark_succeeded(payout.id, "bank-tx-2")

    async def test_succeeded_requires_processing(self, use_cases, finalized_statement):
        payout = await use_cases["payouts"].create_payout(finalized_statement.id)

        with pytest.raises(PayoutTransitionDeniedError):
            await use_cases["payouts"].mark_succeeded(payout.id, "bank-tx-1")

    async def test_failed_payout_can_be_retried(self, use_cases, finalized_statement):
        payout = await use_cases["payouts"].create_payout(finalized_statement.id)
        await use_cases["payouts"].mark_processing(payout.id)
        failed = await use_cases["payouts"].mark_failed(payout.id, "cuenta bancaria inválida")

        retried = await use_cases["payouts"].mark_processing(payout.id)

        assert failed.status == PayoutStatus.FAILED
        assert retried.status == PayoutStatus.PROCESSING
        assert retried.attempts == 2
        assert retried.failure_reason is None

    async def test_mark_failed_requires_reason(self, use_cases, finalized_statement):
        payout = await use_cases["payouts"].create_payout(finalized_statement.id)

        with pytest.raises(ValidationError):
            await use_cases["payouts"].mark_failed(payout.id, "")

    async def test_zero_net_statement_has_no_payout(self, use_cases, finalized_statement, june_booking):
        await use_cases["bookings"].cancel(
            june_booking.id, CancellationActor.CUSTOMER, CancellationMode.SOFT, "cambio", customer_id="C1"
        )
        refund = await use_cases["refunds"].request_refund(june_booking.id, "gratis")
        await use_cases["refunds"].process_refund(refund.id)
        [statement] = await use_cases["statements"].generate_statement(MAY)

        assert statement.refund_amount == Decimal("350.00")
        assert statement.net_payable == Decimal("0")
        await use_cases["statements"].finalize(statement.id)

        with pytest.raises(PayoutTransitionDeniedError):
            await use_cases["payouts"].create_payout(statement.id)
