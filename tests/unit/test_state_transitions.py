"""
Unit tests de las máquinas de estado y value objects del dominio.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.domain.entities.availability_event import AvailabilityEvent, AvailabilityKind
from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.hold import Hold, HoldStatus
from app.domain.entities.payout import Payout, PayoutStatus
from app.domain.entities.statement import StatementLine, StatementLineKind, StatementPeriod, VendorStatement
from app.domain.errors import InvalidTransitionError, ValidationError
from app.domain.value_objects.date_range import DateRange
from app.domain.value_objects.money import Money

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


def _booking(**overrides) -> Booking:
    values = dict(
        id="B1",
        property_id="P1",
        vendor_id="V1",
        customer_id="C1",
        hold_id="H1",
        check_in=date(2025, 6, 10),
        check_out=date(2025, 6, 13),
        guests=2,
        currency="USD",
        base_amount=Decimal("300.00"),
        cleaning_fee=Decimal("50.00"),
        service_fee=Decimal("30.00"),
        taxes=Decimal("15.00"),
        total_amount=Decimal("395.00"),
        expires_at=NOW + timedelta(minutes=30),
    )
    values.update(overrides)
    return Booking(**values)


class TestBookingTransitions:
    def test_confirm_increments_version(self):
        booking = _booking()

        booking.transition_to(BookingStatus.CONFIRMED, NOW)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.version == 1
        assert booking.confirmed_at == NOW

    @pytest.mark.parametrize(
        "start,target",
        [
            (BookingStatus.CONFIRMED, BookingStatus.EXPIRED),
            (BookingStatus.CONFIRMED, BookingStatus.PENDING_PAYMENT),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
            (BookingStatus.EXPIRED, BookingStatus.CONFIRMED),
            (BookingStatus.EXPIRED, BookingStatus.CANCELLED),
        ],
    )
    def test_forbidden_transitions(self, start, target):
        booking = _booking(status=start)

        with pytest.raises(InvalidTransitionError):
            booking.transition_to(target, NOW)
        assert booking.version == 0

    def test_payment_overdue_only_while_pending(self):
        booking = _booking(expires_at=NOW)
        assert booking.is_payment_overdue(NOW)
        booking.transition_to(BookingStatus.CANCELLED, NOW)
        assert not booking.is_payment_overdue(NOW)

    def test_vendor_earnings_exclude_service_fee_and_taxes(self):
        assert _booking().vendor_earnings.amount == Decimal("350.00")


class TestHoldTransitions:
    def test_expired_hold_cannot_be_converted(self):
        hold = Hold(
            id="H1",
            property_id="P1",
            customer_id="C1",
            check_in=date(2025, 6, 10),
            check_out=date(2025, 6, 13),
            guests=2,
            expires_at=NOW,
        )
        assert hold.is_expired(NOW)
        hold.transition_to(HoldStatus.EXPIRED)

        with pytest.raises(InvalidTransitionError):
            hold.transition_to(HoldStatus.CONVERTED)


class TestPayoutTransitions:
    def test_terminal_states(self):
        payout = Payout(id="PO1", statement_id="S1", vendor_id="V1", amount=Decimal("10.00"), currency="USD")

        assert payout.can_transition_to(PayoutStatus.PROCESSING)
        payout.status = PayoutStatus.SUCCEEDED
        assert not any(payout.can_transition_to(target) for target in PayoutStatus)

    def test_failed_payout_can_be_retried(self):
        payout = Payout(
            id="PO1", statement_id="S1", vendor_id="V1", amount=Decimal("10.00"), currency="USD",
            status=PayoutStatus.FAILED,
        )
        assert payout.can_transition_to(PayoutStatus.PROCESSING)
        assert not payout.can_transition_to(PayoutStatus.SUCCEEDED)


class TestValueObjects:
    def test_half_open_ranges_touching_do_not_overlap(self):
        first = DateRange(date(2025, 6, 1), date(2025, 6, 5))

        assert not first.overlaps_with(DateRange(date(2025, 6, 5), date(2025, 6, 8)))
        assert first.overlaps_with(DateRange(date(2025, 6, 3), date(2025, 6, 6)))
        assert first.nights == 4

    def test_money_minor_units(self):
        assert Money(Decimal("395.005"), "USD").to_cents() == 39501
        assert Money.from_cents(39500, "USD").amount == Decimal("395.00")

    def test_statement_period_parsing(self):
        period = StatementPeriod.parse("2025-12")

        assert period.start == date(2025, 12, 1)
        assert period.end == date(2026, 1, 1)
        assert period.label == "2025-12"

    @pytest.mark.parametrize("value", ["2025-13", "1999-05", "2025/05", "abc"])
    def test_invalid_periods(self, value):
        with pytest.raises(ValidationError):
            StatementPeriod.parse(value)

    def test_net_payable_never_negative(self):
        statement = VendorStatement(
            id="S1", vendor_id="V1", period_start=date(2025, 6, 1), period_end=date(2025, 7, 1), currency="USD"
        )
        statement.apply_totals(
            [
                StatementLine("S1", StatementLineKind.BOOKING, "B1", "B1", Decimal("100.00"), Decimal("15.00")),
                StatementLine("S1", StatementLineKind.REFUND, "R1", "B2", Decimal("200.00")),
            ]
        )

        assert statement.gross_amount == Decimal("100.00")
        assert statement.commission_amount == Decimal("15.00")
        assert statement.refund_amount == Decimal("200.00")
        assert statement.net_payable == Decimal("0")

    def test_refund_line_returns_its_commission(self):
        statement = VendorStatement(
            id="S1", vendor_id="V1", period_start=date(2025, 7, 1), period_end=date(2025, 8, 1), currency="USD"
        )
        statement.apply_totals(
            [
                StatementLine("S1", StatementLineKind.BOOKING, "B1", "B1", Decimal("350.00"), Decimal("52.50")),
                StatementLine("S1", StatementLineKind.REFUND, "R1", "B2", Decimal("175.00"), Decimal("26.25")),
            ]
        )

        assert statement.commission_amount == Decimal("26.25")
        assert statement.refund_amount == Decimal("175.00")
        assert statement.net_payable == Decimal("148.75")

    def test_money_rejects_mixed_currencies(self):
        with pytest.raises(ValueError):
            Money(Decimal("10"), "USD") + Money(Decimal("10"), "MXN")


class TestAvailabilityEvent:
    def _event(self, **overrides) -> AvailabilityEvent:
        values = dict(
            id="E1",
            property_id="P1",
            kind=AvailabilityKind.HOLD,
            start=date(2025, 6, 10),
            end=date(2025, 6, 13),
            ref_id="H1",
            expires_at=NOW + timedelta(minutes=15),
        )
        values.update(overrides)
        return AvailabilityEvent(**values)

    def test_hold_active_until_expiry(self):
        event = self._event()

        assert event.is_active(NOW)
        assert not event.is_active(NOW + timedelta(minutes=15))

    def test_released_event_is_inactive(self):
        assert not self._event(released_at=NOW).is_active(NOW)

    def test_event_without_expiry_stays_active(self):
        event = self._event(kind=AvailabilityKind.BLOCKED, expires_at=None)

        assert event.is_active(NOW + timedelta(days=365))
        assert event.range.nights == 3
