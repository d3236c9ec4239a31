"""
Unit tests del motor de políticas de cancelación.

- Cancelación gratuita antes de la ventana
- Bandas de penalización dentro de la ventana
- Monotonía: más cerca del check-in nunca penaliza menos
- Override administrativo HARD con condonación
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.domain.entities.booking import Booking
from app.domain.entities.cancellation import CancellationMode, CancellationTier
from app.domain.entities.property import CancellationPolicy, PenaltyBand
from app.domain.errors import CancellationNotAllowedError
from app.domain.services.cancellation_policy import WAIVED_NOTE, compute_cancellation, hours_to_check_in
from factories import make_property

CHECK_IN = date(2025, 6, 10)
CHECK_IN_AT = datetime(2025, 6, 10, tzinfo=timezone.utc)
PAID = Decimal("395.00")


def _booking() -> Booking:
    return Booking(
        id="B1",
        property_id="P1",
        vendor_id="V1",
        customer_id="C1",
        hold_id="H1",
        check_in=CHECK_IN,
        check_out=date(2025, 6, 13),
        guests=2,
        currency="USD",
        base_amount=Decimal("300.00"),
        cleaning_fee=Decimal("50.00"),
        service_fee=Decimal("30.00"),
        taxes=Decimal("15.00"),
        total_amount=PAID,
        expires_at=CHECK_IN_AT,
    )


POLICY = make_property().cancellation_policy


class TestCancellationBands:
    def test_hours_measured_to_midnight_utc(self):
        assert hours_to_check_in(_booking(), CHECK_IN_AT - timedelta(hours=30)) == pytest.approx(30.0)

    def test_free_before_window(self):
        decision = compute_cancellation(_booking(), POLICY, PAID, CHECK_IN_AT - timedelta(hours=72))

        assert decision.tier == CancellationTier.FREE
        assert decision.penalty_amount == Decimal("0.00")
        assert decision.refundable_amount == PAID

    def test_exactly_at_free_threshold_is_free(self):
        decision = compute_cancellation(_booking(), POLICY, PAID, CHECK_IN_AT - timedelta(hours=48))
        assert decision.tier == CancellationTier.FREE

    def test_partial_band(self):
        decision = compute_cancellation(_booking(), POLICY, PAID, CHECK_IN_AT - timedelta(hours=30))

        assert decision.tier == CancellationTier.PARTIAL
        assert decision.penalty_amount == Decimal("197.50")
        assert decision.refundable_amount == Decimal("197.50")

    def test_tightest_band_wins(self):
        decision = compute_cancellation(_booking(), POLICY, PAID, CHECK_IN_AT - timedelta(hours=2))

        assert decision.tier == CancellationTier.FULL
        assert decision.penalty_amount == PAID
        assert decision.refundable_amount == Decimal("0.00")

    def test_no_bands_means_full_penalty_inside_window(self):
        policy = CancellationPolicy(free_cancel_before_hours=24, penalty_bands=())
        decision = compute_cancellation(_booking(), policy, PAID, CHECK_IN_AT - timedelta(hours=10))
        assert decision.penalty_amount == PAID

    def test_mildest_band_when_none_matches(self):
        policy = CancellationPolicy(
            free_cancel_before_hours=72,
            penalty_bands=(PenaltyBand(within_hours=24, percent=Decimal("80")),),
        )
        decision = compute_cancellation(_booking(), policy, PAID, CHECK_IN_AT - timedelta(hours=48))
        assert decision.penalty_amount == Decimal("316.00")

    def test_unpaid_booking_has_nothing_to_refund(self):
        decision = compute_cancellation(_booking(), POLICY, Decimal("0.00"), CHECK_IN_AT - timedelta(hours=2))

        assert decision.penalty_amount == Decimal("0.00")
        assert decision.refundable_amount == Decimal("0.00")

    def test_penalty_is_monotonic_in_time(self):
        """Más cerca del check-in la penalización nunca disminuye."""
        previous = Decimal("-1")
        for hours_before in range(96, -1, -1):
            decision = compute_cancellation(
                _booking(), POLICY, PAID, CHECK_IN_AT - timedelta(hours=hours_before)
            )
            assert decision.penalty_amount >= previous
            assert decision.penalty_amount + decision.refundable_amount == PAID
            previous = decision.penalty_amount


class TestCancellationModes:
    def test_soft_after_check_in_is_rejected(self):
        with pytest.raises(CancellationNotAllowedError):
            compute_cancellation(_booking(), POLICY, PAID, CHECK_IN_AT + timedelta(hours=1))

    def test_hard_after_check_in_applies_policy(self):
        decision = compute_cancellation(
            _booking(), POLICY, PAID, CHECK_IN_AT + timedelta(hours=1), mode=CancellationMode.HARD
        )
        assert decision.penalty_amount == PAID

    def test_hard_with_waiver_forces_zero_penalty(self):
        decision = compute_cancellation(
            _booking(),
            POLICY,
            PAID,
            CHECK_IN_AT - timedelta(hours=2),
            mode=CancellationMode.HARD,
            waive_penalty=True,
        )

        assert decision.tier == CancellationTier.WAIVED
        assert decision.penalty_amount == Decimal("0.00")
        assert decision.refundable_amount == PAID
        assert decision.notes == WAIVED_NOTE

    def test_soft_ignores_waiver(self):
        decision = compute_cancellation(
            _booking(), POLICY, PAID, CHECK_IN_AT - timedelta(hours=2), waive_penalty=True
        )
        assert decision.tier == CancellationTier.FULL
