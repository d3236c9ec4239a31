"""Motor de políticas de cancelación: reparte lo pagado entre penalización y reembolso."""

from datetime import datetime, time, timezone
from decimal import Decimal

from app.domain.entities.booking import Booking
from app.domain.entities.cancellation import CancellationDecision, CancellationMode, CancellationTier
from app.domain.entities.property import CancellationPolicy
from app.domain.errors import CancellationNotAllowedError
from app.domain.value_objects.money import Money

FULL_PENALTY = Decimal("100")
WAIVED_NOTE = "Penalización condonada por override administrativo"


def hours_to_check_in(booking: Booking, now: datetime) -> float:
    """Horas desde `now` hasta el check-in (00:00 UTC del día de entrada)."""
    check_in_at = datetime.combine(booking.check_in, time.min, tzinfo=timezone.utc)
    return (check_in_at - now).total_seconds() / 3600


def _penalty_percent(policy: CancellationPolicy, hours: float) -> Decimal:
    bands = policy.sorted_bands()
    if not bands:
        return FULL_PENALTY
    for band in bands:
        if hours < band.within_hours:
            return band.percent
    return bands[-1].percent


def compute_cancellation(
    booking: Booking,
    policy: CancellationPolicy,
    amount_paid: Decimal,
    now: datetime,
    mode: CancellationMode = CancellationMode.SOFT,
    waive_penalty: bool = False,
) -> CancellationDecision:
    """
    Calcula penalización y monto reembolsable.

    Antes de `free_cancel_before_hours` no hay penalización. Dentro de la
    ventana aplica la banda más estricta cuyo límite supere las horas
    restantes. La penalización nunca excede lo pagado.

    Raises:
        CancellationNotAllowedError: SOFT después del check-in.
    """
    hours = hours_to_check_in(booking, now)
    paid = Money(amount=amount_paid, currency_code=booking.currency)

    if mode == CancellationMode.SOFT and hours < 0:
        raise CancellationNotAllowedError(booking.id, "el check-in ya ocurrió")

    if mode == CancellationMode.HARD and waive_penalty:
        return CancellationDecision(
            penalty_amount=Decimal("0.00"),
            refundable_amount=paid.amount,
            amount_paid=paid.amount,
            tier=CancellationTier.WAIVED,
            hours_to_check_in=hours,
            notes=WAIVED_NOTE,
        )

    if hours >= policy.free_cancel_before_hours:
        return CancellationDecision(
            penalty_amount=Decimal("0.00"),
            refundable_amount=paid.amount,
            amount_paid=paid.amount,
            tier=CancellationTier.FREE,
            hours_to_check_in=hours,
        )

    percent = _penalty_percent(policy, hours)
    penalty = min(paid.apply_percent(percent).amount, paid.amount)
    refundable = max(Decimal("0.00"), paid.amount - penalty)
    tier = CancellationTier.FULL if percent >= FULL_PENALTY else CancellationTier.PARTIAL
    return CancellationDecision(
        penalty_amount=penalty,
        refundable_amount=refundable,
        amount_paid=paid.amount,
        tier=tier,
        hours_to_check_in=hours,
    )
