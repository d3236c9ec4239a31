"""Quote Engine - precio de una estancia a partir de las reglas de la propiedad.

Función pura: no persiste nada y nunca reserva inventario.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from app.domain.entities.property import Property
from app.domain.errors import ValidationError
from app.domain.value_objects.date_range import DateRange
from app.domain.value_objects.money import Money


@dataclass(frozen=True)
class QuoteBreakdown:
    nights: int
    base_amount: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes: Decimal
    total: Decimal
    currency: str


def stay_violations(
    prop: Property,
    check_in: date,
    check_out: date,
    guests: int,
    today: date,
) -> list[str]:
    """Retorna las reglas incumplidas por la estancia (vacía si es válida)."""
    reasons: list[str] = []
    if check_out <= check_in:
        reasons.append("check_out debe ser posterior a check_in")
        return reasons
    if check_in < today:
        reasons.append(f"check_in {check_in.isoformat()} está en el pasado")

    nights = (check_out - check_in).days
    if nights < prop.min_nights:
        reasons.append(f"Estancia mínima de {prop.min_nights} noches")
    if prop.max_nights is not None and nights > prop.max_nights:
        reasons.append(f"Estancia máxima de {prop.max_nights} noches")
    if guests < 1:
        reasons.append("Se requiere al menos 1 huésped")
    elif guests > prop.max_guests:
        reasons.append(f"Máximo {prop.max_guests} huéspedes")
    return reasons


def compute_quote(
    prop: Property,
    check_in: date,
    check_out: date,
    guests: int,
    today: date,
) -> QuoteBreakdown:
    """
    Calcula el desglose de precio de una estancia.

    base = suma por noche de (tarifa nocturna + ajuste de la fecha).
    Servicio e impuestos se calculan en puntos básicos sobre base.

    Raises:
        ValidationError: Si la estancia incumple alguna regla de la propiedad.
    """
    reasons = stay_violations(prop, check_in, check_out, guests, today)
    if reasons:
        raise ValidationError("; ".join(reasons), field="stay")

    stay = DateRange(check_in, check_out)
    nightly = Decimal(prop.nightly_rate)
    base_total = sum(
        (nightly + prop.rate_overrides.get(night, Decimal("0")) for night in stay.iter_nights()),
        Decimal("0"),
    )
    if base_total < 0:
        raise ValidationError("Los ajustes de tarifa producen un precio negativo", field="rate_overrides")

    base = Money(amount=base_total, currency_code=prop.currency)
    cleaning = Money(amount=prop.cleaning_fee, currency_code=prop.currency)
    service = base.apply_bps(prop.service_fee_bps)
    taxes = base.apply_bps(prop.tax_bps)
    total = base + cleaning + service + taxes

    return QuoteBreakdown(
        nights=stay.nights,
        base_amount=base.amount,
        cleaning_fee=cleaning.amount,
        service_fee=service.amount,
        taxes=taxes.amount,
        total=total.amount,
        currency=prop.currency,
    )
