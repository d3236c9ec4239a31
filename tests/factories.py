"""Constructores de datos de prueba compartidos por los tests."""

import json
from datetime import date, datetime, timezone
from decimal import Decimal

from app.domain.entities.property import CancellationPolicy, PenaltyBand, Property
from app.infrastructure.gateways.payments.manual_gateway import sign_payload

TEST_WEBHOOK_SECRET = "test-webhook-secret"
TEST_ADMIN_KEY = "test-admin-key"
NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)

# 3 noches: base 300, limpieza 50, servicio 30, impuestos 15 -> total 395
STAY = dict(check_in=date(2025, 6, 10), check_out=date(2025, 6, 13), guests=2)
STAY_TOTAL = Decimal("395.00")
STAY_TOTAL_MINOR = 39500


def make_property(**overrides) -> Property:
    """
    Propiedad de referencia: 100/noche, limpieza 50, servicio 10%, impuestos 5%,
    comisión 15%, cancelación gratis hasta 48h, 50% dentro de 48h, 100% dentro de 24h.
    """
    values = dict(
        id="P1",
        vendor_id="V1",
        name="Casa del Lago",
        currency="USD",
        nightly_rate=Decimal("100.00"),
        cleaning_fee=Decimal("50.00"),
        service_fee_bps=1000,
        tax_bps=500,
        commission_bps=1500,
        min_nights=1,
        max_nights=30,
        max_guests=4,
        cancellation_policy=CancellationPolicy(
            free_cancel_before_hours=48,
            penalty_bands=(
                PenaltyBand(within_hours=48, percent=Decimal("50")),
                PenaltyBand(within_hours=24, percent=Decimal("100")),
            ),
        ),
    )
    values.update(overrides)
    return Property(**values)


def manual_webhook(
    event_id: str,
    booking_id: str,
    amount_minor: int = STAY_TOTAL_MINOR,
    currency: str = "USD",
    event_type: str = "payment.succeeded",
    provider_ref: str | None = None,
    secret: str = TEST_WEBHOOK_SECRET,
) -> tuple[bytes, str]:
    """Construye (cuerpo, firma) de un webhook del proveedor manual."""
    body = json.dumps(
        {
            "id": event_id,
            "type": event_type,
            "data": {
                "provider_ref": provider_ref or f"manual_{booking_id}",
                "booking_id": booking_id,
                "amount": amount_minor,
                "currency": currency,
            },
        }
    ).encode()
    return body, sign_payload(body, secret)
