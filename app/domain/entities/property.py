"""Entidad Property - configuración de precios y política de una propiedad.

El CRUD de propiedades vive fuera de este servicio; aquí solo se modela lo
que el motor de reservas necesita leer.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class PenaltyBand:
    """Penalización aplicada cuando faltan menos de `within_hours` para el check-in."""

    within_hours: int
    percent: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.percent, Decimal):
            object.__setattr__(self, "percent", Decimal(str(self.percent)))
        if self.within_hours <= 0:
            raise ValueError(f"within_hours debe ser positivo: {self.within_hours}")
        if not Decimal(0) <= self.percent <= Decimal(100):
            raise ValueError(f"percent fuera de rango 0..100: {self.percent}")


@dataclass(frozen=True)
class CancellationPolicy:
    """
    Política de cancelación de la propiedad.

    Attributes:
        free_cancel_before_hours: Cancelación gratuita si faltan al menos estas horas.
        penalty_bands: Bandas de penalización por horas restantes al check-in.
        version: Versión de la política (se guarda en el snapshot de cancelación).
    """

    free_cancel_before_hours: int = 48
    penalty_bands: tuple[PenaltyBand, ...] = ()
    version: int = 1

    def sorted_bands(self) -> list[PenaltyBand]:
        """Bandas de la más estricta (menos horas) a la más laxa."""
        return sorted(self.penalty_bands, key=lambda band: band.within_hours)

    def to_dict(self) -> dict:
        return {
            "free_cancel_before_hours": self.free_cancel_before_hours,
            "penalty_bands": [
                {"within_hours": band.within_hours, "percent": str(band.percent)}
                for band in self.penalty_bands
            ],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "CancellationPolicy":
        if not data:
            return cls()
        return cls(
            free_cancel_before_hours=int(data.get("free_cancel_before_hours", 48)),
            penalty_bands=tuple(
                PenaltyBand(within_hours=int(band["within_hours"]), percent=Decimal(str(band["percent"])))
                for band in data.get("penalty_bands", [])
            ),
            version=int(data.get("version", 1)),
        )


@dataclass
class Property:
    """Propiedad reservable con sus reglas de precio y ocupación."""

    id: str
    vendor_id: str
    name: str
    currency: str
    nightly_rate: Decimal
    cleaning_fee: Decimal = Decimal("0")
    service_fee_bps: int = 0
    tax_bps: int = 0
    commission_bps: int = 0
    min_nights: int = 1
    max_nights: int | None = None
    max_guests: int = 1
    cancellation_policy: CancellationPolicy = field(default_factory=CancellationPolicy)
    rate_overrides: dict[date, Decimal] = field(default_factory=dict)
