"""Value Object Money - representa un valor monetario con su moneda."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
BPS_DIVISOR = Decimal("10000")


def quantize(amount: Decimal) -> Decimal:
    """Redondea a centavos (half-up)."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Value Object inmutable que representa un monto monetario.

    Attributes:
        amount: Monto decimal (hasta 2 decimales).
        currency_code: Código ISO 4217 de la moneda (ej: USD, MXN, EUR).
    """

    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        object.__setattr__(self, "amount", quantize(self.amount))

        if len(self.currency_code) != 3:
            raise ValueError(f"currency_code debe ser de 3 caracteres: {self.currency_code}")

        if self.amount < 0:
            raise ValueError(f"amount no puede ser negativo: {self.amount}")

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency_code=self.currency_code)

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Operación no soportada entre Money y {type(other)}")
        if self.currency_code != other.currency_code:
            raise ValueError(
                f"Monedas distintas: {self.currency_code} vs {other.currency_code}"
            )

    def apply_bps(self, bps: int) -> "Money":
        """Aplica una tasa en puntos básicos (100 bps = 1%)."""
        return Money(amount=self.amount * Decimal(bps) / BPS_DIVISOR, currency_code=self.currency_code)

    def apply_percent(self, percent: Decimal | int) -> "Money":
        return Money(amount=self.amount * Decimal(percent) / Decimal(100), currency_code=self.currency_code)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency_code}"

    @classmethod
    def from_cents(cls, cents: int, currency_code: str) -> "Money":
        """Crea un Money desde unidades menores (centavos)."""
        return cls(amount=Decimal(cents) / 100, currency_code=currency_code)

    def to_cents(self) -> int:
        """Convierte a unidades menores para el proveedor de pagos."""
        return int((self.amount * 100).to_integral_value(rounding=ROUND_HALF_UP))
