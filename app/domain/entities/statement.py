"""Entidades del libro de estados de cuenta de anfitriones."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum

from app.domain.errors import ValidationError


class StatementStatus(str, Enum):
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"
    VOID = "VOID"
    PAID = "PAID"


class StatementLineKind(str, Enum):
    BOOKING = "BOOKING"
    REFUND = "REFUND"


@dataclass(frozen=True)
class StatementPeriod:
    """Periodo mensual UTC [primer día, primer día del mes siguiente)."""

    start: date
    end: date

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, time.min, tzinfo=timezone.utc)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.end, time.min, tzinfo=timezone.utc)

    @property
    def label(self) -> str:
        return f"{self.start.year:04d}-{self.start.month:02d}"

    @classmethod
    def monthly(cls, year: int, month: int) -> "StatementPeriod":
        if not 2000 <= year <= 2100:
            raise ValidationError(f"Año fuera de rango: {year}", field="period")
        if not 1 <= month <= 12:
            raise ValidationError(f"Mes fuera de rango: {month}", field="period")
        start = date(year, month, 1)
        end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        return cls(start=start, end=end)

    @classmethod
    def parse(cls, value: str) -> "StatementPeriod":
        """Acepta 'YYYY-MM'."""
        try:
            year_text, month_text = value.split("-")
            year, month = int(year_text), int(month_text)
        except ValueError as exc:
            raise ValidationError(f"Periodo inválido (se espera YYYY-MM): {value}", field="period") from exc
        return cls.monthly(year, month)


@dataclass
class StatementLine:
    statement_id: str
    kind: StatementLineKind
    ref_id: str
    booking_id: str
    amount: Decimal
    commission: Decimal = Decimal("0")
    id: int | None = None


@dataclass
class VendorStatement:
    """
    Estado de cuenta mensual de un anfitrión.

    Solo se regenera en DRAFT; FINALIZED congela los totales.
    """

    id: str
    vendor_id: str
    period_start: date
    period_end: date
    currency: str
    status: StatementStatus = StatementStatus.DRAFT
    gross_amount: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    refund_amount: Decimal = Decimal("0")
    net_payable: Decimal = Decimal("0")
    generated_at: datetime | None = None
    finalized_at: datetime | None = None
    paid_at: datetime | None = None
    voided_at: datetime | None = None
    void_reason: str | None = None
    lines: list[StatementLine] = field(default_factory=list)

    @property
    def period(self) -> StatementPeriod:
        return StatementPeriod(self.period_start, self.period_end)

    def apply_totals(self, lines: list[StatementLine]) -> None:
        """
        Recalcula totales; net_payable nunca es negativo.

        La comisión de una línea REFUND es la que se devuelve al anfitrión.
        """
        gross = sum((l.amount for l in lines if l.kind == StatementLineKind.BOOKING), Decimal("0"))
        commission = sum(
            (l.commission if l.kind == StatementLineKind.BOOKING else -l.commission for l in lines),
            Decimal("0"),
        )
        refunds = sum((l.amount for l in lines if l.kind == StatementLineKind.REFUND), Decimal("0"))
        self.lines = list(lines)
        self.gross_amount = gross
        self.commission_amount = commission
        self.refund_amount = refunds
        self.net_payable = max(Decimal("0"), gross - commission - refunds)
