"""Value Object DateRange - estancia de noches [check_in, check_out)."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator


@dataclass(frozen=True)
class DateRange:
    """
    Value Object inmutable que representa un intervalo semiabierto de fechas.

    El día de salida no se ocupa: [2025-06-01, 2025-06-05) son 4 noches.

    Attributes:
        start: Fecha de entrada (check-in).
        end: Fecha de salida (check-out), exclusiva.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(
                f"start debe ser anterior a end: {self.start} >= {self.end}"
            )

    @property
    def nights(self) -> int:
        """Número de noches del rango (días calendario)."""
        return (self.end - self.start).days

    def overlaps_with(self, other: "DateRange") -> bool:
        """[a,b) y [c,d) se solapan si a < d y c < b."""
        return self.start < other.end and other.start < self.end

    def iter_nights(self) -> Iterator[date]:
        """Itera la fecha de cada noche ocupada."""
        day = self.start
        while day < self.end:
            yield day
            day += timedelta(days=1)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
