"""Value Objects del dominio de reservas."""

from app.domain.value_objects.date_range import DateRange
from app.domain.value_objects.money import Money, quantize

__all__ = [
    "DateRange",
    "Money",
    "quantize",
]
