"""Servicios de dominio puros (sin I/O)."""

from app.domain.services.cancellation_policy import compute_cancellation, hours_to_check_in
from app.domain.services.quote_engine import QuoteBreakdown, compute_quote, stay_violations

__all__ = [
    "QuoteBreakdown",
    "compute_cancellation",
    "compute_quote",
    "hours_to_check_in",
    "stay_violations",
]
