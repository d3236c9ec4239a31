import logging
from datetime import date

from app.application.interfaces.clock import Clock
from app.application.interfaces.property_repo import PropertyRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.domain.errors import PropertyNotFoundError
from app.domain.services.quote_engine import QuoteBreakdown, compute_quote


class GetQuoteUseCase:
    """Cotiza una estancia sin reservar inventario."""

    def __init__(
        self,
        property_repo: PropertyRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._property_repo = property_repo
        self._tx = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        guests: int,
    ) -> QuoteBreakdown:
        async with self._tx.start():
            prop = await self._property_repo.get(property_id)
        if not prop:
            raise PropertyNotFoundError(property_id)
        quote = compute_quote(prop, check_in, check_out, guests, today=self._clock.today())
        self._logger.debug(
            "Quote computed",
            extra={"property_id": property_id, "nights": quote.nights, "total": str(quote.total)},
        )
        return quote
