import logging
from decimal import Decimal

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.cancellation_repo import CancellationRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payout_repo import PayoutRepo
from app.application.interfaces.property_repo import PropertyRepo
from app.application.interfaces.statement_repo import StatementRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.domain.entities.booking import Booking
from app.domain.entities.payout import Payout, PayoutStatus
from app.domain.entities.statement import (
    StatementLine,
    StatementLineKind,
    StatementPeriod,
    StatementStatus,
    VendorStatement,
)
from app.domain.errors import (
    BookingNotFoundError,
    PayoutNotFoundError,
    PayoutTransitionDeniedError,
    PropertyNotFoundError,
    StatementAlreadyFinalizedError,
    StatementNotFoundError,
    StatementTransitionDeniedError,
    ValidationError,
)
from app.domain.value_objects.money import Money

_BLOCKING_PAYOUT_STATUSES = frozenset(
    {PayoutStatus.PENDING, PayoutStatus.PROCESSING, PayoutStatus.SUCCEEDED}
)


def vendor_refund_share(booking: Booking, refund_amount: Decimal) -> Money:
    """
    Parte del reembolso que sale de las ganancias del anfitrión.

    El reembolso se reparte en proporción a noches + limpieza sobre el total
    cobrado y nunca supera lo acreditado por la reserva.
    """
    earnings = booking.vendor_earnings
    if booking.total_amount <= 0:
        return Money(amount=Decimal("0"), currency_code=booking.currency)
    share = Money(amount=refund_amount * earnings.amount / booking.total_amount, currency_code=booking.currency)
    return share if share.amount <= earnings.amount else earnings


class StatementLedger:
    """
    Estados de cuenta mensuales por anfitrión y moneda.

    Una reserva o reembolso aparece como máximo en un estado de cuenta no
    anulado; anular un estado de cuenta devuelve su actividad al pool.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        cancellation_repo: CancellationRepo,
        property_repo: PropertyRepo,
        statement_repo: StatementRepo,
        payout_repo: PayoutRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
        default_currency: str = "USD",
    ) -> None:
        self._booking_repo = booking_repo
        self._cancellation_repo = cancellation_repo
        self._property_repo = property_repo
        self._statement_repo = statement_repo
        self._payout_repo = payout_repo
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._default_currency = default_currency
        self._logger = logging.getLogger(__name__)

    async def generate_statement(
        self,
        period: StatementPeriod,
        vendor_id: str | None = None,
        currency: str | None = None,
    ) -> list[VendorStatement]:
        """
        Crea o regenera estados de cuenta DRAFT del periodo.

        Con `vendor_id` opera sobre ese anfitrión y falla si su estado de
        cuenta ya está finalizado. Sin él recorre todos los anfitriones con
        actividad elegible y omite los finalizados.

        Raises:
            StatementAlreadyFinalizedError: Solo en modo por anfitrión.
        """
        currency = (currency or self._default_currency).upper()
        generated: list[VendorStatement] = []
        async with self._tx.start():
            if vendor_id is not None:
                generated.append(await self._generate_one(vendor_id, period, currency))
            else:
                vendor_ids = set(await self._booking_repo.list_vendor_ids(currency, period))
                vendor_ids.update(await self._cancellation_repo.list_refund_vendor_ids(currency, period))
                for vid in sorted(vendor_ids):
                    try:
                        generated.append(await self._generate_one(vid, period, currency))
                    except StatementAlreadyFinalizedError as exc:
                        self._logger.info(
                            "Statement generation skipped: already finalized",
                            extra={"vendor_id": vid, "period": period.label, "status": exc.status},
                        )
        return generated

    async def _generate_one(self, vendor_id: str, period: StatementPeriod, currency: str) -> VendorStatement:
        now = self._clock.now()
        statement = await self._statement_repo.find_current(vendor_id, period, currency)
        if statement is None:
            statement = VendorStatement(
                id=self._ids.generate_uuid(),
                vendor_id=vendor_id,
                period_start=period.start,
                period_end=period.end,
                currency=currency,
                generated_at=now,
            )
            await self._statement_repo.add(statement)
        elif statement.status != StatementStatus.DRAFT:
            raise StatementAlreadyFinalizedError(statement.id, statement.status.value)
        else:
            # Las líneas propias del borrador no deben contar como ya incluidas.
            await self._statement_repo.replace_lines(statement.id, [])

        lines: list[StatementLine] = []
        commission_bps: dict[str, int] = {}
        for booking in await self._booking_repo.list_unstated_confirmed(vendor_id, currency, period):
            bps = await self._commission_bps(booking.property_id, commission_bps)
            earnings = booking.vendor_earnings
            lines.append(
                StatementLine(
                    statement_id=statement.id,
                    kind=StatementLineKind.BOOKING,
                    ref_id=booking.id,
                    booking_id=booking.id,
                    amount=earnings.amount,
                    commission=earnings.apply_bps(bps).amount,
                )
            )
        for refund in await self._cancellation_repo.list_unstated_refunds(vendor_id, currency, period):
            booking = await self._booking_repo.get(refund.booking_id)
            if not booking:
                raise BookingNotFoundError(refund.booking_id)
            bps = await self._commission_bps(booking.property_id, commission_bps)
            share = vendor_refund_share(booking, refund.amount)
            lines.append(
                StatementLine(
                    statement_id=statement.id,
                    kind=StatementLineKind.REFUND,
                    ref_id=refund.id,
                    booking_id=refund.booking_id,
                    amount=share.amount,
                    # Comisión que la plataforma devuelve sobre la parte reembolsada
                    commission=share.apply_bps(bps).amount,
                )
            )

        statement.apply_totals(lines)
        statement.generated_at = now
        await self._statement_repo.replace_lines(statement.id, lines)
        await self._statement_repo.save(statement)

        self._logger.info(
            "Statement generated",
            extra={
                "statement_id": statement.id,
                "vendor_id": vendor_id,
                "period": period.label,
                "lines": len(lines),
                "net_payable": str(statement.net_payable),
            },
        )
        return statement

    async def _commission_bps(self, property_id: str, cache: dict[str, int]) -> int:
        if property_id not in cache:
            prop = await self._property_repo.get(property_id)
            if not prop:
                raise PropertyNotFoundError(property_id)
            cache[property_id] = prop.commission_bps
        return cache[property_id]

    async def get_statement(self, statement_id: str) -> VendorStatement:
        async with self._tx.start():
            return await self._get(statement_id)

    async def finalize(self, statement_id: str) -> VendorStatement:
        """DRAFT -> FINALIZED. Finalizar de nuevo no tiene efecto."""
        async with self._tx.start():
            statement = await self._get(statement_id, for_update=True)
            if statement.status == StatementStatus.FINALIZED:
                return statement
            if statement.status == StatementStatus.PAID:
                raise StatementAlreadyFinalizedError(statement.id, statement.status.value)
            if statement.status == StatementStatus.VOID:
                raise StatementTransitionDeniedError(statement.id, "un estado de cuenta anulado no se finaliza")
            statement.status = StatementStatus.FINALIZED
            statement.finalized_at = self._clock.now()
            await self._statement_repo.save(statement)
        self._logger.info("Statement finalized", extra={"statement_id": statement.id})
        return statement

    async def void(self, statement_id: str, reason: str) -> VendorStatement:
        """
        DRAFT|FINALIZED -> VOID. Nunca desde PAID ni con un payout vivo.

        Las líneas se conservan para auditoría pero dejan de contar como incluidas.
        """
        if not reason or not reason.strip():
            raise ValidationError("Se requiere un motivo para anular", field="reason")
        async with self._tx.start():
            statement = await self._get(statement_id, for_update=True)
            if statement.status == StatementStatus.VOID:
                return statement
            if statement.status == StatementStatus.PAID:
                raise StatementTransitionDeniedError(statement.id, "un estado de cuenta pagado no se anula")
            payout = await self._payout_repo.get_by_statement(statement.id)
            if payout and payout.status in _BLOCKING_PAYOUT_STATUSES:
                raise StatementTransitionDeniedError(
                    statement.id, f"tiene un payout {payout.status.value}"
                )
            statement.status = StatementStatus.VOID
            statement.voided_at = self._clock.now()
            statement.void_reason = reason
            await self._statement_repo.save(statement)
        self._logger.info("Statement voided", extra={"statement_id": statement.id, "reason": reason})
        return statement

    async def _get(self, statement_id: str, for_update: bool = False) -> VendorStatement:
        statement = await self._statement_repo.get(statement_id, for_update=for_update)
        if not statement:
            raise StatementNotFoundError(statement_id)
        return statement


class PayoutLedger:
    """
    Payouts 1:1 con estados de cuenta finalizados.

    SUCCEEDED marca el estado de cuenta como PAID en la misma transacción.
    """

    def __init__(
        self,
        statement_repo: StatementRepo,
        payout_repo: PayoutRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
    ) -> None:
        self._statement_repo = statement_repo
        self._payout_repo = payout_repo
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._logger = logging.getLogger(__name__)

    async def create_payout(self, statement_id: str) -> Payout:
        now = self._clock.now()
        async with self._tx.start():
            statement = await self._statement_repo.get(statement_id, for_update=True)
            if not statement:
                raise StatementNotFoundError(statement_id)
            existing = await self._payout_repo.get_by_statement(statement_id)
            if existing:
                return existing
            if statement.status != StatementStatus.FINALIZED:
                raise PayoutTransitionDeniedError(
                    f"el estado de cuenta {statement_id} está {statement.status.value}, se requiere FINALIZED"
                )
            if statement.net_payable <= Decimal("0"):
                raise PayoutTransitionDeniedError(f"el estado de cuenta {statement_id} no tiene saldo a pagar")
            payout = Payout(
                id=self._ids.generate_uuid(),
                statement_id=statement.id,
                vendor_id=statement.vendor_id,
                amount=statement.net_payable,
                currency=statement.currency,
                created_at=now,
                updated_at=now,
            )
            await self._payout_repo.add(payout)
        self._logger.info(
            "Payout created",
            extra={"payout_id": payout.id, "statement_id": statement_id, "amount": str(payout.amount)},
        )
        return payout

    async def get_payout(self, payout_id: str) -> Payout:
        async with self._tx.start():
            return await self._get(payout_id)

    async def mark_processing(self, payout_id: str) -> Payout:
        now = self._clock.now()
        async with self._tx.start():
            payout = await self._get(payout_id, for_update=True)
            if payout.status == PayoutStatus.PROCESSING:
                return payout
            self._ensure_allowed(payout, PayoutStatus.PROCESSING)
            payout.status = PayoutStatus.PROCESSING
            payout.attempts += 1
            payout.failure_reason = None
            payout.processing_at = now
            payout.updated_at = now
            await self._payout_repo.save(payout)
        self._logger.info("Payout processing", extra={"payout_id": payout.id, "attempts": payout.attempts})
        return payout

    async def mark_succeeded(self, payout_id: str, idempotency_key: str) -> Payout:
        """
        PROCESSING -> SUCCEEDED y estado de cuenta -> PAID.

        Repetir con la misma clave no tiene efecto; una clave distinta se rechaza.
        """
        if not idempotency_key:
            raise ValidationError("Se requiere idempotency_key", field="idempotency_key")
        now = self._clock.now()
        async with self._tx.start():
            payout = await self._get(payout_id, for_update=True)
            if payout.status == PayoutStatus.SUCCEEDED:
                if payout.idempotency_key == idempotency_key:
                    return payout
                raise PayoutTransitionDeniedError("ya fue pagado con otra clave de idempotencia", payout.id)
            self._ensure_allowed(payout, PayoutStatus.SUCCEEDED)

            statement = await self._statement_repo.get(payout.statement_id, for_update=True)
            if not statement:
                raise StatementNotFoundError(payout.statement_id)
            if statement.status != StatementStatus.FINALIZED:
                raise PayoutTransitionDeniedError(
                    f"el estado de cuenta está {statement.status.value}, se requiere FINALIZED", payout.id
                )

            payout.status = PayoutStatus.SUCCEEDED
            payout.idempotency_key = idempotency_key
            payout.succeeded_at = now
            payout.updated_at = now
            await self._payout_repo.save(payout)

            statement.status = StatementStatus.PAID
            statement.paid_at = now
            await self._statement_repo.save(statement)

        self._logger.info(
            "Payout succeeded",
            extra={"payout_id": payout.id, "statement_id": payout.statement_id, "amount": str(payout.amount)},
        )
        return payout

    async def mark_failed(self, payout_id: str, failure_reason: str) -> Payout:
        if not failure_reason or not failure_reason.strip():
            raise ValidationError("Se requiere failure_reason", field="failure_reason")
        now = self._clock.now()
        async with self._tx.start():
            payout = await self._get(payout_id, for_update=True)
            if payout.status == PayoutStatus.FAILED:
                return payout
            self._ensure_allowed(payout, PayoutStatus.FAILED)
            payout.status = PayoutStatus.FAILED
            payout.failure_reason = failure_reason
            payout.failed_at = now
            payout.updated_at = now
            await self._payout_repo.save(payout)
        self._logger.warning(
            "Payout failed", extra={"payout_id": payout.id, "failure_reason": failure_reason}
        )
        return payout

    async def cancel(self, payout_id: str) -> Payout:
        now = self._clock.now()
        async with self._tx.start():
            payout = await self._get(payout_id, for_update=True)
            if payout.status == PayoutStatus.CANCELLED:
                return payout
            self._ensure_allowed(payout, PayoutStatus.CANCELLED)
            payout.status = PayoutStatus.CANCELLED
            payout.cancelled_at = now
            payout.updated_at = now
            await self._payout_repo.save(payout)
        self._logger.info("Payout cancelled", extra={"payout_id": payout.id})
        return payout

    def _ensure_allowed(self, payout: Payout, target: PayoutStatus) -> None:
        if not payout.can_transition_to(target):
            raise PayoutTransitionDeniedError(
                f"transición no permitida {payout.status.value} -> {target.value}", payout.id
            )

    async def _get(self, payout_id: str, for_update: bool = False) -> Payout:
        payout = await self._payout_repo.get(payout_id, for_update=for_update)
        if not payout:
            raise PayoutNotFoundError(payout_id)
        return payout
