import logging

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.cancellation_repo import CancellationRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payment_gateway import PaymentGateway
from app.application.interfaces.payment_repo import PaymentRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.domain.entities.cancellation import RefundRecord, RefundStatus
from app.domain.entities.payment import PaymentProvider
from app.domain.errors import (
    BookingNotFoundError,
    RefundNotAllowedError,
    RefundNotFoundError,
)


class RefundService:
    """Reembolsos explícitos posteriores a una cancelación."""

    def __init__(
        self,
        booking_repo: BookingRepo,
        cancellation_repo: CancellationRepo,
        payment_repo: PaymentRepo,
        gateways: dict[PaymentProvider, PaymentGateway],
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
    ) -> None:
        self._booking_repo = booking_repo
        self._cancellation_repo = cancellation_repo
        self._payment_repo = payment_repo
        self._gateways = gateways
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._logger = logging.getLogger(__name__)

    async def request_refund(self, booking_id: str, reason: str) -> RefundRecord:
        """
        Crea un reembolso PENDING por el monto reembolsable de la cancelación.

        Como máximo existe un reembolso no fallido por reserva; si ya existe
        se devuelve tal cual.

        Raises:
            RefundNotAllowedError: Sin cancelación, sin monto reembolsable o sin pago capturado.
        """
        now = self._clock.now()
        async with self._tx.start():
            booking = await self._booking_repo.get(booking_id)
            if not booking:
                raise BookingNotFoundError(booking_id)

            for existing in await self._cancellation_repo.list_refunds(booking_id):
                if existing.status != RefundStatus.FAILED:
                    return existing

            cancellation = await self._cancellation_repo.get_by_booking(booking_id)
            if not cancellation:
                raise RefundNotAllowedError(booking_id, "la reserva no está cancelada")
            if cancellation.refundable_amount <= 0:
                raise RefundNotAllowedError(booking_id, "no hay monto reembolsable")
            payment = await self._payment_repo.get_by_booking(booking_id)
            if not payment or not payment.is_captured:
                raise RefundNotAllowedError(booking_id, "no hay pago capturado")

            refund = RefundRecord(
                id=self._ids.generate_uuid(),
                booking_id=booking_id,
                vendor_id=booking.vendor_id,
                amount=cancellation.refundable_amount,
                currency=cancellation.currency,
                reason=reason,
                provider=payment.provider.value,
                created_at=now,
            )
            await self._cancellation_repo.add_refund(refund)

        self._logger.info(
            "Refund requested",
            extra={"refund_id": refund.id, "booking_id": booking_id, "amount": str(refund.amount)},
        )
        return refund

    async def process_refund(self, refund_id: str) -> RefundRecord:
        """
        Ejecuta el reembolso en el proveedor: PENDING|FAILED -> PROCESSING -> SUCCEEDED|FAILED.

        Un reembolso SUCCEEDED se devuelve sin cambios. Uno que quedó en PROCESSING
        (llamada interrumpida) se reintenta con la misma clave `refund:{id}`, así
        que el proveedor no lo ejecuta dos veces.
        """
        async with self._tx.start():
            refund = await self._cancellation_repo.get_refund(refund_id)
            if not refund:
                raise RefundNotFoundError(refund_id)
            if refund.status == RefundStatus.SUCCEEDED:
                return refund
            payment = await self._payment_repo.get_by_booking(refund.booking_id)
            if not payment or not payment.provider_ref:
                raise RefundNotAllowedError(refund.booking_id, "el pago no tiene referencia del proveedor")
            if refund.status == RefundStatus.PROCESSING:
                self._logger.warning(
                    "Resuming refund left in PROCESSING", extra={"refund_id": refund.id, "booking_id": refund.booking_id}
                )
            refund.status = RefundStatus.PROCESSING
            refund.failure_reason = None
            await self._cancellation_repo.save_refund(refund)

        gateway = self._gateways.get(payment.provider)
        try:
            if gateway is None:
                raise RuntimeError(f"payment provider {payment.provider.value} not configured")
            provider_refund_ref = await gateway.create_refund(
                provider_ref=payment.provider_ref,
                amount=refund.amount,
                currency=refund.currency,
                idempotency_key=f"refund:{refund.id}",
            )
        except Exception as exc:
            self._logger.error(
                "Refund failed at provider",
                extra={"refund_id": refund.id, "booking_id": refund.booking_id, "error": str(exc)},
            )
            async with self._tx.start():
                refund.status = RefundStatus.FAILED
                refund.failure_reason = str(exc)[:500]
                await self._cancellation_repo.save_refund(refund)
            return refund

        async with self._tx.start():
            refund.status = RefundStatus.SUCCEEDED
            refund.provider_refund_ref = provider_refund_ref
            refund.processed_at = self._clock.now()
            await self._cancellation_repo.save_refund(refund)

        self._logger.info(
            "Refund succeeded",
            extra={"refund_id": refund.id, "provider_refund_ref": provider_refund_ref},
        )
        return refund
