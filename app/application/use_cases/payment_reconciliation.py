import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payment_gateway import PaymentGateway
from app.application.interfaces.payment_repo import PaymentRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.application.use_cases.booking_state_machine import BookingStateMachine
from app.domain.entities.booking import BookingStatus
from app.domain.entities.payment import (
    HostedSession,
    PaymentEvent,
    PaymentEventType,
    PaymentProvider,
    PaymentRecord,
    PaymentStatus,
    WebhookEvent,
)
from app.domain.errors import (
    BookingNotFoundError,
    InvalidTransitionError,
    PaymentMismatchError,
    PaymentNotFoundError,
    ValidationError,
    WebhookSignatureInvalidError,
)
from app.domain.value_objects.money import Money

_DEAD_SESSION_STATUSES = frozenset({PaymentStatus.FAILED, PaymentStatus.MISMATCH})


def _next_session_attempt(record: PaymentRecord | None) -> int:
    """Una sesión fallida o expirada no se reutiliza: su clave ya está gastada."""
    if record is None:
        return 1
    if record.status in _DEAD_SESSION_STATUSES:
        return record.session_attempt + 1
    return record.session_attempt


@dataclass(frozen=True)
class WebhookOutcome:
    """Resultado del procesamiento de un webhook."""

    status: str
    event_id: str
    booking_id: str | None = None
    payment_id: str | None = None


class PaymentReconciliationAdapter:
    """
    Traduce eventos firmados del proveedor a transiciones de reserva.

    Es el único camino hacia CONFIRMED: ningún endpoint de cliente puede
    confirmar una reserva.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        payment_repo: PaymentRepo,
        booking_state_machine: BookingStateMachine,
        gateways: dict[PaymentProvider, PaymentGateway],
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
    ) -> None:
        self._booking_repo = booking_repo
        self._payment_repo = payment_repo
        self._bookings = booking_state_machine
        self._gateways = gateways
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._logger = logging.getLogger(__name__)

    def _gateway(self, provider: PaymentProvider) -> PaymentGateway:
        gateway = self._gateways.get(provider)
        if gateway is None:
            raise ValidationError(f"Proveedor de pago no configurado: {provider.value}", field="provider")
        return gateway

    async def initiate(
        self,
        booking_id: str,
        customer_id: str,
        provider: PaymentProvider = PaymentProvider.MANUAL,
    ) -> HostedSession:
        """
        Abre una sesión de pago alojada para una reserva PENDING_PAYMENT.

        La llamada al proveedor ocurre fuera de la transacción; el registro de
        pago se crea o actualiza después con la referencia devuelta.
        Repetir la llamada reutiliza la sesión vigente; tras un pago fallido se
        abre una sesión nueva con otra clave de idempotencia.
        """
        gateway = self._gateway(provider)
        booking = await self._bookings.get_booking(booking_id, customer_id=customer_id)
        if booking.status != BookingStatus.PENDING_PAYMENT:
            raise InvalidTransitionError(
                "Booking", booking.id, booking.status.value, BookingStatus.CONFIRMED.value
            )

        async with self._tx.start():
            attempt = _next_session_attempt(await self._payment_repo.get_by_booking(booking.id))
        session = await gateway.create_hosted_session(
            booking_id=booking.id,
            amount=booking.total_amount,
            currency=booking.currency,
            idempotency_key=f"booking:{booking.id}:session:{attempt}",
        )

        now = self._clock.now()
        async with self._tx.start():
            record = await self._payment_repo.get_by_booking(booking.id)
            if record is None:
                record = PaymentRecord(
                    id=self._ids.generate_uuid(),
                    booking_id=booking.id,
                    provider=provider,
                    amount=booking.total_amount,
                    currency=booking.currency,
                    provider_ref=session.provider_ref,
                    redirect_url=session.redirect_url,
                    session_attempt=attempt,
                    created_at=now,
                    updated_at=now,
                )
                await self._payment_repo.add(record)
            elif record.status != PaymentStatus.CAPTURED:
                record.provider = provider
                record.status = PaymentStatus.REQUIRES_ACTION
                record.provider_ref = session.provider_ref
                record.redirect_url = session.redirect_url
                record.session_attempt = attempt
                record.updated_at = now
                await self._payment_repo.save(record)

        self._logger.info(
            "Payment session opened",
            extra={"booking_id": booking.id, "provider": provider.value, "provider_ref": session.provider_ref},
        )
        return session

    async def handle_webhook(
        self,
        raw_payload: bytes,
        signature: str | None,
        provider: PaymentProvider = PaymentProvider.MANUAL,
    ) -> WebhookOutcome:
        """
        Verifica y aplica un evento del proveedor. Idempotente por id de evento.

        Raises:
            WebhookSignatureInvalidError: Firma ausente o inválida (nada se escribe).
            PaymentNotFoundError: El evento no corresponde a ningún pago conocido.
        """
        if not raw_payload:
            raise ValidationError("Cuerpo de webhook vacío", field="payload")
        try:
            event = self._gateway(provider).parse_webhook(raw_payload, signature)
        except WebhookSignatureInvalidError as exc:
            self._logger.warning(
                "Security: webhook signature rejected",
                extra={"provider": provider.value, "reason": exc.message},
            )
            raise

        now = self._clock.now()
        async with self._tx.start():
            record = await self._resolve_record(event)

            if await self._payment_repo.has_event(record.id, event.event_id):
                self._logger.info(
                    "Webhook duplicate ignored",
                    extra={"event_id": event.event_id, "payment_id": record.id},
                )
                return WebhookOutcome("duplicate", event.event_id, record.booking_id, record.id)

            amount = Money.from_cents(event.amount_minor, event.currency).amount if (
                event.amount_minor is not None and event.currency
            ) else None
            await self._payment_repo.add_event(
                PaymentEvent(
                    payment_id=record.id,
                    provider_event_id=event.event_id,
                    event_type=event.event_type,
                    amount=amount,
                    currency=event.currency,
                    payload=event.raw,
                    received_at=now,
                )
            )

            if event.event_type == PaymentEventType.PAYMENT_SUCCEEDED:
                status = await self._apply_success(record, event, now)
            elif event.event_type == PaymentEventType.PAYMENT_FAILED:
                if record.status != PaymentStatus.CAPTURED:
                    record.status = PaymentStatus.FAILED
                    record.updated_at = now
                    await self._payment_repo.save(record)
                self._logger.warning(
                    "Webhook processed: payment failed",
                    extra={"event_id": event.event_id, "booking_id": record.booking_id},
                )
                status = "failed"
            else:
                status = "ignored"

        return WebhookOutcome(status, event.event_id, record.booking_id, record.id)

    async def _resolve_record(self, event: WebhookEvent) -> PaymentRecord:
        record = None
        if event.provider_ref:
            record = await self._payment_repo.get_by_provider_ref(event.provider_ref)
        if record is None and event.booking_id:
            record = await self._payment_repo.get_by_booking(event.booking_id)
        if record is None:
            raise PaymentNotFoundError(event.provider_ref or event.booking_id or event.event_id)
        if event.booking_id and event.booking_id != record.booking_id:
            raise PaymentMismatchError(record.booking_id, "la referencia pertenece a otra reserva")
        return record

    def _mismatch_reason(self, record: PaymentRecord, event: WebhookEvent) -> str | None:
        if event.currency is None or event.currency != record.currency.upper():
            return f"moneda {event.currency} != {record.currency}"
        expected = record.money.to_cents()
        if event.amount_minor != expected:
            return f"monto {event.amount_minor} != {expected}"
        return None

    async def _apply_success(self, record: PaymentRecord, event: WebhookEvent, now: datetime) -> str:
        # Otro evento de éxito de la misma sesión (p. ej. completed + async_payment_succeeded)
        if record.is_captured and event.provider_ref in (None, record.provider_ref):
            booking = await self._booking_repo.get(record.booking_id)
            if booking is not None and booking.status == BookingStatus.CONFIRMED:
                self._logger.info(
                    "Webhook capture already applied",
                    extra={"event_id": event.event_id, "booking_id": booking.id, "payment_id": record.id},
                )
                return "duplicate"

        reason = self._mismatch_reason(record, event)
        if reason is not None:
            record.status = PaymentStatus.MISMATCH
            record.updated_at = now
            await self._payment_repo.save(record)
            self._logger.error(
                "Webhook payment mismatch",
                extra={"event_id": event.event_id, "booking_id": record.booking_id, "reason": reason},
            )
            return "mismatch"

        record.status = PaymentStatus.CAPTURED
        record.captured_at = now
        record.updated_at = now
        await self._payment_repo.save(record)

        booking = await self._booking_repo.get(record.booking_id)
        if booking is None:
            raise BookingNotFoundError(record.booking_id)
        try:
            await self._bookings.on_payment_confirmed(booking.id, event.event_id)
        except InvalidTransitionError as exc:
            self._logger.error(
                "Late capture: booking no longer awaits payment, manual refund required",
                extra={
                    "event_id": event.event_id,
                    "booking_id": booking.id,
                    "booking_status": exc.current_status,
                    "amount": str(Decimal(event.amount_minor) / 100),
                },
            )
            return "late_capture"

        self._logger.info(
            "Webhook processed: payment captured",
            extra={"event_id": event.event_id, "booking_id": booking.id, "provider_ref": record.provider_ref},
        )
        return "confirmed"
