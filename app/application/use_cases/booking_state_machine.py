import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from app.application.interfaces.availability_repo import AvailabilityRepo
from app.application.interfaces.booking_repo import BookingRepo
from app.application.interfaces.cancellation_repo import CancellationRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.payment_repo import PaymentRepo
from app.application.interfaces.property_repo import PropertyRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.application.use_cases.hold_manager import HoldManager
from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.cancellation import CancellationActor, CancellationMode, CancellationRecord
from app.domain.entities.hold import HoldStatus
from app.domain.errors import (
    BookingNotFoundError,
    ConcurrentModificationError,
    HoldExpiredError,
    InvalidTransitionError,
    NotOwnerError,
    PropertyNotFoundError,
)
from app.domain.services.cancellation_policy import compute_cancellation
from app.domain.services.quote_engine import compute_quote


@dataclass(frozen=True)
class CancellationOutcome:
    booking: Booking
    record: CancellationRecord
    already_cancelled: bool = False


class BookingStateMachine:
    """
    Autoridad única sobre el estado de las reservas.

    Cada transición pasa por `save_transition`, que compara la versión leída
    con la almacenada; el perdedor de una carrera recibe
    ConcurrentModificationError y la capa HTTP lo reintenta con estado fresco.
    """

    def __init__(
        self,
        property_repo: PropertyRepo,
        booking_repo: BookingRepo,
        availability_repo: AvailabilityRepo,
        payment_repo: PaymentRepo,
        cancellation_repo: CancellationRepo,
        hold_manager: HoldManager,
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
        payment_window_minutes: int = 30,
    ) -> None:
        self._property_repo = property_repo
        self._booking_repo = booking_repo
        self._availability_repo = availability_repo
        self._payment_repo = payment_repo
        self._cancellation_repo = cancellation_repo
        self._holds = hold_manager
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._payment_window = timedelta(minutes=payment_window_minutes)
        self._logger = logging.getLogger(__name__)

    # === Conversión ===

    async def convert_hold(self, hold_id: str, customer_id: str) -> Booking:
        """
        Convierte un hold ACTIVE en una reserva PENDING_PAYMENT.

        Un hold ya convertido devuelve la reserva existente.

        Raises:
            HoldExpiredError: El TTL del hold venció (el hold queda EXPIRED).
            InvalidTransitionError: El hold fue liberado o ya expiró.
        """
        now = self._clock.now()
        expired = False
        async with self._tx.start():
            hold = await self._holds.load_for_conversion(hold_id, customer_id)

            if hold.status == HoldStatus.CONVERTED:
                existing = await self._booking_repo.get_by_hold(hold.id)
                if existing:
                    return existing

            if hold.is_expired(now):
                await self._holds.expire(hold, now)
                expired = True
            else:
                if hold.status != HoldStatus.ACTIVE:
                    raise InvalidTransitionError("Hold", hold.id, hold.status.value, HoldStatus.CONVERTED.value)

                prop = await self._property_repo.get(hold.property_id)
                if not prop:
                    raise PropertyNotFoundError(hold.property_id)
                # El precio se congela con la fecha en que se tomó el hold.
                quote_day = hold.created_at.date() if hold.created_at else now.date()
                quote = compute_quote(prop, hold.check_in, hold.check_out, hold.guests, today=quote_day)

                booking = Booking(
                    id=self._ids.generate_uuid(),
                    property_id=prop.id,
                    vendor_id=prop.vendor_id,
                    customer_id=customer_id,
                    hold_id=hold.id,
                    check_in=hold.check_in,
                    check_out=hold.check_out,
                    guests=hold.guests,
                    currency=quote.currency,
                    base_amount=quote.base_amount,
                    cleaning_fee=quote.cleaning_fee,
                    service_fee=quote.service_fee,
                    taxes=quote.taxes,
                    total_amount=quote.total,
                    expires_at=now + self._payment_window,
                    created_at=now,
                    updated_at=now,
                )
                await self._booking_repo.add(booking)
                await self._holds.mark_converted(hold, booking.id, now)
                upgraded = await self._availability_repo.upgrade_hold_to_booking(
                    hold.id, booking.id, booking.expires_at
                )
                if upgraded != 1:
                    raise InvalidTransitionError("Hold", hold.id, HoldStatus.ACTIVE.value, HoldStatus.CONVERTED.value)

        if expired:
            raise HoldExpiredError(hold_id)

        self._logger.info(
            "Booking created from hold",
            extra={
                "booking_id": booking.id,
                "hold_id": hold_id,
                "total": str(booking.total_amount),
                "expires_at": booking.expires_at.isoformat(),
            },
        )
        return booking

    # === Pagos ===

    async def on_payment_confirmed(self, booking_id: str, event_id: str) -> Booking:
        """
        PENDING_PAYMENT -> CONFIRMED. Repetir el mismo `event_id` no tiene efecto.

        Raises:
            InvalidTransitionError: La reserva ya no espera pago (captura tardía).
        """
        now = self._clock.now()
        late_target: str | None = None
        async with self._tx.start():
            booking = await self._get(booking_id)
            if booking.status == BookingStatus.CONFIRMED and booking.confirmed_event_id == event_id:
                return booking

            if booking.is_payment_overdue(now):
                await self._expire(booking, now)

            if not booking.can_transition_to(BookingStatus.CONFIRMED):
                late_target = booking.status.value
            else:
                expected = booking.version
                booking.transition_to(BookingStatus.CONFIRMED, now)
                booking.confirmed_event_id = event_id
                await self._booking_repo.save_transition(booking, expected)
                await self._availability_repo.clear_expiry(booking.id)

        if late_target is not None:
            raise InvalidTransitionError("Booking", booking_id, late_target, BookingStatus.CONFIRMED.value)

        self._logger.info("Booking confirmed", extra={"booking_id": booking_id, "event_id": event_id})
        return booking

    async def on_payment_window_expired(self, booking_id: str) -> Booking:
        """Expira la reserva si su ventana de pago venció; si no, no hace nada."""
        now = self._clock.now()
        async with self._tx.start():
            booking = await self._get(booking_id)
            if booking.is_payment_overdue(now):
                await self._expire(booking, now)
        return booking

    # === Lecturas y barrido ===

    async def get_booking(self, booking_id: str, customer_id: str | None = None) -> Booking:
        now = self._clock.now()
        async with self._tx.start():
            booking = await self._get(booking_id)
            if customer_id is not None and booking.customer_id != customer_id:
                raise NotOwnerError("Booking", booking_id)
            if booking.is_payment_overdue(now):
                await self._expire(booking, now)
        return booking

    async def sweep_expired(self, limit: int = 100) -> int:
        """Expira reservas PENDING_PAYMENT vencidas, una transacción por reserva."""
        now = self._clock.now()
        async with self._tx.start():
            overdue_ids = list(await self._booking_repo.list_overdue_ids(now, limit))

        expired = 0
        for booking_id in overdue_ids:
            try:
                booking = await self.on_payment_window_expired(booking_id)
            except ConcurrentModificationError:
                # Otra transacción la movió primero; el siguiente ciclo la reevalúa.
                self._logger.info("Sweep skipped booking after concurrent change", extra={"booking_id": booking_id})
                continue
            if booking.status == BookingStatus.EXPIRED:
                expired += 1
        if expired:
            self._logger.info("Expired bookings swept", extra={"count": expired})
        return expired

    # === Cancelación ===

    async def cancel(
        self,
        booking_id: str,
        actor: CancellationActor,
        mode: CancellationMode,
        reason: str,
        customer_id: str | None = None,
        notes: str | None = None,
        waive_penalty: bool = False,
    ) -> CancellationOutcome:
        """
        Cancela la reserva y registra la decisión de la política.

        El cliente solo cancela en modo SOFT y sobre sus propias reservas;
        el override administrativo usa HARD y puede condonar la penalización.

        Raises:
            NotOwnerError: El cliente no es dueño de la reserva.
            CancellationNotAllowedError: SOFT después del check-in.
            InvalidTransitionError: La reserva ya expiró.
        """
        now = self._clock.now()
        async with self._tx.start():
            booking = await self._get(booking_id)
            if customer_id is not None and booking.customer_id != customer_id:
                raise NotOwnerError("Booking", booking_id)

            if booking.status == BookingStatus.CANCELLED:
                existing = await self._cancellation_repo.get_by_booking(booking.id)
                if existing:
                    return CancellationOutcome(booking=booking, record=existing, already_cancelled=True)

            if booking.is_payment_overdue(now):
                # La expiración se confirma aunque la cancelación sea rechazada.
                await self._expire(booking, now)
            elif not booking.can_transition_to(BookingStatus.CANCELLED):
                raise InvalidTransitionError(
                    "Booking", booking.id, booking.status.value, BookingStatus.CANCELLED.value
                )
            else:
                record = await self._cancel_in_tx(booking, actor, mode, reason, notes, waive_penalty, now)

        if booking.status != BookingStatus.CANCELLED:
            raise InvalidTransitionError("Booking", booking.id, booking.status.value, BookingStatus.CANCELLED.value)

        self._logger.info(
            "Booking cancelled",
            extra={
                "booking_id": booking.id,
                "actor": actor.value,
                "mode": mode.value,
                "tier": record.policy_snapshot["tier"],
                "penalty": str(record.penalty_amount),
                "refundable": str(record.refundable_amount),
            },
        )
        return CancellationOutcome(booking=booking, record=record)

    async def _cancel_in_tx(
        self,
        booking: Booking,
        actor: CancellationActor,
        mode: CancellationMode,
        reason: str,
        notes: str | None,
        waive_penalty: bool,
        now: datetime,
    ) -> CancellationRecord:
        prop = await self._property_repo.get(booking.property_id)
        if not prop:
            raise PropertyNotFoundError(booking.property_id)
        payment = await self._payment_repo.get_by_booking(booking.id)
        amount_paid = booking.total_amount if payment and payment.is_captured else Decimal("0.00")

        decision = compute_cancellation(
            booking,
            prop.cancellation_policy,
            amount_paid,
            now,
            mode=mode,
            waive_penalty=waive_penalty,
        )

        expected = booking.version
        booking.transition_to(BookingStatus.CANCELLED, now)
        await self._booking_repo.save_transition(booking, expected)
        await self._availability_repo.release_by_ref(booking.id, now)

        note_parts = [part for part in (notes, decision.notes) if part]
        record = CancellationRecord(
            id=self._ids.generate_uuid(),
            booking_id=booking.id,
            actor=actor,
            mode=mode,
            reason=reason,
            penalty_amount=decision.penalty_amount,
            refundable_amount=decision.refundable_amount,
            amount_paid=decision.amount_paid,
            currency=booking.currency,
            cancelled_at=now,
            notes=" | ".join(note_parts) or None,
            policy_snapshot={
                **prop.cancellation_policy.to_dict(),
                "tier": decision.tier.value,
                "hours_to_check_in": round(decision.hours_to_check_in, 2),
                "releases_inventory": True,
            },
        )
        await self._cancellation_repo.add(record)
        return record

    # === Internos ===

    async def _get(self, booking_id: str) -> Booking:
        booking = await self._booking_repo.get(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    async def _expire(self, booking: Booking, now: datetime) -> None:
        expected = booking.version
        booking.transition_to(BookingStatus.EXPIRED, now)
        await self._booking_repo.save_transition(booking, expected)
        await self._availability_repo.release_by_ref(booking.id, now)
        self._logger.info("Booking payment window expired", extra={"booking_id": booking.id})
