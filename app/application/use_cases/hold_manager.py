import logging
from datetime import date, datetime, timedelta

from app.application.interfaces.availability_repo import AvailabilityRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.hold_repo import HoldRepo
from app.application.interfaces.property_repo import PropertyRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.domain.entities.availability_event import AvailabilityEvent, AvailabilityKind
from app.domain.entities.hold import Hold, HoldStatus
from app.domain.errors import HoldConflictError, HoldNotFoundError, NotOwnerError, PropertyNotFoundError
from app.domain.services.quote_engine import QuoteBreakdown, compute_quote
from app.domain.value_objects.date_range import DateRange


class HoldManager:
    """
    Dueño exclusivo del ciclo de vida de los holds.

    La verificación de solapamiento y la inserción ocurren en la misma
    transacción, con la fila de la propiedad bloqueada.
    """

    def __init__(
        self,
        property_repo: PropertyRepo,
        availability_repo: AvailabilityRepo,
        hold_repo: HoldRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
        hold_ttl_minutes: int = 15,
    ) -> None:
        self._property_repo = property_repo
        self._availability_repo = availability_repo
        self._hold_repo = hold_repo
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._hold_ttl = timedelta(minutes=hold_ttl_minutes)
        self._logger = logging.getLogger(__name__)

    async def reserve(
        self,
        property_id: str,
        customer_id: str,
        check_in: date,
        check_out: date,
        guests: int,
    ) -> tuple[Hold, QuoteBreakdown]:
        """
        Crea un hold ACTIVE para el rango si no hay ocupación activa que se solape.

        Raises:
            ValidationError: La estancia incumple las reglas de la propiedad.
            HoldConflictError: El rango se solapa con un hold, reserva o bloqueo.
        """
        now = self._clock.now()
        async with self._tx.start():
            prop = await self._property_repo.get(property_id)
            if not prop:
                raise PropertyNotFoundError(property_id)
            quote = compute_quote(prop, check_in, check_out, guests, today=now.date())

            await self._property_repo.lock(property_id)
            stay = DateRange(check_in, check_out)
            await self._expire_stale_holds(property_id, stay, now)

            conflicts = await self._availability_repo.find_overlapping(property_id, stay, now)
            if conflicts:
                self._logger.info(
                    "Reserve rejected: dates unavailable",
                    extra={
                        "property_id": property_id,
                        "check_in": check_in.isoformat(),
                        "check_out": check_out.isoformat(),
                        "conflicts": len(conflicts),
                    },
                )
                raise HoldConflictError(
                    property_id, [(event.kind.value, event.start, event.end) for event in conflicts]
                )

            hold = Hold(
                id=self._ids.generate_uuid(),
                property_id=property_id,
                customer_id=customer_id,
                check_in=check_in,
                check_out=check_out,
                guests=guests,
                expires_at=now + self._hold_ttl,
                created_at=now,
                updated_at=now,
            )
            await self._hold_repo.add(hold)
            await self._availability_repo.add(
                AvailabilityEvent(
                    id=self._ids.generate_uuid(),
                    property_id=property_id,
                    kind=AvailabilityKind.HOLD,
                    start=check_in,
                    end=check_out,
                    ref_id=hold.id,
                    expires_at=hold.expires_at,
                    created_at=now,
                )
            )

        self._logger.info(
            "Hold created",
            extra={
                "hold_id": hold.id,
                "property_id": property_id,
                "expires_at": hold.expires_at.isoformat(),
            },
        )
        return hold, quote

    async def get_hold(self, hold_id: str, customer_id: str | None = None) -> Hold:
        """Lee un hold aplicando la expiración perezosa."""
        now = self._clock.now()
        async with self._tx.start():
            hold = await self._load(hold_id, customer_id)
            if hold.is_expired(now):
                await self.expire(hold, now)
        return hold

    async def release(self, hold_id: str, customer_id: str) -> Hold:
        """Libera un hold antes de convertirlo. Repetir la liberación no tiene efecto."""
        now = self._clock.now()
        async with self._tx.start():
            hold = await self._load(hold_id, customer_id)
            if hold.status == HoldStatus.RELEASED:
                return hold
            if hold.is_expired(now):
                await self.expire(hold, now)
                return hold
            hold.transition_to(HoldStatus.RELEASED)
            hold.updated_at = now
            await self._hold_repo.save(hold)
            await self._availability_repo.release_by_ref(hold.id, now)
        self._logger.info("Hold released", extra={"hold_id": hold.id})
        return hold

    async def sweep_expired(self, limit: int = 100) -> int:
        """Reclama holds ACTIVE con TTL vencido."""
        now = self._clock.now()
        async with self._tx.start():
            expired = await self._hold_repo.list_expired_active(now, limit)
            for hold in expired:
                await self.expire(hold, now)
        if expired:
            self._logger.info("Expired holds swept", extra={"count": len(expired)})
        return len(expired)

    # === Operaciones usadas dentro de la transacción de la máquina de reservas ===

    async def load_for_conversion(self, hold_id: str, customer_id: str) -> Hold:
        return await self._load(hold_id, customer_id)

    async def expire(self, hold: Hold, now: datetime) -> None:
        hold.transition_to(HoldStatus.EXPIRED)
        hold.updated_at = now
        await self._hold_repo.save(hold)
        await self._availability_repo.release_by_ref(hold.id, now)
        self._logger.info("Hold expired", extra={"hold_id": hold.id, "property_id": hold.property_id})

    async def mark_converted(self, hold: Hold, booking_id: str, now: datetime) -> None:
        hold.transition_to(HoldStatus.CONVERTED)
        hold.booking_id = booking_id
        hold.updated_at = now
        await self._hold_repo.save(hold)

    async def _load(self, hold_id: str, customer_id: str | None) -> Hold:
        hold = await self._hold_repo.get(hold_id)
        if not hold:
            raise HoldNotFoundError(hold_id)
        if customer_id is not None and hold.customer_id != customer_id:
            raise NotOwnerError("Hold", hold_id)
        return hold

    async def _expire_stale_holds(self, property_id: str, stay: DateRange, now: datetime) -> None:
        stale = await self._availability_repo.find_stale(property_id, stay, now, AvailabilityKind.HOLD)
        for event in stale:
            hold = await self._hold_repo.get(event.ref_id)
            if hold and hold.status == HoldStatus.ACTIVE:
                await self.expire(hold, now)
            else:
                await self._availability_repo.release(event.id, now)
