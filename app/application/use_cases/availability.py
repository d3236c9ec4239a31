import logging
from datetime import date

from app.application.interfaces.availability_repo import AvailabilityRepo
from app.application.interfaces.clock import Clock
from app.application.interfaces.property_repo import PropertyRepo
from app.application.interfaces.transaction_manager import TransactionManager
from app.application.interfaces.uuid_generator import UUIDGenerator
from app.domain.entities.availability_event import AvailabilityEvent, AvailabilityKind
from app.domain.errors import (
    AvailabilityEventNotFoundError,
    HoldConflictError,
    PropertyNotFoundError,
    ValidationError,
)
from app.domain.value_objects.date_range import DateRange


class AvailabilityService:
    """Bloqueos del anfitrión y vista de calendario."""

    def __init__(
        self,
        property_repo: PropertyRepo,
        availability_repo: AvailabilityRepo,
        transaction_manager: TransactionManager,
        clock: Clock,
        id_generator: UUIDGenerator,
    ) -> None:
        self._property_repo = property_repo
        self._availability_repo = availability_repo
        self._tx = transaction_manager
        self._clock = clock
        self._ids = id_generator
        self._logger = logging.getLogger(__name__)

    async def block_range(
        self,
        property_id: str,
        start: date,
        end: date,
        note: str | None = None,
    ) -> AvailabilityEvent:
        """
        Bloquea un rango si no se solapa con ocupación activa.

        Raises:
            HoldConflictError: El rango ya está ocupado.
        """
        if end <= start:
            raise ValidationError("end debe ser posterior a start", field="end")
        now = self._clock.now()
        stay = DateRange(start, end)
        async with self._tx.start():
            if not await self._property_repo.lock(property_id):
                raise PropertyNotFoundError(property_id)
            conflicts = await self._availability_repo.find_overlapping(property_id, stay, now)
            if conflicts:
                raise HoldConflictError(
                    property_id, [(event.kind.value, event.start, event.end) for event in conflicts]
                )
            event_id = self._ids.generate_uuid()
            event = AvailabilityEvent(
                id=event_id,
                property_id=property_id,
                kind=AvailabilityKind.BLOCKED,
                start=start,
                end=end,
                ref_id=event_id,
                note=note,
                created_at=now,
            )
            await self._availability_repo.add(event)
        self._logger.info(
            "Range blocked",
            extra={"property_id": property_id, "start": start.isoformat(), "end": end.isoformat()},
        )
        return event

    async def unblock(self, event_id: str) -> AvailabilityEvent:
        now = self._clock.now()
        async with self._tx.start():
            event = await self._availability_repo.get(event_id)
            if not event or event.kind != AvailabilityKind.BLOCKED:
                raise AvailabilityEventNotFoundError(event_id)
            if event.released_at is None:
                await self._availability_repo.release(event.id, now)
                event.released_at = now
        self._logger.info("Range unblocked", extra={"event_id": event_id, "property_id": event.property_id})
        return event

    async def get_calendar(self, property_id: str, start: date, end: date) -> list[AvailabilityEvent]:
        if end <= start:
            raise ValidationError("to debe ser posterior a from", field="to")
        async with self._tx.start():
            if not await self._property_repo.get(property_id):
                raise PropertyNotFoundError(property_id)
            events = await self._availability_repo.list_active(property_id, DateRange(start, end), self._clock.now())
        return list(events)
