from datetime import datetime
from typing import Sequence

from app.domain.entities.availability_event import AvailabilityEvent, AvailabilityKind
from app.domain.value_objects.date_range import DateRange


class AvailabilityRepo:
    async def find_overlapping(
        self,
        property_id: str,
        stay: DateRange,
        now: datetime,
        kinds: Sequence[AvailabilityKind] | None = None,
    ) -> Sequence[AvailabilityEvent]:
        """Eventos activos que se solapan con `stay`."""
        raise NotImplementedError

    async def find_stale(
        self,
        property_id: str,
        stay: DateRange,
        now: datetime,
        kind: AvailabilityKind,
    ) -> Sequence[AvailabilityEvent]:
        """Eventos no liberados cuyo `expires_at` ya venció."""
        raise NotImplementedError

    async def add(self, event: AvailabilityEvent) -> AvailabilityEvent:
        raise NotImplementedError

    async def get(self, event_id: str) -> AvailabilityEvent | None:
        raise NotImplementedError

    async def release(self, event_id: str, now: datetime) -> None:
        raise NotImplementedError

    async def release_by_ref(self, ref_id: str, now: datetime) -> int:
        raise NotImplementedError

    async def upgrade_hold_to_booking(
        self,
        hold_id: str,
        booking_id: str,
        expires_at: datetime,
    ) -> int:
        raise NotImplementedError

    async def clear_expiry(self, ref_id: str) -> int:
        raise NotImplementedError

    async def list_active(
        self,
        property_id: str,
        stay: DateRange,
        now: datetime,
    ) -> Sequence[AvailabilityEvent]:
        raise NotImplementedError
