from typing import Sequence

from app.domain.entities.payment import PaymentEvent, PaymentRecord


class PaymentRepo:
    async def add(self, record: PaymentRecord) -> PaymentRecord:
        raise NotImplementedError

    async def save(self, record: PaymentRecord) -> PaymentRecord:
        raise NotImplementedError

    async def get_by_booking(self, booking_id: str) -> PaymentRecord | None:
        raise NotImplementedError

    async def get_by_provider_ref(self, provider_ref: str) -> PaymentRecord | None:
        raise NotImplementedError

    async def has_event(self, payment_id: str, provider_event_id: str) -> bool:
        raise NotImplementedError

    async def add_event(self, event: PaymentEvent) -> PaymentEvent:
        raise NotImplementedError

    async def list_events(self, payment_id: str) -> Sequence[PaymentEvent]:
        raise NotImplementedError
