from datetime import datetime
from typing import Sequence

from app.domain.entities.hold import Hold


class HoldRepo:
    async def add(self, hold: Hold) -> Hold:
        raise NotImplementedError

    async def get(self, hold_id: str) -> Hold | None:
        raise NotImplementedError

    async def save(self, hold: Hold) -> Hold:
        raise NotImplementedError

    async def list_expired_active(self, now: datetime, limit: int) -> Sequence[Hold]:
        raise NotImplementedError
