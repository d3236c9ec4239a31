from app.domain.entities.payout import Payout


class PayoutRepo:
    async def add(self, payout: Payout) -> Payout:
        raise NotImplementedError

    async def get(self, payout_id: str, for_update: bool = False) -> Payout | None:
        raise NotImplementedError

    async def get_by_statement(self, statement_id: str) -> Payout | None:
        raise NotImplementedError

    async def save(self, payout: Payout) -> Payout:
        raise NotImplementedError
