from typing import Sequence

from app.domain.entities.statement import StatementLine, StatementPeriod, VendorStatement


class StatementRepo:
    async def add(self, statement: VendorStatement) -> VendorStatement:
        raise NotImplementedError

    async def get(self, statement_id: str, for_update: bool = False) -> VendorStatement | None:
        raise NotImplementedError

    async def find_current(
        self,
        vendor_id: str,
        period: StatementPeriod,
        currency: str,
    ) -> VendorStatement | None:
        """Estado de cuenta no VOID del anfitrión para el periodo."""
        raise NotImplementedError

    async def save(self, statement: VendorStatement) -> VendorStatement:
        raise NotImplementedError

    async def replace_lines(self, statement_id: str, lines: Sequence[StatementLine]) -> None:
        raise NotImplementedError

    async def list_lines(self, statement_id: str) -> Sequence[StatementLine]:
        raise NotImplementedError
