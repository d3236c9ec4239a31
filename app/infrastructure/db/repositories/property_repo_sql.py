from decimal import Decimal

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.interfaces.property_repo import PropertyRepo
from app.domain.entities.property import CancellationPolicy, Property
from app.infrastructure.db.tables import properties, rate_overrides


class PropertyRepoSQL(PropertyRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, property_id: str) -> Property | None:
        result = await self._session.execute(
            select(properties).where(properties.c.id == property_id)
        )
        row = result.mappings().first()
        if not row:
            return None
        overrides = await self._session.execute(
            select(rate_overrides.c.night, rate_overrides.c.adjustment).where(
                rate_overrides.c.property_id == property_id
            )
        )
        return self._map_property(row, {night: Decimal(adj) for night, adj in overrides.all()})

    async def lock(self, property_id: str) -> bool:
        # Una escritura real: SQLite no soporta FOR UPDATE y sin escritura
        # no toma el lock hasta el primer INSERT. En MySQL/Postgres bloquea la fila.
        stmt = (
            update(properties)
            .where(properties.c.id == property_id)
            .values(lock_version=properties.c.lock_version + 1)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def add(self, prop: Property) -> Property:
        await self._session.execute(
            insert(properties).values(
                id=prop.id,
                vendor_id=prop.vendor_id,
                name=prop.name,
                currency=prop.currency,
                nightly_rate=prop.nightly_rate,
                cleaning_fee=prop.cleaning_fee,
                service_fee_bps=prop.service_fee_bps,
                tax_bps=prop.tax_bps,
                commission_bps=prop.commission_bps,
                min_nights=prop.min_nights,
                max_nights=prop.max_nights,
                max_guests=prop.max_guests,
                cancellation_policy=prop.cancellation_policy.to_dict(),
            )
        )
        if prop.rate_overrides:
            await self._session.execute(
                insert(rate_overrides),
                [
                    {"property_id": prop.id, "night": night, "adjustment": adjustment}
                    for night, adjustment in prop.rate_overrides.items()
                ],
            )
        return prop

    def _map_property(self, row, overrides: dict) -> Property:
        return Property(
            id=row["id"],
            vendor_id=row["vendor_id"],
            name=row["name"],
            currency=row["currency"],
            nightly_rate=Decimal(row["nightly_rate"]),
            cleaning_fee=Decimal(row["cleaning_fee"]),
            service_fee_bps=row["service_fee_bps"],
            tax_bps=row["tax_bps"],
            commission_bps=row["commission_bps"],
            min_nights=row["min_nights"],
            max_nights=row["max_nights"],
            max_guests=row["max_guests"],
            cancellation_policy=CancellationPolicy.from_dict(row["cancellation_policy"]),
            rate_overrides=overrides,
        )
