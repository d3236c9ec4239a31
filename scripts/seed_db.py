import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to sys.path
project_root = Path(__file__).resolve().parent.parent
sys.path.append(str(project_root))

from app.api.deps import AsyncSessionLocal, engine  # noqa: E402
from app.domain.entities.property import CancellationPolicy, PenaltyBand, Property  # noqa: E402
from app.infrastructure.db.repositories.property_repo_sql import PropertyRepoSQL  # noqa: E402
from app.infrastructure.db.tables import metadata  # noqa: E402

DEMO_PROPERTIES = [
    Property(
        id="casa-lago",
        vendor_id="vendor-ana",
        name="Casa del Lago",
        currency="USD",
        nightly_rate=Decimal("120.00"),
        cleaning_fee=Decimal("45.00"),
        service_fee_bps=1000,
        tax_bps=800,
        commission_bps=1500,
        min_nights=2,
        max_nights=21,
        max_guests=6,
        cancellation_policy=CancellationPolicy(
            free_cancel_before_hours=72,
            penalty_bands=(
                PenaltyBand(within_hours=72, percent=Decimal("50")),
                PenaltyBand(within_hours=24, percent=Decimal("100")),
            ),
        ),
    ),
    Property(
        id="loft-centro",
        vendor_id="vendor-luis",
        name="Loft Centro",
        currency="MXN",
        nightly_rate=Decimal("1450.00"),
        cleaning_fee=Decimal("300.00"),
        service_fee_bps=1200,
        tax_bps=1600,
        commission_bps=1200,
        min_nights=1,
        max_nights=30,
        max_guests=2,
        cancellation_policy=CancellationPolicy(
            free_cancel_before_hours=24,
            penalty_bands=(PenaltyBand(within_hours=24, percent=Decimal("100")),),
        ),
    ),
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        print("Created missing tables.")

    async with AsyncSessionLocal() as session:
        repo = PropertyRepoSQL(session)
        async with session.begin():
            for prop in DEMO_PROPERTIES:
                if await repo.get(prop.id):
                    print(f"Property {prop.id} already present, skipping.")
                    continue
                await repo.add(prop)
                print(f"Seeded property {prop.id} ({prop.currency}).")

    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(seed())
