"""
Populate a development database with cities, hospitals, blood banks and stock.

Stock is written through InventoryUpdateCoordinator so every record gets a
derived availability status, exactly as it would through the API.

    python seed_data.py
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal
from random import Random

from bloodnet.database import async_session, init_db
from bloodnet.models import BloodBank, City, Hospital
from bloodnet.schemas.base_schema import BloodType
from bloodnet.services.facility_directory import SqlFacilityDirectory
from bloodnet.services.inventory_coordinator import InventoryUpdateCoordinator
from bloodnet.services.inventory_store import SqlInventoryStore
from bloodnet.services.notification_sse import TopicBroker
from bloodnet.utils.logging_config import get_logger

logger = get_logger(__name__)

SEED_ACTOR = "seed-script"

CITIES = [
    ("Accra", "Greater Accra", (5.6037, -0.1870)),
    ("Kumasi", "Ashanti", (6.6885, -1.6244)),
    ("Tamale", "Northern", (9.4075, -0.8533)),
]


async def seed_db(seed: int = 42):
    rng = Random(seed)
    await init_db()

    async with async_session() as db:
        banks = []
        for city_name, state, (lat, lon) in CITIES:
            city = City(name=city_name, state=state)
            db.add(city)
            await db.flush()

            hospital = Hospital(
                name=f"{city_name} Teaching Hospital",
                phone=f"+23330{rng.randint(1000000, 9999999)}",
                is_government=True,
                city_id=city.id,
            )
            db.add(hospital)
            await db.flush()

            for i in range(3):
                bank = BloodBank(
                    name=f"{city_name} Blood Bank {i + 1}",
                    address=f"{i + 1} Hospital Road, {city_name}",
                    phone=f"+23324{rng.randint(1000000, 9999999)}",
                    emergency_phone=f"+23320{rng.randint(1000000, 9999999)}",
                    latitude=lat + rng.uniform(-0.05, 0.05),
                    longitude=lon + rng.uniform(-0.05, 0.05),
                    is_24x7=i == 0,
                    city_id=city.id,
                    hospital_id=hospital.id if i == 0 else None,
                )
                db.add(bank)
                banks.append(bank)

        await db.commit()

        coordinator = InventoryUpdateCoordinator(
            SqlInventoryStore(db),
            SqlFacilityDirectory(db),
            TopicBroker(),
        )

        records = 0
        for bank in banks:
            for blood_type in BloodType:
                is_free = rng.random() < 0.3
                await coordinator.update_quantity(
                    facility_id=bank.id,
                    blood_type=blood_type,
                    quantity=rng.randint(0, 25),
                    actor_id=SEED_ACTOR,
                    is_free=is_free,
                    cost_per_unit=None if is_free else Decimal(rng.choice(["150.00", "200.00", "250.00"])),
                    expiry_date=date.today() + timedelta(days=rng.randint(-5, 42)),
                )
                records += 1

    logger.info(f"Seeded {len(CITIES)} cities, {len(banks)} blood banks and {records} inventory records")


if __name__ == "__main__":
    asyncio.run(seed_db())
