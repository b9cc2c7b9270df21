import os
import sys
import asyncio
from typing import List

# Needed to import core and models when run as a script
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.db import CentersSessionLocal, init_models
from models import ServiceCenter


def sample_centers() -> List[ServiceCenter]:
    return [
        ServiceCenter(center_id="SC_PQR_01", name="PQR Motors North", location="North", capacity=10,
                      specializations=["engine", "brakes"], bookings=[]),
        ServiceCenter(center_id="SC_PQR_02", name="PQR Motors South", location="South", capacity=6,
                      specializations=["electrical"], bookings=[]),
        ServiceCenter(center_id="SC_XYZ_01", name="XYZ Auto Care", location="Central", capacity=8,
                      specializations=["body"], bookings=[]),
        ServiceCenter(center_id="SC_XYZ_02", name="XYZ Auto Care East", location="East", capacity=4,
                      is_active=False, bookings=[]),
    ]


async def seed():
    await init_models()
    async with CentersSessionLocal() as db:
        for center in sample_centers():
            await db.merge(center)
        await db.commit()
        print("Service centers seeded successfully")


if __name__ == "__main__":
    asyncio.run(seed())
