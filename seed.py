"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 5 sample customers
  - 12 sample cabs (Sedan / SUV / Mini)
  - 12 sample drivers around Mumbai airport, each with a cab
  - 4 sample trips (CONFIRMED, COMPLETED, SCHEDULED)

and prints a bearer token per role for trying the API in ``/docs``.
"""

import asyncio
from datetime import timedelta

from sqlalchemy import text

from cabbooking.api.security import create_access_token
from cabbooking.domain.clock import utcnow
from cabbooking.domain.enums import Role, TripStatus
from cabbooking.infrastructure.database import async_session_factory, engine
from cabbooking.infrastructure.models import (
    CabModel,
    CustomerModel,
    DriverModel,
    TripBookingModel,
)

# Mumbai airport coordinates (approx)
AIRPORT_LAT, AIRPORT_LNG = 19.0896, 72.8656


CUSTOMERS = [
    {"username": "aarav", "email": "aarav@example.com", "first_name": "Aarav", "last_name": "Sharma"},
    {"username": "priya", "email": "priya@example.com", "first_name": "Priya", "last_name": "Patel"},
    {"username": "rohan", "email": "rohan@example.com", "first_name": "Rohan", "last_name": "Mehta"},
    {"username": "sneha", "email": "sneha@example.com", "first_name": "Sneha", "last_name": "Gupta"},
    {"username": "vikram", "email": "vikram@example.com", "first_name": "Vikram", "last_name": "Singh"},
]

# (car_type, per_km_rate, driver lat, driver lng, driver rating, verified)
FLEET = [
    ("Sedan", 12.5, 19.0900, 72.8660, 4.8, True),
    ("Sedan", 11.0, 19.0880, 72.8640, 4.5, True),
    ("Sedan", 13.0, 19.0910, 72.8670, 4.9, True),
    ("Sedan", 12.0, 19.0930, 72.8690, None, True),
    ("Sedan", 12.0, 19.0860, 72.8620, 4.1, False),
    ("SUV", 18.0, 19.0905, 72.8665, 4.7, True),
    ("SUV", 17.5, 19.0895, 72.8655, 4.6, True),
    ("SUV", 19.0, 19.0885, 72.8645, 4.2, True),
    ("Mini", 9.0, 19.0915, 72.8675, 4.4, True),
    ("Mini", 8.5, 19.0875, 72.8635, 4.0, True),
    ("Mini", 9.5, 19.0945, 72.8705, 3.9, True),
    ("Mini", 9.0, 19.0850, 72.8610, 4.3, True),
]

DRIVER_NAMES = [
    ("Ravi", "Kumar"), ("Imran", "Shaikh"), ("Suresh", "Nair"),
    ("Deepak", "Yadav"), ("Manoj", "Pillai"), ("Ajay", "Rao"),
    ("Nikhil", "Desai"), ("Farhan", "Khan"), ("Tushar", "Jain"),
    ("Kunal", "Bose"), ("Harish", "Iyer"), ("Sanjay", "Ghosh"),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM customers"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Customers ─────────────────────────────────────────────────
        customers = [CustomerModel(**c) for c in CUSTOMERS]
        session.add_all(customers)
        await session.flush()
        print(f"  Created {len(customers)} customers")

        # ── Cabs + drivers ────────────────────────────────────────────
        drivers = []
        for i, (car_type, rate, lat, lng, rating, verified) in enumerate(FLEET):
            cab = CabModel(car_type=car_type, per_km_rate=rate, is_available=True)
            first, last = DRIVER_NAMES[i]
            driver = DriverModel(
                username=f"driver{i + 1}",
                email=f"driver{i + 1}@example.com",
                first_name=first,
                last_name=last,
                license_no=f"MH02-{20200000 + i}",
                verified=verified,
                is_available=True,
                rating=rating,
                total_ratings=10 if rating is not None else 0,
                latitude=lat,
                longitude=lng,
                cab=cab,
            )
            session.add(driver)
            drivers.append(driver)
        await session.flush()
        print(f"  Created {len(drivers)} drivers with cabs")

        # ── Trips ─────────────────────────────────────────────────────
        now = utcnow()
        busy = drivers[0]
        busy.is_available = False
        busy.cab.is_available = False
        done = drivers[5]

        trips = [
            TripBookingModel(
                customer=customers[0], driver=busy, cab=busy.cab,
                from_location="Terminal 2", to_location="Andheri East",
                from_latitude=AIRPORT_LAT, from_longitude=AIRPORT_LNG,
                distance_in_km=6.5, car_type="Sedan",
                status=TripStatus.CONFIRMED, from_date_time=now,
            ),
            TripBookingModel(
                customer=customers[1], driver=done, cab=done.cab,
                from_location="Terminal 2", to_location="Powai",
                from_latitude=AIRPORT_LAT, from_longitude=AIRPORT_LNG,
                distance_in_km=9.0, car_type="SUV",
                status=TripStatus.COMPLETED,
                from_date_time=now - timedelta(hours=3),
                to_date_time=now - timedelta(hours=2, minutes=30),
                bill=9.0 * done.cab.per_km_rate,
                customer_rating=5,
            ),
            TripBookingModel(
                customer=customers[2],
                from_location="Terminal 1", to_location="Bandra West",
                from_latitude=19.0968, from_longitude=72.8517,
                distance_in_km=8.2, car_type="Mini",
                status=TripStatus.SCHEDULED,
                from_date_time=now + timedelta(minutes=10),
            ),
            TripBookingModel(
                customer=customers[3],
                from_location="Terminal 2", to_location="Lower Parel",
                from_latitude=AIRPORT_LAT, from_longitude=AIRPORT_LNG,
                distance_in_km=15.4, car_type="Sedan",
                status=TripStatus.SCHEDULED,
                from_date_time=now + timedelta(hours=4),
            ),
        ]
        session.add_all(trips)
        await session.commit()
        print(f"  Created {len(trips)} trips")

    print("\nSample bearer tokens:")
    print(f"  ADMIN    admin   {create_access_token('admin', Role.ADMIN)}")
    print(f"  CUSTOMER aarav   {create_access_token('aarav', Role.CUSTOMER)}")
    print(f"  DRIVER   driver1 {create_access_token('driver1', Role.DRIVER)}")

    await engine.dispose()
    print("\nSeed complete!")


if __name__ == "__main__":
    asyncio.run(seed())
