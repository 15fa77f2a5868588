"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Nothing here commits: the owner of the
session decides the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import CabModel, CustomerModel, DriverModel, TripBookingModel
from cabbooking.domain.enums import TripStatus


class CustomerRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, customer_id: int) -> Optional[CustomerModel]:
        return await self.session.get(CustomerModel, customer_id)


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_by_username(self, username: str) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_cab_id(self, cab_id: int) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.cab_id == cab_id)
        )
        return result.scalar_one_or_none()

    async def find_eligible(self, car_type: str) -> list[DriverModel]:
        """Verified, available drivers with a located cab of *car_type*."""
        result = await self.session.execute(
            select(DriverModel)
            .join(CabModel, DriverModel.cab_id == CabModel.id)
            .where(
                DriverModel.verified.is_(True),
                DriverModel.is_available.is_(True),
                CabModel.is_available.is_(True),
                func.lower(CabModel.car_type) == car_type.lower(),
                DriverModel.latitude.is_not(None),
                DriverModel.longitude.is_not(None),
            )
            .order_by(DriverModel.id)
        )
        return list(result.scalars().all())

    async def find_on_offer(self) -> list[DriverModel]:
        """Every verified, available, located driver with an available cab."""
        result = await self.session.execute(
            select(DriverModel)
            .join(CabModel, DriverModel.cab_id == CabModel.id)
            .where(
                DriverModel.verified.is_(True),
                DriverModel.is_available.is_(True),
                CabModel.is_available.is_(True),
                DriverModel.latitude.is_not(None),
                DriverModel.longitude.is_not(None),
            )
        )
        return list(result.scalars().all())

    async def best_rated(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).order_by(
                DriverModel.rating.is_(None), DriverModel.rating.desc()
            )
        )
        return list(result.scalars().all())

    async def reserve(self, driver: DriverModel, cab: CabModel) -> bool:
        """
        Atomically flip a driver and their cab from available to busy.

        Each flag is a compare-and-set (``UPDATE ... WHERE is_available``), so
        of two sessions racing for the same driver only one sees a row
        updated.  Returns False, leaving both flags as found, when either
        was already taken.
        """
        taken = await self._compare_and_set(DriverModel, driver.id, False)
        if not taken:
            return False
        if not await self._compare_and_set(CabModel, cab.id, False):
            await self._compare_and_set(DriverModel, driver.id, True)
            return False
        return True

    async def save(self, driver: DriverModel) -> DriverModel:
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def _compare_and_set(self, model, row_id: int, available: bool) -> bool:
        result = await self.session.execute(
            update(model)
            .where(model.id == row_id, model.is_available.is_(not available))
            .values(is_available=available)
            .returning(model.id)
            .execution_options(synchronize_session="fetch")
        )
        return result.scalar_one_or_none() is not None


class CabRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, cab: CabModel) -> CabModel:
        self.session.add(cab)
        await self.session.flush()
        return cab

    async def get_by_id(self, cab_id: int) -> Optional[CabModel]:
        return await self.session.get(CabModel, cab_id)

    async def get_available(self) -> list[CabModel]:
        result = await self.session.execute(
            select(CabModel)
            .where(CabModel.is_available.is_(True))
            .order_by(CabModel.id)
        )
        return list(result.scalars().all())

    async def get_by_type(self, car_type: str) -> list[CabModel]:
        result = await self.session.execute(
            select(CabModel)
            .where(func.lower(CabModel.car_type) == car_type.lower())
            .order_by(CabModel.id)
        )
        return list(result.scalars().all())

    async def count_by_type(self, car_type: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(CabModel)
            .where(func.lower(CabModel.car_type) == car_type.lower())
        )
        return result.scalar() or 0


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, trip: TripBookingModel) -> TripBookingModel:
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def save(self, trip: TripBookingModel) -> TripBookingModel:
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def get_by_id(self, trip_id: int) -> Optional[TripBookingModel]:
        return await self.session.get(TripBookingModel, trip_id)

    async def get_by_id_for_update(self, trip_id: int) -> Optional[TripBookingModel]:
        """SELECT ... FOR UPDATE so status writes on one trip are serialised."""
        result = await self.session.execute(
            select(TripBookingModel)
            .where(TripBookingModel.id == trip_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_due_scheduled(self, before: datetime) -> list[TripBookingModel]:
        result = await self.session.execute(
            select(TripBookingModel)
            .where(
                TripBookingModel.status == TripStatus.SCHEDULED,
                TripBookingModel.from_date_time < before,
            )
            .order_by(TripBookingModel.from_date_time)
        )
        return list(result.scalars().all())

    async def by_customer(self, customer_id: int) -> list[TripBookingModel]:
        result = await self.session.execute(
            select(TripBookingModel)
            .where(TripBookingModel.customer_id == customer_id)
            .order_by(TripBookingModel.id.desc())
        )
        return list(result.scalars().all())

    async def by_driver(self, driver_id: int) -> list[TripBookingModel]:
        result = await self.session.execute(
            select(TripBookingModel)
            .where(TripBookingModel.driver_id == driver_id)
            .order_by(TripBookingModel.id.desc())
        )
        return list(result.scalars().all())

    async def by_date_range(
        self, start: datetime, end: datetime
    ) -> list[TripBookingModel]:
        """Trips whose start lies in ``[start, end)``."""
        result = await self.session.execute(
            select(TripBookingModel)
            .where(
                TripBookingModel.from_date_time >= start,
                TripBookingModel.from_date_time < end,
            )
            .order_by(TripBookingModel.from_date_time.desc())
        )
        return list(result.scalars().all())

    async def active_for_driver(self, driver_id: int) -> list[TripBookingModel]:
        result = await self.session.execute(
            select(TripBookingModel).where(
                TripBookingModel.driver_id == driver_id,
                TripBookingModel.status.in_(
                    [TripStatus.CONFIRMED, TripStatus.IN_PROGRESS]
                ),
            )
        )
        return list(result.scalars().all())
