"""Fleet administration: cabs, driver verification, driver positions."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from cabbooking.domain.errors import IllegalState, NotFound
from cabbooking.infrastructure.models import CabModel, DriverModel
from cabbooking.infrastructure.repositories import CabRepository, DriverRepository

logger = logging.getLogger(__name__)


class FleetService:
    def __init__(self, drivers: DriverRepository, cabs: CabRepository):
        self.drivers = drivers
        self.cabs = cabs

    @classmethod
    def from_session(cls, session: AsyncSession) -> "FleetService":
        return cls(DriverRepository(session), CabRepository(session))

    async def register_cab(self, car_type: str, per_km_rate: float) -> CabModel:
        cab = await self.cabs.create(
            CabModel(car_type=car_type, per_km_rate=per_km_rate, is_available=True)
        )
        logger.info("Registered cab %s (%s @ %s/km)", cab.id, car_type, per_km_rate)
        return cab

    async def cabs_of_type(self, car_type: str) -> list[CabModel]:
        return await self.cabs.get_by_type(car_type)

    async def count_cabs_of_type(self, car_type: str) -> int:
        return await self.cabs.count_by_type(car_type)

    async def available_cabs(self) -> list[CabModel]:
        return await self.cabs.get_available()

    async def assign_cab_to_driver(self, driver_id: int, cab_id: int) -> DriverModel:
        driver = await self._driver(driver_id)
        cab = await self.cabs.get_by_id(cab_id)
        if cab is None:
            raise NotFound(f"Cab not found with ID: {cab_id}")

        owner = await self.drivers.get_by_cab_id(cab_id)
        if owner is not None and owner.id != driver.id:
            raise IllegalState(f"Cab {cab_id} is already assigned to driver {owner.id}")

        driver.cab = cab
        await self.drivers.save(driver)
        logger.info("Assigned cab %s to driver %s", cab_id, driver_id)
        return driver

    async def set_driver_verification(self, driver_id: int, verified: bool) -> DriverModel:
        driver = await self._driver(driver_id)
        driver.verified = verified
        await self.drivers.save(driver)
        logger.info("Driver %s verified=%s", driver_id, verified)
        return driver

    async def update_driver_location(
        self, username: str, latitude: float, longitude: float
    ) -> DriverModel:
        driver = await self.drivers.get_by_username(username)
        if driver is None:
            raise NotFound(f"Driver not found: {username}")
        driver.latitude = latitude
        driver.longitude = longitude
        return await self.drivers.save(driver)

    async def best_drivers(self) -> list[DriverModel]:
        return await self.drivers.best_rated()

    async def _driver(self, driver_id: int) -> DriverModel:
        driver = await self.drivers.get_by_id(driver_id)
        if driver is None:
            raise NotFound(f"Driver not found with ID: {driver_id}")
        return driver
