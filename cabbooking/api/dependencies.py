"""FastAPI dependency injection helpers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cabbooking.infrastructure.database import async_session_factory
from cabbooking.services.fleet import FleetService
from cabbooking.services.trip_booking import TripBookingService


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_trip_service(db: AsyncSession = Depends(get_db)) -> TripBookingService:
    return TripBookingService.from_session(db)


async def get_fleet_service(db: AsyncSession = Depends(get_db)) -> FleetService:
    return FleetService.from_session(db)
