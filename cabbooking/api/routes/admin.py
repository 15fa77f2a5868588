"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/trips/date/{day}                    -- trips starting on a date
PUT  /api/v1/admin/drivers/{driver_id}/verify          -- toggle driver verification
POST /api/v1/admin/drivers/{driver_id}/assign-cab/{id} -- give a driver a cab
GET  /api/v1/admin/health                              -- simple health check
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from cabbooking.api.dependencies import get_fleet_service, get_trip_service
from cabbooking.api.middleware import limiter
from cabbooking.api.schemas import DriverResponse, HealthResponse, TripHistoryResponse
from cabbooking.api.security import Principal, require_role
from cabbooking.config import settings
from cabbooking.domain.enums import Role
from cabbooking.services.fleet import FleetService
from cabbooking.services.trip_booking import TripBookingService

router = APIRouter(prefix="/admin", tags=["admin"])

admin_only = require_role(Role.ADMIN)


@router.get(
    "/trips/date/{day}",
    response_model=list[TripHistoryResponse],
    summary="List all trips that started on a given date",
)
@limiter.limit(settings.rate_limit)
async def get_trips_by_date(
    request: Request,
    day: date,
    principal: Principal = Depends(admin_only),
    service: TripBookingService = Depends(get_trip_service),
):
    trips = await service.trips_on_date(day)
    return [TripHistoryResponse.from_trip(t) for t in trips]


@router.put(
    "/drivers/{driver_id}/verify",
    response_model=DriverResponse,
    summary="Set a driver's verification flag",
)
@limiter.limit(settings.rate_limit)
async def verify_driver(
    request: Request,
    driver_id: int,
    verified: bool = Query(True),
    principal: Principal = Depends(admin_only),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.set_driver_verification(driver_id, verified)


@router.post(
    "/drivers/{driver_id}/assign-cab/{cab_id}",
    response_model=DriverResponse,
    summary="Assign a cab to a driver",
)
@limiter.limit(settings.rate_limit)
async def assign_cab(
    request: Request,
    driver_id: int,
    cab_id: int,
    principal: Principal = Depends(admin_only),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.assign_cab_to_driver(driver_id, cab_id)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
