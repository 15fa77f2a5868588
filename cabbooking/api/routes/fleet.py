"""
Cab & driver endpoints
======================

POST /api/v1/cabs                     -- register a cab (admin)
GET  /api/v1/cabs/available           -- cabs not on a trip
GET  /api/v1/cabs/type/{car_type}     -- cabs of a type
GET  /api/v1/cabs/count/{car_type}    -- number of cabs of a type
GET  /api/v1/drivers/best             -- drivers, best rated first
PUT  /api/v1/drivers/me/location      -- driver reports their position
"""

from fastapi import APIRouter, Depends, Request

from cabbooking.api.dependencies import get_fleet_service
from cabbooking.api.middleware import limiter
from cabbooking.api.schemas import (
    CabCreateRequest,
    CabResponse,
    CountResponse,
    DriverResponse,
    LocationUpdateRequest,
)
from cabbooking.api.security import Principal, get_current_principal, require_role
from cabbooking.config import settings
from cabbooking.domain.enums import Role
from cabbooking.services.fleet import FleetService

cabs_router = APIRouter(prefix="/cabs", tags=["cabs"])
drivers_router = APIRouter(prefix="/drivers", tags=["drivers"])


@cabs_router.post(
    "", status_code=201, response_model=CabResponse, summary="Register a cab"
)
@limiter.limit(settings.rate_limit)
async def register_cab(
    request: Request,
    body: CabCreateRequest,
    principal: Principal = Depends(require_role(Role.ADMIN)),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.register_cab(body.car_type, body.per_km_rate)


@cabs_router.get("/available", response_model=list[CabResponse])
@limiter.limit(settings.rate_limit)
async def available_cabs(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.available_cabs()


@cabs_router.get("/type/{car_type}", response_model=list[CabResponse])
@limiter.limit(settings.rate_limit)
async def cabs_of_type(
    request: Request,
    car_type: str,
    principal: Principal = Depends(get_current_principal),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.cabs_of_type(car_type)


@cabs_router.get("/count/{car_type}", response_model=CountResponse)
@limiter.limit(settings.rate_limit)
async def count_cabs_of_type(
    request: Request,
    car_type: str,
    principal: Principal = Depends(get_current_principal),
    fleet: FleetService = Depends(get_fleet_service),
):
    return CountResponse(
        car_type=car_type, count=await fleet.count_cabs_of_type(car_type)
    )


@drivers_router.get("/best", response_model=list[DriverResponse])
@limiter.limit(settings.rate_limit)
async def best_drivers(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.best_drivers()


@drivers_router.put("/me/location", response_model=DriverResponse)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    body: LocationUpdateRequest,
    principal: Principal = Depends(require_role(Role.DRIVER)),
    fleet: FleetService = Depends(get_fleet_service),
):
    return await fleet.update_driver_location(
        principal.username, body.latitude, body.longitude
    )
