"""
Trip endpoints
==============

GET  /api/v1/trips/estimate                -- fare range per car type near a point
POST /api/v1/trips/book                    -- book now, or schedule for later
GET  /api/v1/trips/{trip_id}               -- trip detail
PUT  /api/v1/trips/{trip_id}/status        -- driver moves a trip along its lifecycle
PUT  /api/v1/trips/{trip_id}/complete      -- driver completes a trip (bills it)
PUT  /api/v1/trips/{trip_id}/cancel        -- customer cancels their trip
POST /api/v1/trips/{trip_id}/rate          -- customer rates a completed trip
GET  /api/v1/trips/customer/{customer_id}  -- customer trip history
GET  /api/v1/trips/driver/{driver_id}      -- driver trip history
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from cabbooking.api.dependencies import get_trip_service
from cabbooking.api.middleware import limiter
from cabbooking.api.schemas import (
    FareEstimateResponse,
    RatingRequest,
    TripBookingRequest,
    TripHistoryResponse,
    TripResponse,
)
from cabbooking.api.security import Principal, get_current_principal, require_role
from cabbooking.config import settings
from cabbooking.domain.enums import Role
from cabbooking.services.trip_booking import BookingRequest, TripBookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])


@router.get(
    "/estimate",
    response_model=list[FareEstimateResponse],
    summary="Fare estimates for the car types on offer near a point",
)
@limiter.limit(settings.rate_limit)
async def get_fare_estimates(
    request: Request,
    distance: float = Query(..., gt=0),
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    principal: Principal = Depends(get_current_principal),
    service: TripBookingService = Depends(get_trip_service),
):
    return await service.estimate_fares(distance, lat, lng)


@router.post(
    "/book",
    response_model=TripResponse,
    summary="Book or schedule a trip",
    description=(
        "Without ``scheduled_at`` (or with a time in the past) the best "
        "nearby driver is reserved immediately and the trip is CONFIRMED. "
        "A future ``scheduled_at`` creates a SCHEDULED trip that the "
        "background scheduler assigns shortly before it starts."
    ),
)
@limiter.limit(settings.rate_limit)
async def book_trip(
    request: Request,
    body: TripBookingRequest,
    principal: Principal = Depends(require_role(Role.CUSTOMER)),
    service: TripBookingService = Depends(get_trip_service),
):
    logger.info("Customer '%s' booking a %s trip", principal.username, body.car_type)
    return await service.book_trip(
        BookingRequest(**body.model_dump()), customer_username=principal.username
    )


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TripBookingService = Depends(get_trip_service),
):
    return await service.get_trip(trip_id)


@router.put(
    "/{trip_id}/status",
    response_model=TripResponse,
    summary="Update trip status (assigned driver only)",
)
@limiter.limit(settings.rate_limit)
async def update_trip_status(
    request: Request,
    trip_id: int,
    status: str = Query(..., description="IN_PROGRESS, COMPLETED or CANCELLED"),
    principal: Principal = Depends(require_role(Role.DRIVER)),
    service: TripBookingService = Depends(get_trip_service),
):
    return await service.update_trip_status(trip_id, status, principal.username)


@router.put(
    "/{trip_id}/complete",
    response_model=TripResponse,
    summary="Complete a trip and compute the bill (assigned driver only)",
)
@limiter.limit(settings.rate_limit)
async def complete_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(require_role(Role.DRIVER)),
    service: TripBookingService = Depends(get_trip_service),
):
    return await service.complete_trip(trip_id, principal.username)


@router.put(
    "/{trip_id}/cancel",
    response_model=TripResponse,
    summary="Cancel a trip (booking customer only)",
)
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: int,
    principal: Principal = Depends(require_role(Role.CUSTOMER)),
    service: TripBookingService = Depends(get_trip_service),
):
    return await service.cancel_trip(trip_id, principal.username)


@router.post(
    "/{trip_id}/rate",
    response_model=TripResponse,
    summary="Rate a completed trip (booking customer only)",
)
@limiter.limit(settings.rate_limit)
async def rate_trip(
    request: Request,
    trip_id: int,
    body: RatingRequest,
    principal: Principal = Depends(require_role(Role.CUSTOMER)),
    service: TripBookingService = Depends(get_trip_service),
):
    return await service.rate_trip(trip_id, body.rating, principal.username)


@router.get(
    "/customer/{customer_id}",
    response_model=list[TripHistoryResponse],
    summary="Trip history of a customer",
)
@limiter.limit(settings.rate_limit)
async def get_customer_trips(
    request: Request,
    customer_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TripBookingService = Depends(get_trip_service),
):
    trips = await service.trips_for_customer(customer_id)
    return [TripHistoryResponse.from_trip(t) for t in trips]


@router.get(
    "/driver/{driver_id}",
    response_model=list[TripHistoryResponse],
    summary="Trip history of a driver",
)
@limiter.limit(settings.rate_limit)
async def get_driver_trips(
    request: Request,
    driver_id: int,
    principal: Principal = Depends(get_current_principal),
    service: TripBookingService = Depends(get_trip_service),
):
    trips = await service.trips_for_driver(driver_id)
    return [TripHistoryResponse.from_trip(t) for t in trips]
