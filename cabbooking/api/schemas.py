"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cabbooking.domain.enums import TripStatus


# ── Requests ──────────────────────────────────────────────────────────


class TripBookingRequest(BaseModel):
    customer_id: int
    from_location: str = Field(..., min_length=1, max_length=255)
    to_location: str = Field(..., min_length=1, max_length=255)
    distance_in_km: float = Field(..., gt=0)
    car_type: str = Field(..., min_length=1, max_length=40)
    from_latitude: float = Field(..., ge=-90, le=90)
    from_longitude: float = Field(..., ge=-180, le=180)
    scheduled_at: Optional[datetime] = Field(
        None,
        description="Future start time; omit for an immediate booking.",
    )


class RatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)


class CabCreateRequest(BaseModel):
    car_type: str = Field(..., min_length=1, max_length=40)
    per_km_rate: float = Field(..., gt=0)


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


# ── Responses ─────────────────────────────────────────────────────────


class CabResponse(BaseModel):
    id: int
    car_type: str
    per_km_rate: float
    is_available: bool

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    verified: bool
    is_available: bool
    rating: Optional[float] = None
    total_ratings: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cab: Optional[CabResponse] = None

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: int
    customer_id: int
    driver_id: Optional[int] = None
    cab_id: Optional[int] = None
    from_location: str
    to_location: str
    from_latitude: Optional[float] = None
    from_longitude: Optional[float] = None
    from_date_time: Optional[datetime] = None
    to_date_time: Optional[datetime] = None
    distance_in_km: float
    car_type: str
    status: TripStatus
    bill: float
    customer_rating: Optional[int] = None

    model_config = {"from_attributes": True}


class TripHistoryResponse(BaseModel):
    id: int
    from_location: str
    to_location: str
    from_date_time: Optional[datetime] = None
    to_date_time: Optional[datetime] = None
    status: TripStatus
    bill: float
    customer_rating: Optional[int] = None
    car_type: str
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    driver_first_name: Optional[str] = None
    driver_last_name: Optional[str] = None

    @classmethod
    def from_trip(cls, trip) -> "TripHistoryResponse":
        driver = trip.driver
        return cls(
            id=trip.id,
            from_location=trip.from_location,
            to_location=trip.to_location,
            from_date_time=trip.from_date_time,
            to_date_time=trip.to_date_time,
            status=trip.status,
            bill=trip.bill,
            customer_rating=trip.customer_rating,
            car_type=trip.car_type,
            customer_first_name=trip.customer.first_name,
            customer_last_name=trip.customer.last_name,
            driver_first_name=driver.first_name if driver else None,
            driver_last_name=driver.last_name if driver else None,
        )


class FareEstimateResponse(BaseModel):
    car_type: str
    min_fare: float
    max_fare: float

    model_config = {"from_attributes": True}


class CountResponse(BaseModel):
    car_type: str
    count: int


class HealthResponse(BaseModel):
    status: str = "ok"
