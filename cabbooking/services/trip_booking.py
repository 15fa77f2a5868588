"""
Trip booking service
====================

Owns the trip lifecycle on top of the repositories:

* **Matching / assignment** -- ``book_trip`` picks the best eligible driver
  near the pickup point and reserves driver + cab; future-dated requests
  are parked as SCHEDULED for the scheduler (``promote_scheduled_trip``).
* **Status state machine** -- ``update_trip_status`` / ``complete_trip``
  enforce the transition table, bill on completion and release the driver
  and cab on any terminal status.
* **Rating** -- ``rate_trip`` folds the customer's score into the driver's
  running average, once per trip.

The service never commits.  Every flag flip and trip write goes through the
session it was built with, so they land in the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from cabbooking.config import settings
from cabbooking.domain.billing import FareEstimate, compute_bill, estimate_fares
from cabbooking.domain.clock import to_naive_utc, utcnow
from cabbooking.domain.distance import within_radius
from cabbooking.domain.entities import check_transition
from cabbooking.domain.enums import TERMINAL_STATUSES, TripStatus
from cabbooking.domain.errors import (
    ConcurrentTripUpdate,
    Forbidden,
    IllegalState,
    NoDriverAvailable,
    NotFound,
)
from cabbooking.domain.matching import rank_candidates
from cabbooking.domain.rating import running_average, validate_rating
from cabbooking.infrastructure.models import DriverModel, TripBookingModel
from cabbooking.infrastructure.repositories import (
    CustomerRepository,
    DriverRepository,
    TripRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    customer_id: int
    from_location: str
    to_location: str
    distance_in_km: float
    car_type: str
    from_latitude: float
    from_longitude: float
    scheduled_at: Optional[datetime] = None


class TripBookingService:
    def __init__(
        self,
        customers: CustomerRepository,
        drivers: DriverRepository,
        trips: TripRepository,
        *,
        nearby_radius_km: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.customers = customers
        self.drivers = drivers
        self.trips = trips
        self.nearby_radius_km = (
            settings.nearby_radius_km if nearby_radius_km is None else nearby_radius_km
        )
        self.clock = clock

    @classmethod
    def from_session(cls, session: AsyncSession, **kwargs) -> "TripBookingService":
        return cls(
            CustomerRepository(session),
            DriverRepository(session),
            TripRepository(session),
            **kwargs,
        )

    # ── Matching / assignment ─────────────────────────────────────────

    async def book_trip(
        self, request: BookingRequest, customer_username: Optional[str] = None
    ) -> TripBookingModel:
        """
        Book an immediate trip, or park a future one as SCHEDULED.

        With *customer_username*, the request's customer must be that user.
        """
        customer = await self.customers.get_by_id(request.customer_id)
        if customer is None:
            raise NotFound(f"Customer not found with ID: {request.customer_id}")
        if customer_username is not None and customer.username != customer_username:
            raise Forbidden("You can only book trips for yourself.")

        now = self.clock()
        scheduled_at = (
            to_naive_utc(request.scheduled_at) if request.scheduled_at else None
        )

        trip = TripBookingModel(
            customer=customer,
            from_location=request.from_location,
            to_location=request.to_location,
            from_latitude=request.from_latitude,
            from_longitude=request.from_longitude,
            distance_in_km=request.distance_in_km,
            car_type=request.car_type,
            bill=0.0,
        )

        if scheduled_at is not None and scheduled_at > now:
            trip.status = TripStatus.SCHEDULED
            trip.from_date_time = scheduled_at
            trip = await self.trips.create(trip)
            logger.info(
                "Trip %s scheduled for %s (customer=%s, car_type=%s)",
                trip.id, scheduled_at, customer.id, request.car_type,
            )
            return trip

        driver = await self._reserve_best_driver(
            request.car_type,
            request.from_latitude,
            request.from_longitude,
            self.nearby_radius_km,
        )
        if driver is None:
            logger.info(
                "No driver available for customer %s (car_type=%s)",
                customer.id, request.car_type,
            )
            raise NoDriverAvailable(request.car_type)

        trip.driver = driver
        trip.cab = driver.cab
        trip.status = TripStatus.CONFIRMED
        trip.from_date_time = now
        trip = await self.trips.create(trip)
        logger.info(
            "Trip %s confirmed: driver=%s cab=%s customer=%s",
            trip.id, driver.id, driver.cab.id, customer.id,
        )
        return trip

    async def promote_scheduled_trip(
        self, trip: TripBookingModel, radius_km: Optional[float] = None
    ) -> bool:
        """
        Attach a driver to a due SCHEDULED trip and confirm it.

        Returns False (trip untouched) when no driver could be reserved.
        """
        if trip.status != TripStatus.SCHEDULED:
            return False

        driver = await self._reserve_best_driver(
            trip.car_type, trip.from_latitude, trip.from_longitude, radius_km
        )
        if driver is None:
            logger.warning(
                "Could not find an available driver for scheduled trip %s", trip.id
            )
            return False

        # System transition: SCHEDULED -> CONFIRMED is not open to drivers
        trip.driver = driver
        trip.cab = driver.cab
        trip.status = TripStatus.CONFIRMED
        await self._save(trip)
        logger.info(
            "Assigned driver %s and cab %s to scheduled trip %s",
            driver.id, driver.cab.id, trip.id,
        )
        return True

    async def _reserve_best_driver(
        self,
        car_type: str,
        pickup_lat: Optional[float],
        pickup_lng: Optional[float],
        radius_km: Optional[float],
    ) -> Optional[DriverModel]:
        candidates = await self.drivers.find_eligible(car_type)
        ranked = rank_candidates(
            candidates, car_type, pickup_lat, pickup_lng, radius_km
        )
        for driver in ranked:
            if await self.drivers.reserve(driver, driver.cab):
                return driver
            logger.info("Driver %s was reserved concurrently; trying next", driver.id)
        return None

    # ── Status state machine ──────────────────────────────────────────

    async def update_trip_status(
        self,
        trip_id: int,
        new_status: Union[TripStatus, str],
        driver_username: str,
    ) -> TripBookingModel:
        trip = await self._load_for_update(trip_id)

        if trip.driver is None or trip.driver.username != driver_username:
            raise Forbidden("You are not authorized to update this trip.")

        status = self._parse_status(new_status)
        check_transition(trip.status, status)
        return await self._apply_status(trip, status)

    async def complete_trip(
        self, trip_id: int, driver_username: str
    ) -> TripBookingModel:
        return await self.update_trip_status(
            trip_id, TripStatus.COMPLETED, driver_username
        )

    async def cancel_trip(
        self, trip_id: int, customer_username: str
    ) -> TripBookingModel:
        """Customer-side cancellation; same transition rules as drivers."""
        trip = await self._load_for_update(trip_id)
        if trip.customer.username != customer_username:
            raise Forbidden("You are not authorized to cancel this trip.")

        check_transition(trip.status, TripStatus.CANCELLED)
        return await self._apply_status(trip, TripStatus.CANCELLED)

    async def _apply_status(
        self, trip: TripBookingModel, status: TripStatus
    ) -> TripBookingModel:
        previous = trip.status
        trip.status = status

        if status == TripStatus.COMPLETED:
            if trip.cab is None:
                raise IllegalState(f"Trip {trip.id} has no cab to bill against")
            trip.to_date_time = self.clock()
            trip.bill = compute_bill(trip.distance_in_km, trip.cab.per_km_rate)

        if status in TERMINAL_STATUSES and trip.driver is not None:
            trip.driver.is_available = True
            if trip.cab is not None:
                trip.cab.is_available = True

        await self._save(trip)
        logger.info(
            "Trip %s: %s -> %s%s",
            trip.id, TripStatus(previous).value, status.value,
            f" (bill={trip.bill})" if status == TripStatus.COMPLETED else "",
        )
        return trip

    @staticmethod
    def _parse_status(value: Union[TripStatus, str]) -> TripStatus:
        if isinstance(value, TripStatus):
            return value
        try:
            return TripStatus(str(value).strip().upper())
        except ValueError:
            raise IllegalState(f"Unknown trip status: {value}") from None

    # ── Rating ────────────────────────────────────────────────────────

    async def rate_trip(
        self, trip_id: int, rating: int, customer_username: str
    ) -> TripBookingModel:
        trip = await self._load_for_update(trip_id)

        if trip.customer.username != customer_username:
            raise Forbidden("You are not authorized to rate this trip.")

        validate_rating(rating)

        if trip.status != TripStatus.COMPLETED:
            raise IllegalState("Trip must be completed before it can be rated.")
        if trip.customer_rating is not None:
            raise IllegalState("This trip has already been rated.")

        driver = trip.driver
        driver.rating, driver.total_ratings = running_average(
            driver.rating, driver.total_ratings, rating
        )
        trip.customer_rating = rating
        await self._save(trip)

        logger.info(
            "Trip %s rated %d; driver %s now %.4f over %d ratings",
            trip.id, rating, driver.id, driver.rating, driver.total_ratings,
        )
        return trip

    # ── Queries ───────────────────────────────────────────────────────

    async def get_trip(self, trip_id: int) -> TripBookingModel:
        trip = await self.trips.get_by_id(trip_id)
        if trip is None:
            raise NotFound(f"Trip not found with ID: {trip_id}")
        return trip

    async def trips_for_customer(self, customer_id: int) -> list[TripBookingModel]:
        return await self.trips.by_customer(customer_id)

    async def trips_for_driver(self, driver_id: int) -> list[TripBookingModel]:
        return await self.trips.by_driver(driver_id)

    async def trips_on_date(self, day: date) -> list[TripBookingModel]:
        start = datetime.combine(day, time.min)
        return await self.trips.by_date_range(start, start + timedelta(days=1))

    async def estimate_fares(
        self, distance_in_km: float, latitude: float, longitude: float
    ) -> list[FareEstimate]:
        """Min/max fare per car type among cabs on offer near the point."""
        nearby_cabs = [
            d.cab
            for d in await self.drivers.find_on_offer()
            if within_radius(
                latitude, longitude, d.latitude, d.longitude, self.nearby_radius_km
            )
        ]
        return estimate_fares(nearby_cabs, distance_in_km)

    # ── Internals ─────────────────────────────────────────────────────

    async def _load_for_update(self, trip_id: int) -> TripBookingModel:
        trip = await self.trips.get_by_id_for_update(trip_id)
        if trip is None:
            raise NotFound(f"Trip not found with ID: {trip_id}")
        return trip

    async def _save(self, trip: TripBookingModel) -> TripBookingModel:
        try:
            return await self.trips.save(trip)
        except StaleDataError as exc:
            raise ConcurrentTripUpdate(
                f"Trip {trip.id} was modified concurrently; reload and retry"
            ) from exc
