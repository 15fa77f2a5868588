"""Tests for the scheduled-trip promoter (the periodic sweep)."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from cabbooking.config import settings
from cabbooking.domain.enums import TripStatus
from cabbooking.infrastructure.models import DriverModel, TripBookingModel
from cabbooking.services.trip_booking import TripBookingService
from cabbooking.workers.scheduler import (
    LOCK_NAME,
    assign_drivers_to_scheduled_trips,
    run_sweep,
)
from tests.factories import NOW, add_customer, add_driver, booking, fixed_clock


async def _schedule(session_factory, starts_in: timedelta, **request_kw) -> int:
    async with session_factory() as session:
        customer = await add_customer(session, f"c{starts_in.total_seconds():.0f}")
        svc = TripBookingService.from_session(session, clock=fixed_clock)
        trip = await svc.book_trip(
            booking(customer.id, scheduled_at=NOW + starts_in, **request_kw)
        )
        await session.commit()
        return trip.id


async def _add_driver(session_factory, username, **kw) -> int:
    async with session_factory() as session:
        driver = await add_driver(session, username, **kw)
        await session.commit()
        return driver.id


async def _load(session_factory, model, row_id):
    async with session_factory() as session:
        return await session.get(model, row_id)


class TestAssignDriversToScheduledTrips:
    @pytest.mark.asyncio
    async def test_due_trip_is_confirmed_with_best_driver(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=10))
        await _add_driver(session_factory, "ok", rating=4.0)
        best_id = await _add_driver(session_factory, "best", rating=4.9)

        promoted = await assign_drivers_to_scheduled_trips(session_factory, now=NOW)

        assert promoted == 1
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.status == TripStatus.CONFIRMED
        assert trip.driver_id == best_id
        assert trip.cab_id is not None
        assert trip.from_date_time == NOW + timedelta(minutes=10)
        driver = await _load(session_factory, DriverModel, best_id)
        assert driver.is_available is False
        assert driver.cab.is_available is False

    @pytest.mark.asyncio
    async def test_trip_outside_lookahead_is_left_alone(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=30))
        await _add_driver(session_factory, "ravi")

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 0
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.status == TripStatus.SCHEDULED
        assert trip.driver_id is None

    @pytest.mark.asyncio
    async def test_no_driver_keeps_trip_scheduled(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=5))
        await _add_driver(session_factory, "suv", car_type="SUV")

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 0
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.status == TripStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_retried_on_next_sweep(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=5))
        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 0

        await _add_driver(session_factory, "late")
        later = NOW + timedelta(minutes=1)
        assert await assign_drivers_to_scheduled_trips(session_factory, now=later) == 1
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.status == TripStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_no_distance_filter_by_default(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=5))
        far_id = await _add_driver(session_factory, "far", latitude=10.0)

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 1
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.driver_id == far_id

    @pytest.mark.asyncio
    async def test_configured_radius_filters_drivers(
        self, session_factory, monkeypatch
    ):
        monkeypatch.setattr(settings, "scheduled_nearby_radius_km", 5.0)
        trip_id = await _schedule(session_factory, timedelta(minutes=5))
        await _add_driver(session_factory, "far", latitude=10.0)

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 0
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.status == TripStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_one_failing_trip_does_not_stop_the_sweep(
        self, session_factory, monkeypatch
    ):
        bad_id = await _schedule(session_factory, timedelta(minutes=2))
        good_id = await _schedule(session_factory, timedelta(minutes=8))
        await _add_driver(session_factory, "ravi")

        original = TripBookingService.promote_scheduled_trip

        async def flaky(self, trip, radius_km=None):
            if trip.id == bad_id:
                raise RuntimeError("boom")
            return await original(self, trip, radius_km)

        monkeypatch.setattr(TripBookingService, "promote_scheduled_trip", flaky)

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 1
        bad = await _load(session_factory, TripBookingModel, bad_id)
        good = await _load(session_factory, TripBookingModel, good_id)
        assert bad.status == TripStatus.SCHEDULED
        assert good.status == TripStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_earliest_trip_gets_the_only_driver(self, session_factory):
        later_id = await _schedule(session_factory, timedelta(minutes=9))
        sooner_id = await _schedule(session_factory, timedelta(minutes=3))
        await _add_driver(session_factory, "solo")

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 1
        sooner = await _load(session_factory, TripBookingModel, sooner_id)
        later = await _load(session_factory, TripBookingModel, later_id)
        assert sooner.status == TripStatus.CONFIRMED
        assert later.status == TripStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_cancelled_trips_are_not_promoted(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=5))
        async with session_factory() as session:
            svc = TripBookingService.from_session(session, clock=fixed_clock)
            trip = await svc.get_trip(trip_id)
            await svc.cancel_trip(trip_id, trip.customer.username)
            await session.commit()
        await _add_driver(session_factory, "ravi")

        assert await assign_drivers_to_scheduled_trips(session_factory, now=NOW) == 0


class TestRunSweep:
    @pytest.mark.asyncio
    async def test_sweeps_under_lock_and_releases(self, session_factory):
        await _schedule(session_factory, timedelta(minutes=5))
        await _add_driver(session_factory, "ravi")
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        promoted = await run_sweep(session_factory, redis=mock_redis, now=NOW)

        assert promoted == 1
        key = mock_redis.set.call_args.args[0]
        assert key == f"lock:{LOCK_NAME}"
        # one extend before the trip, then the release
        assert mock_redis.eval.call_count == 2

    @pytest.mark.asyncio
    async def test_lock_is_extended_before_every_trip(self, session_factory):
        for minutes in (2, 4, 6):
            await _schedule(session_factory, timedelta(minutes=minutes))
        for name in ("a", "b", "c"):
            await _add_driver(session_factory, name)
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        assert await run_sweep(session_factory, redis=mock_redis, now=NOW) == 3

        extends = [c for c in mock_redis.eval.call_args_list if len(c.args) == 5]
        assert len(extends) == 3
        assert all(c.args[2] == f"lock:{LOCK_NAME}" for c in extends)

    @pytest.mark.asyncio
    async def test_sweep_stops_once_lock_is_lost(self, session_factory):
        first_id = await _schedule(session_factory, timedelta(minutes=2))
        second_id = await _schedule(session_factory, timedelta(minutes=6))
        await _add_driver(session_factory, "a")
        await _add_driver(session_factory, "b")
        # still ours before the first trip, expired before the second
        heartbeat = AsyncMock(side_effect=[True, False])

        promoted = await assign_drivers_to_scheduled_trips(
            session_factory, now=NOW, heartbeat=heartbeat
        )

        assert promoted == 1
        first = await _load(session_factory, TripBookingModel, first_id)
        second = await _load(session_factory, TripBookingModel, second_id)
        assert first.status == TripStatus.CONFIRMED
        assert second.status == TripStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_skips_when_another_worker_holds_the_lock(self, session_factory):
        trip_id = await _schedule(session_factory, timedelta(minutes=5))
        await _add_driver(session_factory, "ravi")
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        assert await run_sweep(session_factory, redis=mock_redis, now=NOW) == 0
        mock_redis.eval.assert_not_called()
        trip = await _load(session_factory, TripBookingModel, trip_id)
        assert trip.status == TripStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_lock_released_even_if_sweep_fails(self, monkeypatch):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)
        monkeypatch.setattr(
            "cabbooking.workers.scheduler.assign_drivers_to_scheduled_trips",
            AsyncMock(side_effect=RuntimeError("db down")),
        )

        with pytest.raises(RuntimeError, match="db down"):
            await run_sweep(AsyncMock(), redis=mock_redis, now=NOW)
        mock_redis.eval.assert_called_once()
