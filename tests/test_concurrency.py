"""
Concurrency safety tests.

Demonstrates:
1. Two bookings racing for the last driver: exactly one wins.
2. The driver/cab compare-and-set refuses a second reservation.
3. Optimistic versioning rejects a status write based on a stale read.
4. Distributed lock prevents simultaneous acquire.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from cabbooking.domain.enums import TripStatus
from cabbooking.domain.errors import (
    ConcurrentTripUpdate,
    IllegalState,
    NoDriverAvailable,
)
from cabbooking.infrastructure.locks import DistributedLock, LockNotAcquired
from cabbooking.infrastructure.models import DriverModel, TripBookingModel
from cabbooking.infrastructure.repositories import DriverRepository, TripRepository
from cabbooking.services.trip_booking import TripBookingService
from tests.factories import add_customer, add_driver, booking


async def _seed(session_factory, customers=("aarav",), drivers=("ravi",)):
    async with session_factory() as session:
        ids = [(await add_customer(session, name)).id for name in customers]
        for name in drivers:
            await add_driver(session, name)
        await session.commit()
    return ids


class TestDoubleBooking:
    @pytest.mark.asyncio
    async def test_two_bookings_for_last_driver_only_one_wins(self, session_factory):
        first, second = await _seed(session_factory, customers=("aarav", "priya"))

        async def book(customer_id):
            async with session_factory() as session:
                try:
                    svc = TripBookingService.from_session(session)
                    trip = await svc.book_trip(booking(customer_id))
                    await session.commit()
                    return trip.id
                except Exception:
                    await session.rollback()
                    raise

        results = await asyncio.gather(
            book(first), book(second), return_exceptions=True
        )

        booked = [r for r in results if isinstance(r, int)]
        refused = [r for r in results if isinstance(r, NoDriverAvailable)]
        assert len(booked) == 1
        assert len(refused) == 1

        async with session_factory() as session:
            driver = (
                await session.execute(
                    select(DriverModel).where(DriverModel.username == "ravi")
                )
            ).scalar_one()
            active = await TripRepository(session).active_for_driver(driver.id)
            assert [t.id for t in active] == booked
            assert driver.is_available is False

    @pytest.mark.asyncio
    async def test_reservation_is_compare_and_set(self, session_factory):
        await _seed(session_factory)

        async with session_factory() as s1, session_factory() as s2:
            d1 = await DriverRepository(s1).get_by_username("ravi")
            d2 = await DriverRepository(s2).get_by_username("ravi")

            assert await DriverRepository(s1).reserve(d1, d1.cab) is True
            await s1.commit()

            # s2 still believes the driver is free
            assert await DriverRepository(s2).reserve(d2, d2.cab) is False
            await s2.rollback()

        async with session_factory() as session:
            driver = await DriverRepository(session).get_by_username("ravi")
            assert driver.is_available is False
            assert driver.cab.is_available is False

    @pytest.mark.asyncio
    async def test_busy_cab_rolls_back_driver_flag(self, session_factory):
        await _seed(session_factory)

        async with session_factory() as session:
            repo = DriverRepository(session)
            driver = await repo.get_by_username("ravi")
            driver.cab.is_available = False
            await session.flush()

            assert await repo.reserve(driver, driver.cab) is False
            assert driver.is_available is True


async def _confirmed_trip(session_factory) -> int:
    (customer_id,) = await _seed(session_factory)
    async with session_factory() as session:
        trip = await TripBookingService.from_session(session).book_trip(
            booking(customer_id)
        )
        await session.commit()
        return trip.id


class TestOptimisticTripVersion:
    @pytest.mark.asyncio
    async def test_status_update_rereads_the_locked_row(self, session_factory):
        trip_id = await _confirmed_trip(session_factory)

        async with session_factory() as s1, session_factory() as s2:
            svc1 = TripBookingService.from_session(s1)
            svc2 = TripBookingService.from_session(s2)
            await svc1.get_trip(trip_id)
            await svc2.get_trip(trip_id)

            await svc1.update_trip_status(trip_id, TripStatus.CANCELLED, "ravi")
            await s1.commit()

            # the FOR UPDATE load refreshes s2's copy, so the move is judged
            # against CANCELLED rather than the CONFIRMED it read earlier
            with pytest.raises(IllegalState, match="from CANCELLED"):
                await svc2.update_trip_status(trip_id, TripStatus.IN_PROGRESS, "ravi")
            await s2.rollback()

        async with session_factory() as session:
            trip = await session.get(TripBookingModel, trip_id)
            assert trip.status == TripStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_stale_write_is_rejected_by_version(self, session_factory):
        trip_id = await _confirmed_trip(session_factory)

        async with session_factory() as s1, session_factory() as s2:
            svc1 = TripBookingService.from_session(s1)
            svc2 = TripBookingService.from_session(s2)
            stale = await svc2.get_trip(trip_id)
            assert stale.version == 1

            await svc1.update_trip_status(trip_id, TripStatus.CANCELLED, "ravi")
            await s1.commit()

            stale.status = TripStatus.IN_PROGRESS
            with pytest.raises(ConcurrentTripUpdate):
                await svc2._save(stale)
            await s2.rollback()

        async with session_factory() as session:
            trip = await session.get(TripBookingModel, trip_id)
            assert trip.status == TripStatus.CANCELLED
            assert trip.version == 2


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_only_deletes_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        assert await lock.release() is True

        _, numkeys, key, token = mock_redis.eval.call_args.args
        assert (numkeys, key, token) == (1, "lock:test-key", lock.token)

    @pytest.mark.asyncio
    async def test_release_after_expiry_reports_false(self):
        mock_redis = AsyncMock()
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "test-key")
        assert await lock.release() is False

    @pytest.mark.asyncio
    async def test_extend_refreshes_ttl_for_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=30)
        assert await lock.extend() is True

        script, numkeys, key, token, ttl = mock_redis.eval.call_args.args
        assert "expire" in script
        assert (numkeys, key, token, ttl) == (1, "lock:test-key", lock.token, 30)

    @pytest.mark.asyncio
    async def test_extend_after_expiry_reports_false(self):
        mock_redis = AsyncMock()
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "test-key")
        assert await lock.extend() is False

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass
