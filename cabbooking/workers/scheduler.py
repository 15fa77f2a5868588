"""
Scheduled Trip Promoter
=======================

Runs every ``SCHEDULER_INTERVAL_SECONDS`` (default 60 s).

Concurrency safety
------------------
* **Redis distributed lock** keeps sweeps from overlapping across API
  processes.  The lock is re-extended before each trip; a sweep that finds
  it has lost the lock stops and leaves the rest to the new holder.
* Driver reservation is the same compare-and-set used by immediate
  bookings, so a sweep and a live booking can never claim one driver.
* **One transaction per trip**: a failure on one trip is rolled back and
  logged, and the sweep moves on to the next.

Algorithm per sweep
-------------------
1. Fetch SCHEDULED trips starting before ``now + lookahead`` (15 min).
2. For each, pick the highest-rated verified, available driver whose cab
   matches the requested car type.  No distance filter unless
   ``SCHEDULED_NEARBY_RADIUS_KM`` is set.
3. Found: reserve driver + cab, attach them, mark the trip CONFIRMED.
   Not found: leave it SCHEDULED for the next sweep.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cabbooking.config import settings
from cabbooking.domain.clock import utcnow
from cabbooking.infrastructure.database import async_session_factory
from cabbooking.infrastructure.locks import DistributedLock
from cabbooking.infrastructure.redis_client import get_redis
from cabbooking.infrastructure.repositories import TripRepository
from cabbooking.services.trip_booking import TripBookingService

logger = logging.getLogger(__name__)

LOCK_NAME = "scheduled_trip_sweep"

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_scheduler_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Trip scheduler started (interval=%ds, lookahead=%dmin)",
        settings.scheduler_interval_seconds,
        settings.scheduler_lookahead_minutes,
    )


async def stop_scheduler_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Trip scheduler stopped")


async def run_sweep(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    redis=None,
    now: Optional[datetime] = None,
) -> int:
    """One locked sweep.  Returns the number of trips promoted."""
    client = redis if redis is not None else await get_redis()
    lock = DistributedLock(
        client, LOCK_NAME, ttl_seconds=max(60, settings.scheduler_interval_seconds)
    )

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping sweep")
        return 0

    try:
        return await assign_drivers_to_scheduled_trips(
            session_factory or async_session_factory, now=now, heartbeat=lock.extend
        )
    finally:
        await lock.release()


async def assign_drivers_to_scheduled_trips(
    session_factory: async_sessionmaker[AsyncSession],
    now: Optional[datetime] = None,
    heartbeat: Optional[Callable[[], Awaitable[bool]]] = None,
) -> int:
    """
    Promote every due SCHEDULED trip that a driver can be found for.

    *heartbeat* is awaited before each trip; a falsy result ends the sweep.
    """
    now = now or utcnow()
    horizon = now + timedelta(minutes=settings.scheduler_lookahead_minutes)
    logger.info("Scheduler running: checking for trips due before %s", horizon)

    async with session_factory() as session:
        due = await TripRepository(session).get_due_scheduled(horizon)
        due_ids = [trip.id for trip in due]

    if not due_ids:
        logger.info("No due scheduled trips found.")
        return 0

    promoted = 0
    for trip_id in due_ids:
        if heartbeat is not None and not await heartbeat():
            logger.warning(
                "Sweep lock lost; stopping with %d trips confirmed", promoted
            )
            break
        try:
            if await _promote_one(session_factory, trip_id):
                promoted += 1
        except Exception:
            logger.exception(
                "Error while assigning driver to scheduled trip %s", trip_id
            )

    logger.info("Sweep done: %d of %d due trips confirmed", promoted, len(due_ids))
    return promoted


# ── Internals ─────────────────────────────────────────────────────────


async def _promote_one(
    session_factory: async_sessionmaker[AsyncSession], trip_id: int
) -> bool:
    async with session_factory() as session:
        try:
            service = TripBookingService.from_session(session)
            trip = await service.trips.get_by_id_for_update(trip_id)
            if trip is None:
                return False
            logger.info("Attempting to assign driver to scheduled trip %s", trip_id)
            promoted = await service.promote_scheduled_trip(
                trip, radius_km=settings.scheduled_nearby_radius_km
            )
            if promoted:
                await session.commit()
            else:
                await session.rollback()
            return promoted
        except Exception:
            await session.rollback()
            raise


async def _loop() -> None:
    """Periodic loop: run a sweep then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_sweep()
        except Exception:
            logger.exception("Unhandled error in scheduler sweep")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.scheduler_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next sweep
