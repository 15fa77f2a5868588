"""
Driver Matching
===============

1. **Eligibility**  -- verified, available, owns a cab of the requested type
   (case-insensitive) and has a known position.
2. **Proximity**    -- optional great-circle radius around the pickup point.
3. **Ranking**      -- highest driver rating first; drivers never rated rank
   below every rated driver.

The repository already pushes step 1 into SQL; it is re-checked here so the
functions stay correct for any iterable of driver-like objects (ORM rows or
``cabbooking.domain.entities.Driver``).

Ties between equally rated drivers keep input order, which is the storage
order and therefore not guaranteed.

Complexity
----------
O(n log n) for n candidate drivers (one haversine per driver + sort).
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, TypeVar

from .distance import within_radius

D = TypeVar("D")


def is_eligible(driver, car_type: str) -> bool:
    """Apply the matching eligibility rule to a driver-like object."""
    cab = driver.cab
    return (
        bool(driver.verified)
        and bool(driver.is_available)
        and cab is not None
        and (cab.car_type or "").casefold() == car_type.casefold()
        and driver.latitude is not None
        and driver.longitude is not None
    )


def _rating_key(driver) -> float:
    return driver.rating if driver.rating is not None else float("-inf")


def rank_candidates(
    drivers: Iterable[D],
    car_type: str,
    pickup_lat: Optional[float] = None,
    pickup_lng: Optional[float] = None,
    radius_km: Optional[float] = None,
) -> list[D]:
    """
    Return eligible drivers best-first.

    The radius filter is applied only when a radius *and* a pickup point
    are given.
    """
    use_radius = (
        radius_km is not None and pickup_lat is not None and pickup_lng is not None
    )
    pool = [
        d
        for d in drivers
        if is_eligible(d, car_type)
        and (
            not use_radius
            or within_radius(
                pickup_lat, pickup_lng, d.latitude, d.longitude, radius_km
            )
        )
    ]
    # sorted() is stable: equal ratings keep storage order
    return sorted(pool, key=_rating_key, reverse=True)


def best_driver(
    drivers: Sequence[D],
    car_type: str,
    pickup_lat: Optional[float] = None,
    pickup_lng: Optional[float] = None,
    radius_km: Optional[float] = None,
) -> Optional[D]:
    ranked = rank_candidates(drivers, car_type, pickup_lat, pickup_lng, radius_km)
    return ranked[0] if ranked else None
