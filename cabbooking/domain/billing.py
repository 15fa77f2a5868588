"""
Billing & Fare Estimation
=========================

Formula
-------
Bill = Distance_In_KM x Per_KM_Rate

No base fare, surge or rounding: the bill is the plain float product, so
``compute_bill(d, r) == d * r`` holds exactly.

Fare estimates give, per car type, the cheapest and the dearest bill a
customer could see for a distance, across the cabs currently on offer.

Complexity: O(1) per bill, O(n log n) per estimate over n cabs.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable


def compute_bill(distance_in_km: float, per_km_rate: float) -> float:
    return distance_in_km * per_km_rate


@dataclass(frozen=True)
class FareEstimate:
    car_type: str
    min_fare: float
    max_fare: float


def estimate_fares(cabs: Iterable, distance_in_km: float) -> list[FareEstimate]:
    """Group *cabs* by car type and price *distance_in_km* at each extreme rate."""
    rates: dict[str, list[float]] = defaultdict(list)
    for cab in cabs:
        rates[cab.car_type].append(cab.per_km_rate)

    return [
        FareEstimate(
            car_type=car_type,
            min_fare=compute_bill(distance_in_km, min(type_rates)),
            max_fare=compute_bill(distance_in_km, max(type_rates)),
        )
        for car_type, type_rates in sorted(rates.items())
    ]
