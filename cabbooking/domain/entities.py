"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Trip``: enforces valid lifecycle transitions
  (SCHEDULED -> CONFIRMED -> IN_PROGRESS -> COMPLETED | CANCELLED).
- ``Driver.is_eligible_for`` encapsulates the matching eligibility rule.

The ORM models in ``cabbooking.infrastructure.models`` expose the same
attribute names, so the helpers in ``cabbooking.domain`` work on either.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import TRIP_TRANSITIONS, TripStatus
from .errors import InvalidStateTransition
from .matching import is_eligible


def check_transition(current: TripStatus, new: TripStatus) -> None:
    """Raise unless *current* -> *new* is an edge of the trip state machine."""
    current, new = TripStatus(current), TripStatus(new)
    if new not in TRIP_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot change trip status from {current.value} to {new.value}"
        )


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Cab:
    id: Optional[int] = None
    car_type: str = "Sedan"
    per_km_rate: float = 0.0
    is_available: bool = True


@dataclass
class Driver:
    id: Optional[int] = None
    username: str = ""
    verified: bool = False
    is_available: bool = True
    rating: Optional[float] = None
    total_ratings: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    cab: Optional[Cab] = None

    def is_eligible_for(self, car_type: str) -> bool:
        return is_eligible(self, car_type)


@dataclass
class Trip:
    id: Optional[int] = None
    car_type: str = "Sedan"
    distance_in_km: float = 0.0
    status: TripStatus = TripStatus.CONFIRMED
    driver: Optional[Driver] = None
    cab: Optional[Cab] = None
    bill: float = 0.0
    customer_rating: Optional[int] = None
    from_date_time: Optional[datetime] = None
    to_date_time: Optional[datetime] = None

    def transition_to(self, new_status: TripStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        check_transition(self.status, new_status)
        self.status = TripStatus(new_status)
