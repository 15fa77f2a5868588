"""
Domain exceptions.

Raised where the problem is detected and left to propagate; the API layer
maps each family onto an HTTP status (see ``cabbooking.api.app``).
"""


class TripBookingError(Exception):
    """Base class for every error the booking core raises on purpose."""


class NotFound(TripBookingError):
    """A referenced customer, driver, cab or trip does not exist."""


class Forbidden(TripBookingError):
    """The caller does not own the resource they are trying to change."""


class IllegalState(TripBookingError):
    """The action is not allowed in the resource's current state."""


class InvalidStateTransition(IllegalState):
    """Raised when a trip status change violates the state machine."""


class InvalidRating(IllegalState):
    """Rating value outside 1..5."""


class ConcurrentTripUpdate(IllegalState):
    """Another writer changed the trip between our read and our write."""


class NoDriverAvailable(TripBookingError):
    def __init__(self, car_type: str):
        self.car_type = car_type
        super().__init__(
            f"No drivers available for car type '{car_type}' at the moment."
        )
