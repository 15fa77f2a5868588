"""
FastAPI application factory.

* Registers routes for trips, cabs, drivers and admin.
* Starts / stops the scheduled-trip promoter via lifespan events.
* Maps domain exceptions to HTTP responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from cabbooking.api.middleware import limiter
from cabbooking.api.routes import admin, fleet, trips
from cabbooking.config import settings
from cabbooking.domain.errors import (
    Forbidden,
    IllegalState,
    InvalidRating,
    NoDriverAvailable,
    NotFound,
    TripBookingError,
)
from cabbooking.workers import scheduler as _scheduler

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Most specific first
_STATUS_BY_ERROR: list[tuple[type[TripBookingError], int]] = [
    (NotFound, 404),
    (Forbidden, 403),
    (InvalidRating, 422),
    (IllegalState, 409),
    (NoDriverAvailable, 409),
]


async def _domain_error_handler(request: Request, exc: TripBookingError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400
    )
    logger.warning(
        "%s at [%s %s]: %s",
        type(exc).__name__, request.method, request.url.path, exc,
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the trip scheduler on startup; stop on shutdown."""
    await _scheduler.start_scheduler_loop()
    yield
    await _scheduler.stop_scheduler_loop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Cab Booking API",
        description=(
            "Books cabs for customers, matches trips to the best nearby "
            "verified driver, drives trips through their lifecycle, bills "
            "them and collects ratings.  Future bookings are assigned by a "
            "background scheduler."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(TripBookingError, _domain_error_handler)

    # Routers
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(fleet.cabs_router, prefix="/api/v1")
    app.include_router(fleet.drivers_router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
