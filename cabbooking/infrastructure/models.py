"""
SQLAlchemy ORM models.

Tables
------
* ``customers``      -- registered customers
* ``cabs``           -- vehicles with a car type and a per-km rate
* ``drivers``        -- drivers, each owning at most one cab
* ``trip_bookings``  -- one row per booked or scheduled trip

Indexes
-------
* **B-Tree** on ``drivers(verified, is_available)`` and ``cabs.car_type`` for
  the matching query, and on ``trip_bookings`` ``status``, ``from_date_time``,
  ``customer_id`` and ``driver_id`` for the scheduler and history look-ups.

``trip_bookings.version`` is a SQLAlchemy ``version_id_col``: every UPDATE
checks it, so two writers racing on one trip cannot both succeed.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from .database import Base
from cabbooking.domain.clock import utcnow
from cabbooking.domain.enums import TripStatus


class CustomerModel(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(80), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(80), nullable=True)
    last_name = Column(String(80), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class CabModel(Base):
    __tablename__ = "cabs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    car_type = Column(String(40), nullable=False)
    per_km_rate = Column(Float, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_cabs_car_type", "car_type"),
        Index("idx_cabs_available", "is_available"),
    )


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(80), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(80), nullable=True)
    last_name = Column(String(80), nullable=True)
    license_no = Column(String(40), nullable=True)
    verified = Column(Boolean, default=False, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, nullable=True)
    total_ratings = Column(Integer, default=0, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    cab_id = Column(Integer, ForeignKey("cabs.id"), unique=True, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    cab = relationship(CabModel, lazy="selectin")

    __table_args__ = (
        Index("idx_drivers_matchable", "verified", "is_available"),
    )


class TripBookingModel(Base):
    __tablename__ = "trip_bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    cab_id = Column(Integer, ForeignKey("cabs.id"), nullable=True)

    from_location = Column(String(255), nullable=False)
    to_location = Column(String(255), nullable=False)
    from_latitude = Column(Float, nullable=True)
    from_longitude = Column(Float, nullable=True)

    # Planned start for SCHEDULED trips, actual start otherwise
    from_date_time = Column(DateTime, nullable=True)
    to_date_time = Column(DateTime, nullable=True)

    distance_in_km = Column(Float, nullable=False)
    car_type = Column(String(40), nullable=False)
    status = Column(Enum(TripStatus), default=TripStatus.CONFIRMED, nullable=False)
    bill = Column(Float, default=0.0, nullable=False)
    customer_rating = Column(Integer, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship(CustomerModel, lazy="selectin")
    driver = relationship(DriverModel, lazy="selectin")
    cab = relationship(CabModel, lazy="selectin")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_trips_status_start", "status", "from_date_time"),
        Index("idx_trips_customer", "customer_id"),
        Index("idx_trips_driver", "driver_id"),
    )
