"""Initial schema: customers, cabs, drivers, trip bookings.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── customers ─────────────────────────────────────────────────────
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(80), unique=True, nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(80), nullable=True),
        sa.Column("last_name", sa.String(80), nullable=True),
        sa.Column("created_at", sa.DateTime),
    )

    # ── cabs ──────────────────────────────────────────────────────────
    op.create_table(
        "cabs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("car_type", sa.String(40), nullable=False),
        sa.Column("per_km_rate", sa.Float, nullable=False),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime),
    )
    op.create_index("idx_cabs_car_type", "cabs", ["car_type"])
    op.create_index("idx_cabs_available", "cabs", ["is_available"])

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(80), unique=True, nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(80), nullable=True),
        sa.Column("last_name", sa.String(80), nullable=True),
        sa.Column("license_no", sa.String(40), nullable=True),
        sa.Column("verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("rating", sa.Float, nullable=True),
        sa.Column("total_ratings", sa.Integer, nullable=False, server_default="0"),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column(
            "cab_id", sa.Integer, sa.ForeignKey("cabs.id"), unique=True, nullable=True
        ),
        sa.Column("created_at", sa.DateTime),
    )
    op.create_index(
        "idx_drivers_matchable", "drivers", ["verified", "is_available"]
    )

    # ── trip_bookings ─────────────────────────────────────────────────
    op.create_table(
        "trip_bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False
        ),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("cab_id", sa.Integer, sa.ForeignKey("cabs.id"), nullable=True),
        sa.Column("from_location", sa.String(255), nullable=False),
        sa.Column("to_location", sa.String(255), nullable=False),
        sa.Column("from_latitude", sa.Float, nullable=True),
        sa.Column("from_longitude", sa.Float, nullable=True),
        sa.Column("from_date_time", sa.DateTime, nullable=True),
        sa.Column("to_date_time", sa.DateTime, nullable=True),
        sa.Column("distance_in_km", sa.Float, nullable=False),
        sa.Column("car_type", sa.String(40), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "SCHEDULED",
                "CONFIRMED",
                "IN_PROGRESS",
                "COMPLETED",
                "CANCELLED",
                name="tripstatus",
            ),
            nullable=False,
        ),
        sa.Column("bill", sa.Float, nullable=False, server_default="0"),
        sa.Column("customer_rating", sa.Integer, nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime),
        sa.Column("updated_at", sa.DateTime),
    )
    op.create_index(
        "idx_trips_status_start", "trip_bookings", ["status", "from_date_time"]
    )
    op.create_index("idx_trips_customer", "trip_bookings", ["customer_id"])
    op.create_index("idx_trips_driver", "trip_bookings", ["driver_id"])


def downgrade() -> None:
    op.drop_table("trip_bookings")
    op.drop_table("drivers")
    op.drop_table("cabs")
    op.drop_table("customers")
    op.execute("DROP TYPE IF EXISTS tripstatus")
