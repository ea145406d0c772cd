"""Initial schema: profiles, vehicles, bookings and pricing settings.

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
    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column(
            "role",
            sa.Enum("customer", "driver", "admin", name="profilerole"),
            nullable=False,
            server_default="customer",
        ),
        sa.Column(
            "driver_status",
            sa.Enum("available", "busy", "offline", name="driverstatus"),
            nullable=False,
            server_default="offline",
        ),
        sa.Column("api_token", sa.String(64), unique=True, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_profiles_role", "profiles", ["role"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("make", sa.String(80), nullable=False),
        sa.Column("model", sa.String(80), nullable=False),
        sa.Column("year", sa.Integer, nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=False),
        sa.Column("license_plate", sa.String(20), nullable=True),
        sa.Column("vin", sa.String(32), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "maintenance", "inactive", name="vehiclestatus"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "customer_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=True
        ),
        sa.Column("customer_name", sa.String(240), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(40), nullable=False),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=True
        ),
        sa.Column("vehicle_name", sa.String(120), nullable=True),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=True
        ),
        sa.Column("package_id", sa.String(64), nullable=True),
        sa.Column(
            "package_name",
            sa.String(120),
            nullable=False,
            server_default="Custom Ride",
        ),
        sa.Column("pickup_location", sa.String(500), nullable=False),
        sa.Column("dropoff_location", sa.String(500), nullable=False),
        sa.Column("pickup_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dropoff_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hours", sa.Float, nullable=True),
        sa.Column("passengers", sa.Integer, nullable=False, server_default="1"),
        sa.Column("car_seats", sa.Integer, nullable=False, server_default="0"),
        sa.Column("booster_seats", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stops", sa.JSON, nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("gratuity", sa.JSON, nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "confirmed",
                "in_progress",
                "completed",
                "cancelled",
                name="bookingstatus",
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "payment_status",
            sa.Enum("paid", "pending", "failed", name="paymentstatus"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("payment_provider", sa.String(32), nullable=True),
        sa.Column("transaction_id", sa.String(128), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("access_token", sa.String(64), unique=True, nullable=True),
        sa.Column("status_history", sa.JSON, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_email", "bookings", ["customer_email"])
    op.create_index("idx_bookings_customer", "bookings", ["customer_id"])
    op.create_index("idx_bookings_driver", "bookings", ["driver_id"])
    op.create_index("idx_bookings_pickup_time", "bookings", ["pickup_time"])

    # ── pricing_settings ──────────────────────────────────────────────
    op.create_table(
        "pricing_settings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(64), unique=True, nullable=False),
        sa.Column("bookings_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "distance_fee_enabled", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("distance_threshold", sa.Float, nullable=False, server_default="40"),
        sa.Column("distance_fee", sa.Float, nullable=False, server_default="49"),
        sa.Column(
            "per_mile_fee_enabled", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("per_mile_fee", sa.Float, nullable=False, server_default="2"),
        sa.Column("min_fee", sa.Float, nullable=False, server_default="0"),
        sa.Column("max_fee", sa.Float, nullable=True, server_default="1000"),
        sa.Column("stop_price", sa.Float, nullable=False, server_default="25"),
        sa.Column("car_seat_price", sa.Float, nullable=False, server_default="15"),
        sa.Column("booster_seat_price", sa.Float, nullable=False, server_default="10"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("pricing_settings")
    op.drop_table("bookings")
    op.drop_table("vehicles")
    op.drop_table("profiles")
    op.execute("DROP TYPE IF EXISTS paymentstatus")
    op.execute("DROP TYPE IF EXISTS bookingstatus")
    op.execute("DROP TYPE IF EXISTS vehiclestatus")
    op.execute("DROP TYPE IF EXISTS driverstatus")
    op.execute("DROP TYPE IF EXISTS profilerole")
