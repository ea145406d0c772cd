"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``profiles``         -- accounts: customers, drivers and admins
* ``vehicles``         -- fleet entries referenced by bookings
* ``bookings``         -- reserved rides; stops, gratuity and status history
                          embedded as JSON
* ``pricing_settings`` -- singleton row (``key = 'admin_settings'``)

Indexes
-------
* **B-Tree** on ``status``, ``customer_email``, ``driver_id``, ``pickup_time``
  for the admin and driver look-ups.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import (
    BookingStatus,
    DriverStatus,
    PaymentStatus,
    ProfileRole,
    VehicleStatus,
)


def _values(enum_cls):
    return [member.value for member in enum_cls]


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    phone = Column(String(40), nullable=True)
    role = Column(
        Enum(ProfileRole, values_callable=_values),
        default=ProfileRole.CUSTOMER,
        nullable=False,
    )
    driver_status = Column(
        Enum(DriverStatus, values_callable=_values),
        default=DriverStatus.OFFLINE,
        nullable=False,
    )
    api_token = Column(String(64), unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_profiles_role", "role"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    make = Column(String(80), nullable=False)
    model = Column(String(80), nullable=False)
    year = Column(Integer, nullable=True)
    capacity = Column(Integer, nullable=False)
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    license_plate = Column(String(20), nullable=True)
    vin = Column(String(32), nullable=True)
    status = Column(
        Enum(VehicleStatus, values_callable=_values),
        default=VehicleStatus.ACTIVE,
        nullable=False,
    )
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_vehicles_status", "status"),)


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    customer_name = Column(String(240), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(40), nullable=False)

    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)
    vehicle_name = Column(String(120), nullable=True)
    driver_id = Column(Integer, ForeignKey("profiles.id"), nullable=True)
    package_id = Column(String(64), nullable=True)
    package_name = Column(String(120), nullable=False, default="Custom Ride")

    pickup_location = Column(String(500), nullable=False)
    dropoff_location = Column(String(500), nullable=False)
    pickup_time = Column(DateTime(timezone=True), nullable=False)
    dropoff_time = Column(DateTime(timezone=True), nullable=True)
    hours = Column(Float, nullable=True)
    passengers = Column(Integer, default=1, nullable=False)
    car_seats = Column(Integer, default=0, nullable=False)
    booster_seats = Column(Integer, default=0, nullable=False)
    stops = Column(JSON, nullable=False, default=list)

    price = Column(Numeric(10, 2), nullable=False)
    gratuity = Column(JSON, nullable=False, default=dict)
    total_amount = Column(Numeric(10, 2), nullable=False)

    status = Column(
        Enum(BookingStatus, values_callable=_values),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    payment_status = Column(
        Enum(PaymentStatus, values_callable=_values),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_provider = Column(String(32), nullable=True)
    transaction_id = Column(String(128), nullable=True)

    notes = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    access_token = Column(String(64), unique=True, nullable=True)
    status_history = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_email", "customer_email"),
        Index("idx_bookings_customer", "customer_id"),
        Index("idx_bookings_driver", "driver_id"),
        Index("idx_bookings_pickup_time", "pickup_time"),
    )


class PricingSettingsModel(Base):
    __tablename__ = "pricing_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(64), unique=True, nullable=False, default="admin_settings")
    bookings_enabled = Column(Boolean, default=True, nullable=False)
    distance_fee_enabled = Column(Boolean, default=False, nullable=False)
    distance_threshold = Column(Float, default=40.0, nullable=False)
    distance_fee = Column(Float, default=49.0, nullable=False)
    per_mile_fee_enabled = Column(Boolean, default=False, nullable=False)
    per_mile_fee = Column(Float, default=2.0, nullable=False)
    min_fee = Column(Float, default=0.0, nullable=False)
    max_fee = Column(Float, default=1000.0, nullable=True)
    stop_price = Column(Float, default=25.0, nullable=False)
    car_seat_price = Column(Float, default=15.0, nullable=False)
    booster_seat_price = Column(Float, default=10.0, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
