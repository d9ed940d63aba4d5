"""
Database models -- SQLAlchemy ORM definitions.
Relational schema for stays, packages, transport, accounts and bookings.
Compatible with both PostgreSQL and SQLite.

Uniqueness that the write flows rely on is declared here, not only checked
in code: users.email and rooms(hotel_id, room_number).
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------

class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False, unique=True)
    code = Column(String(3))


class City(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False, index=True)
    country_id = Column(Integer, ForeignKey("countries.id"))

    country = relationship("Country")


class Location(Base):
    """Free-form destination used by packages."""
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    city = Column(String(120), nullable=False)
    region = Column(String(120))
    country = Column(String(120))


# ---------------------------------------------------------------------------
# Amenities (shared by hotels and room types)
# ---------------------------------------------------------------------------

hotel_amenities = Table(
    "hotel_amenities",
    Base.metadata,
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), primary_key=True),
    Column("amenity_id", Integer, ForeignKey("amenities.id", ondelete="CASCADE"), primary_key=True),
)

room_type_amenities = Table(
    "room_type_amenities",
    Base.metadata,
    Column("room_type_id", Integer, ForeignKey("room_types.id", ondelete="CASCADE"), primary_key=True),
    Column("amenity_id", Integer, ForeignKey("amenities.id", ondelete="CASCADE"), primary_key=True),
)


class Amenity(Base):
    __tablename__ = "amenities"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    # Lower-case, underscore-joined slug used by the listing filters ("free_wifi")
    code = Column(String(120), nullable=False, unique=True, index=True)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # user | vendor | admin
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    profile = relationship("UserProfile", uselist=False, back_populates="user")
    addresses = relationship("UserAddress", back_populates="user")


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120))
    phone = Column(String(40))
    dob = Column(Date)
    gender = Column(String(20))
    profile_photo_url = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="profile")


class UserAddress(Base):
    __tablename__ = "user_addresses"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(60))
    line1 = Column(String(255))
    line2 = Column(String(255))
    city_id = Column(Integer, ForeignKey("cities.id"))
    city_name = Column(String(120))
    state = Column(String(120))
    country_id = Column(Integer, ForeignKey("countries.id"))
    postal_code = Column(String(20))
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="addresses")


# ---------------------------------------------------------------------------
# Stays
# ---------------------------------------------------------------------------

class Hotel(Base):
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    address_line1 = Column(String(255))
    address_line2 = Column(String(255))
    city_id = Column(Integer, ForeignKey("cities.id"), index=True)
    star_rating = Column(Float)
    latitude = Column(Float)
    longitude = Column(Float)
    phone = Column(String(40))
    email = Column(String(255))
    status = Column(String(20), default="active")
    property_type = Column(String(40))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    city = relationship("City")
    amenities = relationship("Amenity", secondary=hotel_amenities)
    room_types = relationship("RoomType", back_populates="hotel")


class HotelImage(Base):
    __tablename__ = "hotel_images"

    id = Column(Integer, primary_key=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    alt_text = Column(String(255))
    is_primary = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer)


class RoomType(Base):
    __tablename__ = "room_types"

    id = Column(Integer, primary_key=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text)
    max_guests = Column(Integer, nullable=False, default=2)
    area_sq_m = Column(Float)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    hotel = relationship("Hotel", back_populates="room_types")
    amenities = relationship("Amenity", secondary=room_type_amenities)
    rates = relationship("RoomTypeRate", back_populates="room_type")


class RoomTypeRate(Base):
    __tablename__ = "room_type_rates"

    id = Column(Integer, primary_key=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False, index=True)
    currency = Column(String(3), nullable=False, default="INR")
    price = Column(Numeric(12, 2), nullable=False)
    valid_from = Column(Date)
    valid_to = Column(Date)
    min_stay = Column(Integer, default=1)
    max_stay = Column(Integer)
    inventory = Column(Integer)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    room_type = relationship("RoomType", back_populates="rates")


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("hotel_id", "room_number", name="uq_rooms_hotel_room_number"),
    )

    id = Column(Integer, primary_key=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False, index=True)
    room_number = Column(String(20), nullable=False)
    floor = Column(Integer)
    status = Column(String(20), nullable=False, default="available")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class RoomImage(Base):
    __tablename__ = "room_images"

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    alt_text = Column(String(255))
    is_primary = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer)


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

package_hotels = Table(
    "package_hotels",
    Base.metadata,
    Column("package_id", Integer, ForeignKey("packages.id", ondelete="CASCADE"), primary_key=True),
    Column("hotel_id", Integer, ForeignKey("hotels.id", ondelete="CASCADE"), primary_key=True),
)


class Package(Base):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    base_price = Column(Numeric(12, 2))
    currency = Column(String(3), default="INR")
    nights = Column(Integer)
    dest_loc_id = Column(Integer, ForeignKey("locations.id"))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    destination = relationship("Location")
    hotels = relationship("Hotel", secondary=package_hotels)
    inclusions = relationship("PackageInclusion", back_populates="package")


class PackageInclusion(Base):
    __tablename__ = "package_inclusions"

    id = Column(Integer, primary_key=True)
    package_id = Column(Integer, ForeignKey("packages.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)

    package = relationship("Package", back_populates="inclusions")


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class TransportProvider(Base):
    __tablename__ = "transport_providers"

    id = Column(Integer, primary_key=True)
    owner_user_id = Column(Integer, ForeignKey("users.id"), index=True)
    name = Column(String(255), nullable=False, index=True)
    provider_type = Column(String(40), nullable=False, default="other")  # airline / bus / train / cab / other
    code = Column(String(40))
    contact_info = Column(JSON)
    registration_number = Column(String(80))
    vehicle_type = Column(String(80))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TransportRoute(Base):
    __tablename__ = "transport_routes"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("transport_providers.id", ondelete="CASCADE"), nullable=False, index=True)
    transport_type = Column(String(40))
    from_city_id = Column(Integer, ForeignKey("cities.id"), index=True)
    to_city_id = Column(Integer, ForeignKey("cities.id"), index=True)
    departure_datetime = Column(DateTime, nullable=False, index=True)
    arrival_datetime = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    provider = relationship("TransportProvider")
    seats = relationship("TransportSeat", back_populates="route")


class TransportSeat(Base):
    __tablename__ = "transport_seats"

    id = Column(Integer, primary_key=True)
    route_id = Column(Integer, ForeignKey("transport_routes.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_class = Column(String(40))
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="INR")
    available_seats = Column(Integer, nullable=False, default=0)

    route = relationship("TransportRoute", back_populates="seats")


class TransportImage(Base):
    __tablename__ = "transport_images"

    id = Column(Integer, primary_key=True)
    route_id = Column(Integer, ForeignKey("transport_routes.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer)


class TransportReview(Base):
    __tablename__ = "transport_reviews"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("transport_providers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"))
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Bookings, payments, reviews, invoices
# ---------------------------------------------------------------------------

class HotelBooking(Base):
    __tablename__ = "hotel_bookings"

    id = Column(Integer, primary_key=True)
    booking_ref = Column(String(20), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"))
    checkin_date = Column(Date, nullable=False)
    checkout_date = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default="pending")
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), default="INR")
    created_at = Column(DateTime, nullable=False, default=utcnow)


class TransportBooking(Base):
    __tablename__ = "transport_bookings"

    id = Column(Integer, primary_key=True)
    booking_ref = Column(String(20), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("transport_providers.id"), nullable=False, index=True)
    route_id = Column(Integer, ForeignKey("transport_routes.id"))
    passengers = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default="pending")
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    hotel_booking_id = Column(Integer, ForeignKey("hotel_bookings.id"), index=True)
    transport_booking_id = Column(Integer, ForeignKey("transport_bookings.id"), index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="INR")
    method = Column(String(40))
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)


class HotelReview(Base):
    __tablename__ = "hotel_reviews"

    id = Column(Integer, primary_key=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"))
    rating = Column(Integer, nullable=False)
    title = Column(String(255))
    comment = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(40), nullable=False, unique=True)
    issued_to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    issue_date = Column(Date, nullable=False)
    pdf_url = Column(Text)
