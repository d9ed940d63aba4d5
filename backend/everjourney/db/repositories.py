"""
Repository pattern for data access.
One repository per entity group, all sharing the request's Session.
Page sections read through ``read_section`` so a failing query empties that
section instead of failing the whole page.
"""

from typing import Any, Callable, Dict, List, Optional, TypeVar
from collections import defaultdict
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from everjourney.db.models import (
    Amenity,
    City,
    Country,
    Hotel,
    HotelBooking,
    HotelImage,
    HotelReview,
    Invoice,
    Location,
    Package,
    Payment,
    Room,
    RoomImage,
    RoomType,
    RoomTypeRate,
    TransportBooking,
    TransportProvider,
    TransportRoute,
    TransportSeat,
    User,
    UserAddress,
    UserProfile,
    hotel_amenities,
    room_type_amenities,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_section(db: Session, label: str, loader: Callable[[], T], default: T) -> T:
    """Run a read; on a database error log it, reset the session and return ``default``."""
    try:
        return loader()
    except SQLAlchemyError as e:
        logger.warning(f"{label} unavailable: {e}")
        db.rollback()
        return default


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str, role: Optional[str] = None) -> Optional[User]:
        query = self.db.query(User).filter(func.lower(User.email) == email.strip().lower())
        if role:
            query = query.filter(User.role == role)
        return query.first()

    def email_taken(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def profile(self, user_id: int) -> Optional[UserProfile]:
        return self.db.query(UserProfile).filter(UserProfile.user_id == user_id).first()

    def addresses(self, user_id: int) -> List[UserAddress]:
        return (
            self.db.query(UserAddress)
            .filter(UserAddress.user_id == user_id)
            .order_by(UserAddress.is_default.desc(), UserAddress.created_at.desc(), UserAddress.id.desc())
            .all()
        )

    def count(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    def recent(self, limit: int = 10) -> List[Any]:
        return (
            self.db.query(
                User.id,
                User.email,
                User.role,
                User.created_at,
                UserProfile.first_name,
                UserProfile.last_name,
            )
            .outerjoin(UserProfile, UserProfile.user_id == User.id)
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(limit)
            .all()
        )


# ---------------------------------------------------------------------------
# Lookups shared by filter forms
# ---------------------------------------------------------------------------

class LookupRepository:
    def __init__(self, db: Session):
        self.db = db

    def cities(self) -> List[City]:
        return self.db.query(City).order_by(City.name).all()

    def amenities(self) -> List[Amenity]:
        return self.db.query(Amenity).order_by(Amenity.name).all()

    def room_type_names(self) -> List[str]:
        rows = self.db.query(RoomType.name).distinct().order_by(RoomType.name).all()
        return [r[0] for r in rows]

    def max_rate_price(self, fallback: float = 50000) -> float:
        value = self.db.query(func.max(RoomTypeRate.price)).scalar()
        return float(value) if value else fallback

    def max_package_price(self, fallback: float = 100000) -> float:
        value = self.db.query(func.max(Package.base_price)).scalar()
        return float(value) if value else fallback

    def max_seat_price(self, fallback: float = 5000) -> float:
        value = self.db.query(func.max(TransportSeat.price)).scalar()
        return float(value) if value else fallback

    def transport_types(self) -> List[str]:
        kind = func.coalesce(TransportRoute.transport_type, TransportProvider.provider_type)
        rows = (
            self.db.query(kind)
            .join(TransportProvider, TransportProvider.id == TransportRoute.provider_id)
            .filter(kind.isnot(None))
            .distinct()
            .order_by(kind)
            .all()
        )
        return [r[0] for r in rows]

    def seat_classes(self) -> List[str]:
        rows = (
            self.db.query(TransportSeat.seat_class)
            .filter(TransportSeat.seat_class.isnot(None))
            .distinct()
            .order_by(TransportSeat.seat_class)
            .all()
        )
        return [r[0] for r in rows]

    def top_destinations(self, limit: int = 6) -> List[Any]:
        stays = func.count(Hotel.id).label("stays")
        return (
            self.db.query(City.id, City.name.label("city"), stays)
            .join(Hotel, Hotel.city_id == City.id)
            .group_by(City.id, City.name)
            .order_by(stays.desc(), City.name.asc())
            .limit(limit)
            .all()
        )


# ---------------------------------------------------------------------------
# Hotels, room types, rooms
# ---------------------------------------------------------------------------

class HotelRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, hotel_id: int) -> Optional[Any]:
        return (
            self.db.query(
                Hotel,
                func.coalesce(City.name, "").label("city"),
                func.coalesce(Country.name, "").label("country"),
            )
            .outerjoin(City, City.id == Hotel.city_id)
            .outerjoin(Country, Country.id == City.country_id)
            .filter(Hotel.id == hotel_id)
            .first()
        )

    def owned(self, hotel_id: int, owner_id: int) -> Optional[Hotel]:
        return (
            self.db.query(Hotel)
            .filter(Hotel.id == hotel_id, Hotel.owner_user_id == owner_id)
            .first()
        )

    def by_owner(self, owner_id: int, limit: int = 50) -> List[Any]:
        room_count = (
            self.db.query(func.count(Room.id))
            .filter(Room.hotel_id == Hotel.id)
            .correlate(Hotel)
            .scalar_subquery()
        )
        return (
            self.db.query(
                Hotel.id,
                Hotel.name,
                func.coalesce(City.name, "").label("city"),
                Hotel.star_rating,
                func.coalesce(Hotel.status, "active").label("status"),
                room_count.label("room_count"),
            )
            .outerjoin(City, City.id == Hotel.city_id)
            .filter(Hotel.owner_user_id == owner_id)
            .order_by(Hotel.created_at.desc(), Hotel.id.desc())
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(func.count(Hotel.id)).scalar() or 0

    def images(self, hotel_id: int, limit: int = 20) -> List[HotelImage]:
        return (
            self.db.query(HotelImage)
            .filter(HotelImage.hotel_id == hotel_id)
            .order_by(HotelImage.is_primary.desc(), HotelImage.sort_order.asc().nulls_last())
            .limit(limit)
            .all()
        )

    def amenities(self, hotel_id: int) -> List[Amenity]:
        return (
            self.db.query(Amenity)
            .join(hotel_amenities, hotel_amenities.c.amenity_id == Amenity.id)
            .filter(hotel_amenities.c.hotel_id == hotel_id)
            .order_by(Amenity.name)
            .all()
        )

    def amenity_names(self, hotel_ids: List[int], per_hotel: int = 4) -> Dict[int, List[str]]:
        """First few amenity labels per hotel, for cards."""
        if not hotel_ids:
            return {}
        rows = (
            self.db.query(hotel_amenities.c.hotel_id, Amenity.name)
            .join(Amenity, Amenity.id == hotel_amenities.c.amenity_id)
            .filter(hotel_amenities.c.hotel_id.in_(hotel_ids))
            .order_by(hotel_amenities.c.hotel_id, Amenity.name)
            .all()
        )
        grouped: Dict[int, List[str]] = defaultdict(list)
        for hotel_id, name in rows:
            if len(grouped[hotel_id]) < per_hotel:
                grouped[hotel_id].append(name.lower())
        return dict(grouped)

    def room_types(self, hotel_id: int) -> List[RoomType]:
        return (
            self.db.query(RoomType)
            .filter(RoomType.hotel_id == hotel_id)
            .order_by(RoomType.name, RoomType.id)
            .all()
        )

    def room_type(self, hotel_id: int, room_type_id: int) -> Optional[RoomType]:
        return (
            self.db.query(RoomType)
            .filter(RoomType.id == room_type_id, RoomType.hotel_id == hotel_id)
            .first()
        )

    def room_type_amenities(self, room_type_id: int) -> List[Amenity]:
        return (
            self.db.query(Amenity)
            .join(room_type_amenities, room_type_amenities.c.amenity_id == Amenity.id)
            .filter(room_type_amenities.c.room_type_id == room_type_id)
            .order_by(Amenity.name)
            .all()
        )

    def rates(self, room_type_ids: List[int]) -> Dict[int, List[RoomTypeRate]]:
        if not room_type_ids:
            return {}
        rows = (
            self.db.query(RoomTypeRate)
            .filter(RoomTypeRate.room_type_id.in_(room_type_ids))
            .order_by(RoomTypeRate.valid_from.asc().nulls_first(), RoomTypeRate.price.asc())
            .all()
        )
        grouped: Dict[int, List[RoomTypeRate]] = defaultdict(list)
        for rate in rows:
            grouped[rate.room_type_id].append(rate)
        return dict(grouped)

    def min_price(self, hotel_id: int) -> Optional[float]:
        value = (
            self.db.query(func.min(RoomTypeRate.price))
            .join(RoomType, RoomType.id == RoomTypeRate.room_type_id)
            .filter(RoomType.hotel_id == hotel_id)
            .scalar()
        )
        return float(value) if value is not None else None

    def rooms(self, hotel_id: int, room_type_id: Optional[int] = None, limit: int = 200) -> List[Room]:
        query = self.db.query(Room).filter(Room.hotel_id == hotel_id)
        if room_type_id is not None:
            query = query.filter(Room.room_type_id == room_type_id)
        return query.order_by(Room.floor, Room.room_number).limit(limit).all()

    def room_numbers(self, hotel_id: int) -> set:
        rows = self.db.query(Room.room_number).filter(Room.hotel_id == hotel_id).all()
        return {str(r[0]) for r in rows}

    def rooms_by_hotel(self, hotel_ids: List[int]) -> Dict[int, List[Any]]:
        if not hotel_ids:
            return {}
        rows = (
            self.db.query(
                Room.hotel_id,
                Room.room_number,
                Room.floor,
                Room.status,
                RoomType.name.label("room_type_name"),
            )
            .outerjoin(RoomType, RoomType.id == Room.room_type_id)
            .filter(Room.hotel_id.in_(hotel_ids))
            .order_by(Room.hotel_id, Room.room_number)
            .all()
        )
        grouped: Dict[int, List[Any]] = defaultdict(list)
        for row in rows:
            grouped[row.hotel_id].append(row)
        return dict(grouped)

    def room_images(self, room_ids: List[int]) -> Dict[int, List[str]]:
        if not room_ids:
            return {}
        rows = (
            self.db.query(RoomImage)
            .filter(RoomImage.room_id.in_(room_ids))
            .order_by(RoomImage.is_primary.desc(), RoomImage.sort_order.asc().nulls_last())
            .all()
        )
        grouped: Dict[int, List[str]] = defaultdict(list)
        for img in rows:
            grouped[img.room_id].append(img.url)
        return dict(grouped)

    def reviews(self, hotel_id: int, limit: int = 50) -> List[Any]:
        return (
            self.db.query(
                HotelReview.id,
                HotelReview.rating,
                HotelReview.title,
                HotelReview.comment,
                HotelReview.created_at,
                func.coalesce(UserProfile.first_name, User.email, "Guest").label("user_name"),
            )
            .outerjoin(User, User.id == HotelReview.user_id)
            .outerjoin(UserProfile, UserProfile.user_id == User.id)
            .filter(HotelReview.hotel_id == hotel_id)
            .order_by(HotelReview.created_at.desc(), HotelReview.id.desc())
            .limit(limit)
            .all()
        )

    def avg_rating(self, hotel_id: int) -> Optional[float]:
        value = self.db.query(func.avg(HotelReview.rating)).filter(HotelReview.hotel_id == hotel_id).scalar()
        return round(float(value), 2) if value is not None else None


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

class PackageRepository:
    def __init__(self, db: Session):
        self.db = db

    def destinations(self) -> List[str]:
        rows = self.db.query(Location.city).distinct().order_by(Location.city).all()
        return [r[0] for r in rows]


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class TransportRepository:
    def __init__(self, db: Session):
        self.db = db

    def providers_by_owner(self, owner_id: int, limit: int = 20) -> List[TransportProvider]:
        return (
            self.db.query(TransportProvider)
            .filter(TransportProvider.owner_user_id == owner_id)
            .order_by(TransportProvider.created_at.desc(), TransportProvider.id.desc())
            .limit(limit)
            .all()
        )

    def routes_for_providers(self, provider_ids: List[int], limit: int = 40) -> List[Any]:
        if not provider_ids:
            return []
        from_city = City.__table__.alias("fc")
        to_city = City.__table__.alias("tc")
        return (
            self.db.query(
                TransportRoute.id,
                TransportRoute.provider_id,
                TransportRoute.transport_type,
                TransportRoute.departure_datetime,
                TransportRoute.arrival_datetime,
                func.coalesce(from_city.c.name, "").label("from_city"),
                func.coalesce(to_city.c.name, "").label("to_city"),
            )
            .outerjoin(from_city, from_city.c.id == TransportRoute.from_city_id)
            .outerjoin(to_city, to_city.c.id == TransportRoute.to_city_id)
            .filter(TransportRoute.provider_id.in_(provider_ids))
            .order_by(TransportRoute.departure_datetime.asc())
            .limit(limit)
            .all()
        )

    def routes_touching_city(self, city_id: int, limit: int = 5) -> List[Any]:
        min_price = (
            self.db.query(func.min(TransportSeat.price))
            .filter(TransportSeat.route_id == TransportRoute.id)
            .correlate(TransportRoute)
            .scalar_subquery()
        )
        return (
            self.db.query(
                TransportRoute.id.label("route_id"),
                TransportProvider.name.label("provider_name"),
                TransportRoute.departure_datetime,
                TransportRoute.arrival_datetime,
                min_price.label("min_price"),
            )
            .join(TransportProvider, TransportProvider.id == TransportRoute.provider_id)
            .filter((TransportRoute.from_city_id == city_id) | (TransportRoute.to_city_id == city_id))
            .order_by(TransportRoute.departure_datetime.asc())
            .limit(limit)
            .all()
        )


# ---------------------------------------------------------------------------
# Bookings, payments, reviews, invoices
# ---------------------------------------------------------------------------

class BookingRepository:
    def __init__(self, db: Session):
        self.db = db

    # -- customer side --

    def hotel_bookings_for_user(self, user_id: int, limit: int = 12) -> List[Any]:
        return (
            self.db.query(
                HotelBooking.id,
                HotelBooking.booking_ref,
                HotelBooking.hotel_id,
                HotelBooking.checkin_date,
                HotelBooking.checkout_date,
                HotelBooking.status,
                HotelBooking.total_amount,
                HotelBooking.created_at,
                Hotel.name.label("hotel_name"),
            )
            .outerjoin(Hotel, Hotel.id == HotelBooking.hotel_id)
            .filter(HotelBooking.user_id == user_id)
            .order_by(HotelBooking.created_at.desc(), HotelBooking.id.desc())
            .limit(limit)
            .all()
        )

    def transport_bookings_for_user(self, user_id: int, limit: int = 12) -> List[Any]:
        return (
            self.db.query(
                TransportBooking.id,
                TransportBooking.booking_ref,
                TransportBooking.provider_id,
                TransportProvider.name.label("provider_name"),
                TransportBooking.status,
                TransportBooking.total_amount,
                TransportBooking.created_at,
            )
            .outerjoin(TransportProvider, TransportProvider.id == TransportBooking.provider_id)
            .filter(TransportBooking.user_id == user_id)
            .order_by(TransportBooking.created_at.desc(), TransportBooking.id.desc())
            .limit(limit)
            .all()
        )

    def reviews_by_user(self, user_id: int, limit: int = 20) -> List[Any]:
        return (
            self.db.query(
                HotelReview.id,
                HotelReview.hotel_id,
                HotelReview.rating,
                HotelReview.title,
                HotelReview.comment,
                HotelReview.created_at,
                Hotel.name.label("hotel_name"),
            )
            .outerjoin(Hotel, Hotel.id == HotelReview.hotel_id)
            .filter(HotelReview.user_id == user_id)
            .order_by(HotelReview.created_at.desc())
            .limit(limit)
            .all()
        )

    def invoices_for_user(self, user_id: int, limit: int = 12) -> List[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.issued_to_user_id == user_id)
            .order_by(Invoice.issue_date.desc())
            .limit(limit)
            .all()
        )

    # -- hotel vendor side --

    def for_hotels(self, hotel_ids: List[int], limit: int = 40) -> List[Any]:
        if not hotel_ids:
            return []
        guest_name = func.coalesce(UserProfile.first_name, User.email, "Guest")
        return (
            self.db.query(
                HotelBooking.id,
                HotelBooking.booking_ref,
                HotelBooking.user_id,
                HotelBooking.status,
                HotelBooking.total_amount,
                HotelBooking.created_at,
                User.email.label("user_email"),
                guest_name.label("guest_name"),
            )
            .outerjoin(User, User.id == HotelBooking.user_id)
            .outerjoin(UserProfile, UserProfile.user_id == HotelBooking.user_id)
            .filter(HotelBooking.hotel_id.in_(hotel_ids))
            .order_by(HotelBooking.created_at.desc(), HotelBooking.id.desc())
            .limit(limit)
            .all()
        )

    def hotel_stats(self, hotel_ids: List[int]) -> Dict[str, Any]:
        if not hotel_ids:
            return {"total_bookings": 0, "total_revenue": 0.0}
        count, revenue = (
            self.db.query(func.count(HotelBooking.id), func.coalesce(func.sum(HotelBooking.total_amount), 0))
            .filter(HotelBooking.hotel_id.in_(hotel_ids))
            .one()
        )
        return {"total_bookings": int(count or 0), "total_revenue": float(revenue or 0)}

    def hotel_payments(self, hotel_ids: List[int], limit: int = 8) -> List[Payment]:
        if not hotel_ids:
            return []
        booking_ids = self.db.query(HotelBooking.id).filter(HotelBooking.hotel_id.in_(hotel_ids))
        return (
            self.db.query(Payment)
            .filter(Payment.hotel_booking_id.in_(booking_ids.scalar_subquery()))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
            .all()
        )

    # -- travel vendor side --

    def for_providers(self, provider_ids: List[int], limit: int = 40) -> List[Any]:
        if not provider_ids:
            return []
        return (
            self.db.query(
                TransportBooking.id,
                TransportBooking.booking_ref,
                TransportBooking.user_id,
                TransportBooking.status,
                TransportBooking.total_amount,
                TransportBooking.created_at,
                User.email.label("user_email"),
            )
            .outerjoin(User, User.id == TransportBooking.user_id)
            .filter(TransportBooking.provider_id.in_(provider_ids))
            .order_by(TransportBooking.created_at.desc(), TransportBooking.id.desc())
            .limit(limit)
            .all()
        )

    def provider_stats(self, provider_ids: List[int]) -> Dict[str, Any]:
        if not provider_ids:
            return {"total_bookings": 0, "total_revenue": 0.0}
        count, revenue = (
            self.db.query(func.count(TransportBooking.id), func.coalesce(func.sum(TransportBooking.total_amount), 0))
            .filter(TransportBooking.provider_id.in_(provider_ids))
            .one()
        )
        return {"total_bookings": int(count or 0), "total_revenue": float(revenue or 0)}

    def provider_payments(self, provider_ids: List[int], limit: int = 8) -> List[Payment]:
        if not provider_ids:
            return []
        booking_ids = self.db.query(TransportBooking.id).filter(TransportBooking.provider_id.in_(provider_ids))
        return (
            self.db.query(Payment)
            .filter(Payment.transport_booking_id.in_(booking_ids.scalar_subquery()))
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
            .all()
        )

    # -- platform --

    def revenue(self) -> float:
        return float(self.db.query(func.coalesce(func.sum(Payment.amount), 0)).scalar() or 0)

    def count_all(self) -> int:
        hotel = self.db.query(func.count(HotelBooking.id)).scalar() or 0
        transport = self.db.query(func.count(TransportBooking.id)).scalar() or 0
        return int(hotel) + int(transport)
