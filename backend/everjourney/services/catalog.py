"""
Read-side page models: home page sections, hotel and room detail pages,
and the option lists that feed the listing filter forms.

Every section is loaded through ``read_section``; one failing query empties
that section and the page still renders.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import text
from sqlalchemy.orm import Session

from everjourney.db.repositories import (
    HotelRepository,
    LookupRepository,
    PackageRepository,
    TransportRepository,
    read_section,
)
from everjourney.services.hotel_listing import (
    ACTIVE_HOTEL,
    HOTEL_COLUMNS,
    HOTEL_FROM,
    HOTEL_PLACEHOLDER,
    project_hotel,
)
from everjourney.services.listing import to_number
from everjourney.services.package_listing import PACKAGE_COLUMNS, PACKAGE_FROM, project_home_package
from everjourney.services.transport_listing import to_datetime

logger = logging.getLogger(__name__)

DESTINATION_PLACEHOLDER = "/static/img/destination-placeholder.svg"
HOME_SECTION_SIZE = 6

FEATURED_HOTELS_SQL = text(
    f"SELECT {HOTEL_COLUMNS} FROM {HOTEL_FROM} WHERE {ACTIVE_HOTEL.sql} "
    "ORDER BY COALESCE(h.star_rating, 0) DESC, h.created_at DESC, h.id DESC LIMIT :limit"
)

HOME_PACKAGES_SQL = text(
    f"SELECT {PACKAGE_COLUMNS} FROM {PACKAGE_FROM} WHERE p.is_active = :active "
    "ORDER BY p.created_at DESC, p.id DESC LIMIT :limit"
)


# ---------------------------------------------------------------------------
# Home
# ---------------------------------------------------------------------------

def home_page(db: Session) -> Dict[str, Any]:
    lookups = LookupRepository(db)
    hotels_repo = HotelRepository(db)

    def destinations() -> List[Dict[str, Any]]:
        return [
            {"id": row.id, "city": row.city, "stays": int(row.stays), "img": DESTINATION_PLACEHOLDER}
            for row in lookups.top_destinations(HOME_SECTION_SIZE)
        ]

    def featured_hotels() -> List[Dict[str, Any]]:
        rows = db.execute(FEATURED_HOTELS_SQL, {"limit": HOME_SECTION_SIZE}).mappings().all()
        hotels = [project_hotel(row) for row in rows]
        names = hotels_repo.amenity_names([h["hotel_id"] for h in hotels])
        for hotel in hotels:
            hotel["amenities"] = names.get(hotel["hotel_id"], [])
        return hotels

    def packages() -> List[Dict[str, Any]]:
        rows = db.execute(HOME_PACKAGES_SQL, {"active": True, "limit": HOME_SECTION_SIZE}).mappings().all()
        return [project_home_package(row) for row in rows]

    return {
        "destinations": read_section(db, "home destinations", destinations, []),
        "hotels": read_section(db, "home featured hotels", featured_hotels, []),
        "packages": read_section(db, "home packages", packages, []),
    }


# ---------------------------------------------------------------------------
# Filter options
# ---------------------------------------------------------------------------

def hotel_filter_options(db: Session) -> Dict[str, Any]:
    lookups = LookupRepository(db)
    return {
        "amenities": read_section(db, "amenity list", lookups.amenities, []),
        "cities": read_section(db, "city list", lookups.cities, []),
        "room_type_list": read_section(db, "room type names", lookups.room_type_names, []),
        "max_price": read_section(db, "max room rate", lookups.max_rate_price, 50000.0),
    }


def package_filter_options(db: Session) -> Dict[str, Any]:
    return {
        "destinations": read_section(db, "package destinations", PackageRepository(db).destinations, []),
        "max_price": read_section(db, "max package price", LookupRepository(db).max_package_price, 100000.0),
    }


def transport_filter_options(db: Session) -> Dict[str, Any]:
    lookups = LookupRepository(db)
    return {
        "cities": read_section(db, "city list", lookups.cities, []),
        "transport_types": read_section(db, "transport types", lookups.transport_types, []),
        "seat_classes": read_section(db, "seat classes", lookups.seat_classes, []),
        "max_price": read_section(db, "max seat price", lookups.max_seat_price, 5000.0),
    }


def deal_filter_options(db: Session) -> Dict[str, Any]:
    return {"cities": read_section(db, "city list", LookupRepository(db).cities, [])}


# ---------------------------------------------------------------------------
# Hotel detail
# ---------------------------------------------------------------------------

def hotel_detail(db: Session, hotel_id: int) -> Optional[Dict[str, Any]]:
    """Everything the hotel page shows, or None when the hotel does not exist."""
    repo = HotelRepository(db)
    found = repo.get(hotel_id)
    if found is None:
        return None
    hotel, city, country = found

    images = read_section(db, "hotel images", lambda: repo.images(hotel_id), [])
    room_types = read_section(db, "room types", lambda: repo.room_types(hotel_id), [])
    rooms = read_section(db, "rooms", lambda: repo.rooms(hotel_id), [])
    rates = read_section(db, "room rates", lambda: repo.rates([rt.id for rt in room_types]), {})
    room_images = read_section(db, "room images", lambda: repo.room_images([r.id for r in rooms]), {})
    cover = images[0].url if images else HOTEL_PLACEHOLDER

    room_type_cards = []
    for rt in room_types:
        sample = next((r for r in rooms if r.room_type_id == rt.id), None)
        rt_rates = rates.get(rt.id, [])
        room_type_cards.append({
            "id": rt.id,
            "name": rt.name,
            "description": rt.description or "",
            "max_guests": rt.max_guests,
            "area_sq_m": rt.area_sq_m,
            "rates": rt_rates,
            "from_price": min((to_number(r.price, 0) for r in rt_rates), default=None),
            "images": (room_images.get(sample.id) if sample else None) or [cover],
        })

    def transport_suggestions() -> List[Dict[str, Any]]:
        if not hotel.city_id:
            return []
        suggestions = []
        for row in TransportRepository(db).routes_touching_city(hotel.city_id):
            departure = to_datetime(row.departure_datetime)
            suggestions.append({
                "route_id": row.route_id,
                "provider_name": row.provider_name,
                "price": to_number(row.min_price),
                "departure": departure.strftime("%d %b %Y, %H:%M") if departure else "",
            })
        return suggestions

    return {
        "hotel": hotel,
        "city": city,
        "country": country,
        "images": images,
        "cover_image": cover,
        "room_types": room_type_cards,
        "amenities": read_section(db, "hotel amenities", lambda: repo.amenities(hotel_id), []),
        "reviews": read_section(db, "hotel reviews", lambda: repo.reviews(hotel_id), []),
        "avg_rating": read_section(db, "hotel rating", lambda: repo.avg_rating(hotel_id), None),
        "min_price": read_section(db, "hotel min price", lambda: repo.min_price(hotel_id), None),
        "transport_suggestions": read_section(db, "transport suggestions", transport_suggestions, []),
    }


# ---------------------------------------------------------------------------
# Room type detail
# ---------------------------------------------------------------------------

def room_detail(db: Session, hotel_id: int, room_type_id: int) -> Optional[Dict[str, Any]]:
    """Room type page; None when the hotel or the room type (for that hotel) is missing."""
    repo = HotelRepository(db)
    found = repo.get(hotel_id)
    if found is None:
        return None
    room_type = repo.room_type(hotel_id, room_type_id)
    if room_type is None:
        return None
    hotel, city, country = found

    rooms = read_section(db, "rooms", lambda: repo.rooms(hotel_id, room_type_id), [])
    by_room = read_section(db, "room images", lambda: repo.room_images([r.id for r in rooms]), {})

    # Flatten and de-duplicate; hotel images are the fallback gallery
    seen = set()
    room_images = []
    for room in rooms:
        for url in by_room.get(room.id, []):
            if url and url not in seen:
                seen.add(url)
                room_images.append(url)

    hotel_images = read_section(db, "hotel images", lambda: repo.images(hotel_id), [])
    if not room_images:
        room_images = [img.url for img in hotel_images] or [HOTEL_PLACEHOLDER]

    return {
        "hotel": hotel,
        "city": city,
        "country": country,
        "room_type": room_type,
        "room_images": room_images,
        "rates": read_section(db, "room rates", lambda: repo.rates([room_type_id]).get(room_type_id, []), []),
        "amenities": read_section(db, "room amenities", lambda: repo.room_type_amenities(room_type_id), []),
        "rooms_available": sum(1 for r in rooms if r.status == "available"),
    }
