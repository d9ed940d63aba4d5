"""
Hotel listing (/stays/hotels).
Active hotels with their cheapest rate and a cover image.
"""

from typing import Any, Dict, Mapping

from sqlalchemy.orm import Session

from everjourney.core.monitoring import track_performance
from everjourney.services.listing import (
    FieldKind,
    FilterField,
    ListingQuery,
    ListingResult,
    ListingSpec,
    Predicate,
    SortOption,
    like_pattern,
    to_number,
)

HOTEL_PLACEHOLDER = "/static/img/hotel-placeholder.svg"

ACTIVE_HOTEL = Predicate("COALESCE(h.status, 'active') = 'active'")

# Cheapest rate across all room types of the hotel; never stored.
MIN_PRICE_SQL = (
    "(SELECT MIN(rtr.price) FROM room_type_rates rtr "
    "JOIN room_types rt2 ON rt2.id = rtr.room_type_id "
    "WHERE rt2.hotel_id = h.id)"
)

COVER_IMAGE_SQL = (
    "COALESCE("
    "(SELECT hi.url FROM hotel_images hi WHERE hi.hotel_id = h.id "
    "ORDER BY hi.is_primary DESC, hi.sort_order ASC LIMIT 1), "
    "(SELECT ri.url FROM rooms r2 JOIN room_images ri ON ri.room_id = r2.id "
    "WHERE r2.hotel_id = h.id ORDER BY ri.sort_order ASC NULLS LAST LIMIT 1))"
)

HOTEL_FROM = (
    "hotels h "
    "LEFT JOIN cities c ON c.id = h.city_id "
    "LEFT JOIN countries cnt ON cnt.id = c.country_id"
)

HOTEL_COLUMNS = (
    "h.id AS hotel_id, h.name AS name, "
    "COALESCE(c.name, '') AS city, COALESCE(cnt.name, '') AS country, "
    "h.star_rating AS star_rating, "
    f"{MIN_PRICE_SQL} AS min_price, "
    f"{COVER_IMAGE_SQL} AS image_url"
)


def amenity_code(label: str) -> str:
    """'Free WiFi' -> 'free_wifi'."""
    return "_".join(label.lower().split())


def project_hotel(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "hotel_id": row["hotel_id"],
        "name": row["name"] or "",
        "city": row["city"] or "",
        "country": row["country"] or "",
        "star_rating": to_number(row["star_rating"], 0),
        "min_price": to_number(row["min_price"], 0),
        "image": row["image_url"] or HOTEL_PLACEHOLDER,
    }


HOTEL_LISTING = ListingSpec(
    name="hotels",
    from_sql=HOTEL_FROM,
    columns=HOTEL_COLUMNS,
    count_key="h.id",
    fixed=(ACTIVE_HOTEL,),
    fields=(
        FilterField(
            "q",
            predicate="(LOWER(h.name) LIKE :q OR LOWER(COALESCE(c.name, '')) LIKE :q)",
            transform=like_pattern,
        ),
        FilterField("city", FieldKind.INTEGER, predicate="h.city_id = :city"),
        FilterField("checkin", FieldKind.DATE),
        FilterField("checkout", FieldKind.DATE),
        FilterField("guests", FieldKind.INTEGER),
        FilterField(
            "price_max",
            FieldKind.NUMBER,
            predicate=(
                "EXISTS (SELECT 1 FROM room_type_rates rtr "
                "JOIN room_types rt ON rt.id = rtr.room_type_id "
                "WHERE rt.hotel_id = h.id AND rtr.price <= :price_max)"
            ),
        ),
        FilterField("stars", FieldKind.NUMBER, predicate="h.star_rating >= :stars"),
        FilterField(
            "room_type",
            predicate=(
                "EXISTS (SELECT 1 FROM room_types rt "
                "WHERE rt.hotel_id = h.id AND LOWER(rt.name) LIKE :room_type)"
            ),
            transform=like_pattern,
        ),
        FilterField(
            "amenities",
            FieldKind.LIST,
            predicate=(
                "EXISTS (SELECT 1 FROM hotel_amenities ha "
                "JOIN amenities a ON a.id = ha.amenity_id "
                "WHERE ha.hotel_id = h.id AND a.code IN :amenities)"
            ),
            transform=lambda codes: [amenity_code(c) for c in codes],
        ),
    ),
    sorts={
        "relevance": SortOption("h.name ASC, h.id ASC"),
        "price_asc": SortOption("min_price ASC NULLS LAST, h.id ASC"),
        "price_desc": SortOption("min_price DESC NULLS LAST, h.id ASC"),
        "rating_desc": SortOption("COALESCE(h.star_rating, 0) DESC, h.id ASC"),
    },
    default_sort="relevance",
    project=project_hotel,
)


@track_performance("hotels.search")
def search_hotels(db: Session, raw: Mapping[str, Any]) -> ListingResult:
    return ListingQuery(db, HOTEL_LISTING).fetch(raw)
