"""
Transport listing (/transport).
Upcoming routes only, with seat aggregates and provider review stats.
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import DateTime, bindparam
from sqlalchemy.orm import Session

from everjourney.core.monitoring import track_performance
from everjourney.db.models import utcnow
from everjourney.services.listing import (
    FieldKind,
    FilterField,
    ListingQuery,
    ListingResult,
    ListingSpec,
    Predicate,
    SortOption,
    like_pattern,
    to_int,
    to_number,
)

TRANSPORT_PLACEHOLDER = "/static/img/transport-placeholder.svg"

TRANSPORT_FROM = (
    "transport_routes tr "
    "JOIN transport_providers tp ON tp.id = tr.provider_id "
    "LEFT JOIN cities fc ON fc.id = tr.from_city_id "
    "LEFT JOIN cities tc ON tc.id = tr.to_city_id"
)

TRANSPORT_COLUMNS = (
    "tr.id AS route_id, tp.id AS provider_id, tp.name AS provider_name, "
    "tp.provider_type AS provider_type, tp.vehicle_type AS vehicle_type, "
    "tp.registration_number AS registration_number, "
    "COALESCE(tr.transport_type, tp.provider_type) AS transport_type, "
    "fc.name AS from_city, tc.name AS to_city, "
    "tr.departure_datetime AS departure_datetime, tr.arrival_datetime AS arrival_datetime, "
    "(SELECT MIN(ts.price) FROM transport_seats ts WHERE ts.route_id = tr.id) AS min_price, "
    "(SELECT COALESCE(SUM(ts.available_seats), 0) FROM transport_seats ts WHERE ts.route_id = tr.id) AS seats_left, "
    "(SELECT ti.url FROM transport_images ti WHERE ti.route_id = tr.id "
    "ORDER BY ti.is_primary DESC, ti.sort_order ASC LIMIT 1) AS main_image, "
    "(SELECT AVG(rv.rating) FROM transport_reviews rv WHERE rv.provider_id = tp.id) AS avg_rating, "
    "(SELECT COUNT(*) FROM transport_reviews rv WHERE rv.provider_id = tp.id) AS review_count"
)


def upcoming_departures() -> Predicate:
    """Departure not yet in the past; evaluated per request."""
    return Predicate(
        "tr.departure_datetime >= :now",
        params={"now": utcnow()},
        binds=(bindparam("now", type_=DateTime()),),
    )


def to_datetime(value: Any) -> Optional[datetime]:
    """Raw driver value -> datetime (SQLite hands back ISO strings)."""
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def duration_label(departure: Optional[datetime], arrival: Optional[datetime]) -> str:
    if not departure or not arrival or arrival < departure:
        return ""
    minutes = int((arrival - departure).total_seconds() // 60)
    return f"{minutes // 60:02d}h {minutes % 60:02d}m"


def project_route(row: Mapping[str, Any]) -> Dict[str, Any]:
    departure = to_datetime(row["departure_datetime"])
    arrival = to_datetime(row["arrival_datetime"])
    avg_rating = to_number(row["avg_rating"])
    return {
        "route_id": row["route_id"],
        "provider_id": row["provider_id"],
        "provider_name": row["provider_name"] or "",
        "provider_type": row["provider_type"] or "",
        "transport_type": row["transport_type"] or "",
        "vehicle_type": row["vehicle_type"] or "",
        "registration_number": row["registration_number"] or "",
        "from_city": row["from_city"] or "",
        "to_city": row["to_city"] or "",
        "departure_date": departure.date().isoformat() if departure else "",
        "departure_time": departure.strftime("%H:%M") if departure else "",
        "arrival_time": arrival.strftime("%H:%M") if arrival else "",
        "duration_label": duration_label(departure, arrival),
        "min_price": to_number(row["min_price"], 0),
        "seats_left": to_int(row["seats_left"]),
        "main_image": row["main_image"] or TRANSPORT_PLACEHOLDER,
        "avg_rating": round(avg_rating, 2) if avg_rating is not None else None,
        "review_count": to_int(row["review_count"], 0),
    }


TRANSPORT_LISTING = ListingSpec(
    name="transport",
    from_sql=TRANSPORT_FROM,
    columns=TRANSPORT_COLUMNS,
    count_key="tr.id",
    fixed=(upcoming_departures,),
    fields=(
        FilterField("from_city", FieldKind.INTEGER, predicate="tr.from_city_id = :from_city"),
        FilterField("to_city", FieldKind.INTEGER, predicate="tr.to_city_id = :to_city"),
        FilterField(
            "date",
            FieldKind.DATE,
            predicate="DATE(tr.departure_datetime) = :date",
            transform=lambda d: d.isoformat(),
        ),
        FilterField("passengers", FieldKind.INTEGER),
        FilterField("type", predicate="COALESCE(tr.transport_type, tp.provider_type) = :type"),
        FilterField(
            "seat_class",
            predicate=(
                "EXISTS (SELECT 1 FROM transport_seats ts "
                "WHERE ts.route_id = tr.id AND LOWER(ts.seat_class) LIKE :seat_class)"
            ),
            transform=like_pattern,
        ),
        FilterField(
            "price_max",
            FieldKind.NUMBER,
            predicate=(
                "EXISTS (SELECT 1 FROM transport_seats ts "
                "WHERE ts.route_id = tr.id AND ts.price <= :price_max)"
            ),
        ),
        FilterField("q", predicate="LOWER(tp.name) LIKE :q", transform=like_pattern),
    ),
    sorts={
        "soonest": SortOption("tr.departure_datetime ASC, tr.id ASC"),
        "cheapest": SortOption("min_price ASC NULLS LAST, tr.departure_datetime ASC, tr.id ASC"),
        "expensive": SortOption("min_price DESC NULLS LAST, tr.departure_datetime ASC, tr.id ASC"),
        "rating": SortOption("avg_rating DESC NULLS LAST, tr.departure_datetime ASC, tr.id ASC"),
    },
    default_sort="soonest",
    project=project_route,
)


@track_performance("transport.search")
def search_transport(db: Session, raw: Mapping[str, Any]) -> ListingResult:
    return ListingQuery(db, TRANSPORT_LISTING).fetch(raw)
