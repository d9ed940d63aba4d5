"""
Deals page (/deals).

Hotel deals are a regular listing over hotels that have at least one rate,
cheapest first. Transport deals are a fixed top-N of the cheapest upcoming
routes.
"""

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from everjourney.core.monitoring import track_performance
from everjourney.db.models import utcnow
from everjourney.services.hotel_listing import (
    ACTIVE_HOTEL,
    HOTEL_COLUMNS,
    HOTEL_FROM,
    project_hotel,
)
from everjourney.services.listing import (
    FieldKind,
    FilterField,
    ListingQuery,
    ListingResult,
    ListingSpec,
    Predicate,
    SortOption,
    to_number,
)
from everjourney.services.transport_listing import to_datetime

logger = logging.getLogger(__name__)

TRANSPORT_DEALS_LIMIT = 6

HAS_RATE = Predicate(
    "EXISTS (SELECT 1 FROM room_type_rates rtr "
    "JOIN room_types rt ON rt.id = rtr.room_type_id WHERE rt.hotel_id = h.id)"
)

DEAL_LISTING = ListingSpec(
    name="deals",
    from_sql=HOTEL_FROM,
    columns=HOTEL_COLUMNS,
    count_key="h.id",
    fixed=(ACTIVE_HOTEL, HAS_RATE),
    fields=(
        FilterField("city", FieldKind.INTEGER, predicate="h.city_id = :city"),
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
    ),
    sorts={
        "cheapest": SortOption("min_price ASC NULLS LAST, h.id ASC"),
        "rating_desc": SortOption("COALESCE(h.star_rating, 0) DESC, min_price ASC NULLS LAST, h.id ASC"),
        "name_asc": SortOption("h.name ASC, h.id ASC"),
    },
    default_sort="cheapest",
    project=project_hotel,
)

TRANSPORT_DEALS_SQL = text(
    "SELECT tr.id AS route_id, tp.name AS provider_name, "
    "COALESCE(fc.name, '') AS from_city, COALESCE(tc.name, '') AS to_city, "
    "tr.departure_datetime AS departure_datetime, MIN(ts.price) AS min_price "
    "FROM transport_routes tr "
    "JOIN transport_providers tp ON tp.id = tr.provider_id "
    "JOIN transport_seats ts ON ts.route_id = tr.id "
    "LEFT JOIN cities fc ON fc.id = tr.from_city_id "
    "LEFT JOIN cities tc ON tc.id = tr.to_city_id "
    "WHERE tr.departure_datetime >= :now "
    "GROUP BY tr.id, tp.name, fc.name, tc.name, tr.departure_datetime "
    "ORDER BY MIN(ts.price) ASC, tr.departure_datetime ASC, tr.id ASC "
    "LIMIT :limit"
).bindparams(bindparam("now", type_=DateTime()))


@track_performance("deals.search")
def search_deals(db: Session, raw: Mapping[str, Any]) -> ListingResult:
    return ListingQuery(db, DEAL_LISTING).fetch(raw)


def transport_deals(db: Session, limit: int = TRANSPORT_DEALS_LIMIT) -> List[Dict[str, Any]]:
    """Cheapest upcoming routes; an empty list if the query fails."""
    try:
        rows = db.execute(TRANSPORT_DEALS_SQL, {"now": utcnow(), "limit": limit}).mappings().all()
    except SQLAlchemyError as e:
        logger.warning(f"Transport deals query failed: {e}")
        db.rollback()
        return []

    deals = []
    for row in rows:
        departure = to_datetime(row["departure_datetime"])
        deals.append({
            "route_id": row["route_id"],
            "provider_name": row["provider_name"] or "",
            "from_city": row["from_city"] or "Origin",
            "to_city": row["to_city"] or "Destination",
            "min_price": to_number(row["min_price"], 0),
            "departure": departure.strftime("%d %b %Y, %H:%M") if departure else "",
        })
    return deals
