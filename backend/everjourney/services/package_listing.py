"""
Package listing (/packages/index, /package-list).
"""

from functools import partial
from typing import Any, Dict, Mapping

from sqlalchemy.orm import Session

from everjourney.core.monitoring import track_performance
from everjourney.services.listing import (
    FieldKind,
    FilterField,
    ListingQuery,
    ListingResult,
    ListingSpec,
    SortOption,
    like_pattern,
    to_int,
    to_number,
    truncate,
)

PACKAGE_PLACEHOLDER = "/static/img/package-placeholder.svg"
LISTING_DESCRIPTION_LIMIT = 220
HOME_DESCRIPTION_LIMIT = 200

PACKAGE_FROM = "packages p LEFT JOIN locations loc ON loc.id = p.dest_loc_id"

PACKAGE_COLUMNS = (
    "p.id AS id, p.title AS title, p.description AS description, "
    "p.base_price AS base_price, p.currency AS currency, p.nights AS nights, "
    "p.is_active AS is_active, COALESCE(loc.city, '') AS dest_city, "
    "(SELECT COUNT(*) FROM package_hotels ph WHERE ph.package_id = p.id) AS hotel_count, "
    "(SELECT COUNT(*) FROM package_inclusions pi WHERE pi.package_id = p.id) AS inclusion_count, "
    "(SELECT ri.url FROM package_hotels ph2 "
    "JOIN rooms r ON r.hotel_id = ph2.hotel_id "
    "JOIN room_images ri ON ri.room_id = r.id "
    "WHERE ph2.package_id = p.id "
    "ORDER BY ri.sort_order ASC NULLS LAST LIMIT 1) AS image_url"
)


def project_package(row: Mapping[str, Any], description_limit: int = LISTING_DESCRIPTION_LIMIT) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "title": row["title"] or "",
        "description": truncate(row["description"], description_limit),
        "base_price": to_number(row["base_price"], 0),
        "currency": row["currency"] or "INR",
        "nights": to_int(row["nights"], 0),
        "dest_city": row["dest_city"] or "",
        "hotel_count": to_int(row["hotel_count"], 0),
        "inclusion_count": to_int(row["inclusion_count"], 0),
        "image": row["image_url"] or PACKAGE_PLACEHOLDER,
    }


project_home_package = partial(project_package, description_limit=HOME_DESCRIPTION_LIMIT)


PACKAGE_LISTING = ListingSpec(
    name="packages",
    from_sql=PACKAGE_FROM,
    columns=PACKAGE_COLUMNS,
    count_key="p.id",
    fields=(
        FilterField(
            "q",
            predicate="(LOWER(p.title) LIKE :q OR LOWER(COALESCE(p.description, '')) LIKE :q)",
            transform=like_pattern,
        ),
        FilterField(
            "dest",
            predicate=(
                "EXISTS (SELECT 1 FROM locations dl "
                "WHERE dl.id = p.dest_loc_id AND LOWER(dl.city) LIKE :dest)"
            ),
            transform=like_pattern,
        ),
        FilterField("min_price", FieldKind.NUMBER, predicate="p.base_price >= :min_price"),
        FilterField("max_price", FieldKind.NUMBER, predicate="p.base_price <= :max_price"),
        FilterField("nights", FieldKind.INTEGER, predicate="p.nights = :nights"),
    ),
    sorts={
        # Title matches rank first when searching; newest first otherwise
        "relevance": SortOption(
            "p.created_at DESC, p.id DESC",
            when_filter="q",
            filtered_clause="CASE WHEN LOWER(p.title) LIKE :q THEN 0 ELSE 1 END, p.base_price ASC, p.id ASC",
        ),
        "price_asc": SortOption("p.base_price ASC NULLS LAST, p.id ASC"),
        "price_desc": SortOption("p.base_price DESC NULLS LAST, p.id ASC"),
    },
    default_sort="relevance",
    project=project_package,
)


@track_performance("packages.search")
def search_packages(db: Session, raw: Mapping[str, Any]) -> ListingResult:
    return ListingQuery(db, PACKAGE_LISTING).fetch(raw)
