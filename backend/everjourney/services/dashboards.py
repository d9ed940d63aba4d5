"""
Signed-in dashboards: hotel and travel vendor dashboards, the customer
profile page and the admin overview. Sections degrade independently.
"""

from typing import Any, Dict, List
import logging

from sqlalchemy.orm import Session

from everjourney.core.security import VENDOR_HOTEL, VENDOR_TRAVEL
from everjourney.db.repositories import (
    BookingRepository,
    HotelRepository,
    TransportRepository,
    UserRepository,
    read_section,
)
from everjourney.services.transport_listing import to_datetime

logger = logging.getLogger(__name__)

PROFILE_BOOKINGS_SHOWN = 12
EMPTY_STATS = {"total_bookings": 0, "total_revenue": 0.0}


def _sort_key(item: Dict[str, Any]):
    created = to_datetime(item.get("created_at"))
    return (created is not None, created.isoformat() if created else "")


def vendor_dashboard(db: Session, user: Dict[str, Any]) -> Dict[str, Any]:
    vendor_type = user.get("vendor_type") or VENDOR_HOTEL
    users = UserRepository(db)
    context: Dict[str, Any] = {
        "vendor_type": vendor_type,
        "profile": read_section(db, "vendor profile", lambda: users.profile(user["id"]), None),
    }
    if vendor_type == VENDOR_TRAVEL:
        context.update(_travel_sections(db, user["id"]))
    else:
        context.update(_hotel_sections(db, user["id"]))
    return context


def _hotel_sections(db: Session, owner_id: int) -> Dict[str, Any]:
    hotels_repo = HotelRepository(db)
    bookings = BookingRepository(db)

    hotels = read_section(db, "vendor hotels", lambda: hotels_repo.by_owner(owner_id), [])
    ids = [h.id for h in hotels]
    return {
        "hotels": hotels,
        "bookings": read_section(db, "vendor bookings", lambda: bookings.for_hotels(ids), []),
        "stats": read_section(db, "vendor stats", lambda: bookings.hotel_stats(ids), dict(EMPTY_STATS)),
        "payments": read_section(db, "vendor payments", lambda: bookings.hotel_payments(ids), []),
        "rooms_by_hotel": read_section(db, "vendor rooms", lambda: hotels_repo.rooms_by_hotel(ids), {}),
    }


def _travel_sections(db: Session, owner_id: int) -> Dict[str, Any]:
    transport = TransportRepository(db)
    bookings = BookingRepository(db)

    providers = read_section(db, "vendor providers", lambda: transport.providers_by_owner(owner_id), [])
    ids = [p.id for p in providers]

    def routes() -> List[Dict[str, Any]]:
        return [
            {
                "id": r.id,
                "provider_id": r.provider_id,
                "transport_type": r.transport_type,
                "label": f"{r.from_city or '?'} to {r.to_city or '?'}",
                "departure": to_datetime(r.departure_datetime),
                "arrival": to_datetime(r.arrival_datetime),
            }
            for r in transport.routes_for_providers(ids)
        ]

    return {
        "providers": providers,
        "routes": read_section(db, "vendor routes", routes, []),
        "bookings": read_section(db, "vendor bookings", lambda: bookings.for_providers(ids), []),
        "stats": read_section(db, "vendor stats", lambda: bookings.provider_stats(ids), dict(EMPTY_STATS)),
        "payouts": read_section(db, "vendor payouts", lambda: bookings.provider_payments(ids), []),
    }


def user_profile(db: Session, user_id: int) -> Dict[str, Any]:
    users = UserRepository(db)
    bookings = BookingRepository(db)

    def merged_bookings() -> List[Dict[str, Any]]:
        items = [
            {
                "kind": "hotel",
                "ref": b.booking_ref,
                "title": b.hotel_name or "Hotel stay",
                "link": f"/hotel/{b.hotel_id}" if b.hotel_id else None,
                "dates": f"{b.checkin_date} to {b.checkout_date}" if b.checkin_date else "",
                "status": b.status,
                "total": b.total_amount,
                "created_at": b.created_at,
            }
            for b in bookings.hotel_bookings_for_user(user_id)
        ]
        items.extend(
            {
                "kind": "transport",
                "ref": b.booking_ref,
                "title": b.provider_name or "Transport",
                "link": None,
                "dates": "",
                "status": b.status,
                "total": b.total_amount,
                "created_at": b.created_at,
            }
            for b in bookings.transport_bookings_for_user(user_id)
        )
        items.sort(key=_sort_key, reverse=True)
        return items[:PROFILE_BOOKINGS_SHOWN]

    return {
        "profile": read_section(db, "profile", lambda: users.profile(user_id), None),
        "addresses": read_section(db, "addresses", lambda: users.addresses(user_id), []),
        "bookings": read_section(db, "bookings", merged_bookings, []),
        "reviews": read_section(db, "reviews", lambda: bookings.reviews_by_user(user_id), []),
        "invoices": read_section(db, "invoices", lambda: bookings.invoices_for_user(user_id), []),
    }


def admin_overview(db: Session) -> Dict[str, Any]:
    users = UserRepository(db)
    bookings = BookingRepository(db)
    return {
        "user_count": read_section(db, "user count", users.count, 0),
        "hotel_count": read_section(db, "hotel count", HotelRepository(db).count, 0),
        "booking_count": read_section(db, "booking count", bookings.count_all, 0),
        "revenue": read_section(db, "revenue", bookings.revenue, 0.0),
        "recent_users": read_section(db, "recent users", users.recent, []),
    }
