"""
Vendor area: dashboard, hotel creation and bulk room generation.
"""

from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
import logging

from everjourney.api.params import RecordId
from everjourney.core.rate_limiting import limiter, WRITE_LIMIT
from everjourney.core.security import require_hotel_vendor, require_vendor
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.db.models import Hotel
from everjourney.db.repositories import HotelRepository, LookupRepository, read_section
from everjourney.services.dashboards import vendor_dashboard
from everjourney.services.forms import DEFAULT_ROOM_START, HotelForm, RoomsForm
from everjourney.services.inventory import RoomNumberConflict, create_hotel, generate_rooms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vendor", tags=["vendor"])


@router.get("/dashboard")
def dashboard(request: Request, user: Dict[str, Any] = Depends(require_vendor), db: Session = Depends(get_db)):
    return render(request, "vendor/dashboard.html", {"title": "Vendor dashboard", **vendor_dashboard(db, user)})


# ---------------------------------------------------------------------------
# Hotels
# ---------------------------------------------------------------------------

def _hotel_form(request: Request, db: Session, old: Dict[str, Any], errors: List[str], status_code: int = 200):
    lookups = LookupRepository(db)
    return render(request, "vendor/hotel_new.html", {
        "title": "Add hotel",
        "cities": read_section(db, "city list", lookups.cities, []),
        "amenities": read_section(db, "amenity list", lookups.amenities, []),
        "old": old,
        "errors": errors,
    }, status_code=status_code)


@router.get("/hotels/new")
def new_hotel(request: Request, user: Dict[str, Any] = Depends(require_hotel_vendor), db: Session = Depends(get_db)):
    return _hotel_form(request, db, {"amenity_ids": []}, [])


@router.post("/hotels")
@limiter.limit(WRITE_LIMIT)
def add_hotel(
    request: Request,
    form: Annotated[HotelForm, Form()],
    user: Dict[str, Any] = Depends(require_hotel_vendor),
    db: Session = Depends(get_db),
):
    errors = form.validation_errors()
    if errors:
        return _hotel_form(request, db, form.old(), errors, 400)

    try:
        hotel = create_hotel(db, user, form)
    except Exception:
        logger.exception(f"Hotel creation failed for vendor {user['id']}")
        return _hotel_form(request, db, form.old(), ["Server error while creating hotel. Please try again."], 500)

    return RedirectResponse(f"/vendor/hotels/{hotel.id}/rooms/new", status_code=303)


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------

def _owned_hotel(db: Session, hotel_id: int, user: Dict[str, Any]) -> Hotel:
    hotel = HotelRepository(db).owned(hotel_id, user["id"])
    if hotel is None:
        raise HTTPException(status_code=404, detail="Hotel not found or you do not have access to it.")
    return hotel


def _rooms_form(
    request: Request,
    db: Session,
    hotel: Hotel,
    old: Dict[str, Any],
    errors: List[str],
    status_code: int = 200,
):
    return render(request, "vendor/add_rooms.html", {
        "title": f"Add rooms to {hotel.name}",
        "hotel": hotel,
        "amenities": read_section(db, "amenity list", LookupRepository(db).amenities, []),
        "old": old,
        "errors": errors,
    }, status_code=status_code)


@router.get("/hotels/{hotel_id}/rooms/new")
def new_rooms(
    request: Request,
    hotel_id: RecordId,
    user: Dict[str, Any] = Depends(require_hotel_vendor),
    db: Session = Depends(get_db),
):
    hotel = _owned_hotel(db, hotel_id, user)
    defaults = {
        "currency": "INR",
        "max_guests": "2",
        "room_number_start": str(DEFAULT_ROOM_START),
        "min_stay": "1",
        "rooms_active": "on",
        "room_amenity_ids": [],
    }
    return _rooms_form(request, db, hotel, defaults, [])


@router.post("/hotels/{hotel_id}/rooms")
@limiter.limit(WRITE_LIMIT)
def add_rooms(
    request: Request,
    hotel_id: RecordId,
    form: Annotated[RoomsForm, Form()],
    user: Dict[str, Any] = Depends(require_hotel_vendor),
    db: Session = Depends(get_db),
):
    hotel = _owned_hotel(db, hotel_id, user)

    errors = form.validation_errors()
    if errors:
        return _rooms_form(request, db, hotel, form.old(), errors, 400)

    try:
        generate_rooms(db, hotel.id, form)
    except RoomNumberConflict as e:
        return _rooms_form(request, db, hotel, form.old(), [str(e)], 400)
    except Exception:
        logger.exception(f"Room generation failed for hotel {hotel_id}")
        hotel = _owned_hotel(db, hotel_id, user)
        return _rooms_form(request, db, hotel, form.old(), ["Server error while creating rooms. Please try again."], 500)

    return RedirectResponse("/profile", status_code=303)
