"""
Stays: hotel listing, hotel and room type detail pages, booking.
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
import logging

from everjourney.api.params import RecordId
from everjourney.core.rate_limiting import limiter, SEARCH_LIMIT, WRITE_LIMIT
from everjourney.core.security import require_login
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.bookings import BookingError, book_hotel
from everjourney.services.catalog import hotel_detail, hotel_filter_options, room_detail
from everjourney.services.forms import BookingForm
from everjourney.services.hotel_listing import search_hotels
from everjourney.services.listing import query_to_raw

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stays"])


@router.get("/stays/hotels")
@router.get("/hotels")
@limiter.limit(SEARCH_LIMIT)
def hotels(request: Request, db: Session = Depends(get_db)):
    result = search_hotels(db, query_to_raw(request.query_params))
    return render(
        request,
        "stays/hotels.html",
        {"title": "Hotels", "result": result, "filters": result.filters, **hotel_filter_options(db)},
    )


def _hotel_page(request: Request, db: Session, hotel_id: int, extra: Dict[str, Any], status_code: int = 200):
    detail = hotel_detail(db, hotel_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Hotel not found")
    context = {"title": detail["hotel"].name, "booking": {}, "booking_errors": [], **detail}
    context.update(extra)
    return render(request, "stays/hotel_detail.html", context, status_code=status_code)


@router.get("/hotel/{hotel_id}")
def hotel(request: Request, hotel_id: RecordId, db: Session = Depends(get_db)):
    return _hotel_page(request, db, hotel_id, {"booked": request.query_params.get("booked", "")})


@router.get("/hotel/{hotel_id}/room/{room_type_id}")
def room(request: Request, hotel_id: RecordId, room_type_id: RecordId, db: Session = Depends(get_db)):
    detail = room_detail(db, hotel_id, room_type_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Room type not found")
    return render(request, "stays/room_detail.html", {"title": detail["room_type"].name, **detail})


@router.post("/hotel/{hotel_id}/book")
@limiter.limit(WRITE_LIMIT)
def book(
    request: Request,
    hotel_id: RecordId,
    form: Annotated[BookingForm, Form()],
    user: Dict[str, Any] = Depends(require_login),
    db: Session = Depends(get_db),
):
    errors = form.validation_errors()
    if errors:
        return _hotel_page(request, db, hotel_id, {"booking": form.old(), "booking_errors": errors}, 400)

    try:
        booking = book_hotel(db, user["id"], hotel_id, form)
    except BookingError as e:
        return _hotel_page(request, db, hotel_id, {"booking": form.old(), "booking_errors": [str(e)]}, 400)
    except Exception:
        logger.exception(f"Booking failed for hotel {hotel_id}")
        return _hotel_page(
            request, db, hotel_id,
            {"booking": form.old(), "booking_errors": ["We couldn't complete your booking. Please try again."]},
            500,
        )

    return RedirectResponse(f"/hotel/{hotel_id}?booked={booking.booking_ref}", status_code=303)
