"""
Hotel booking: a signed-in guest reserves a room type for a date range.
Booking + pending payment are written together.
"""

from datetime import date
from typing import Optional
import logging
import secrets

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from everjourney.db.models import HotelBooking, Payment, Room, RoomTypeRate
from everjourney.db.repositories import HotelRepository
from everjourney.services.forms import BookingForm
from everjourney.services.listing import to_int

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """A booking request that cannot be honoured; the message is shown to the guest."""


def new_booking_ref() -> str:
    return "EJ" + secrets.token_hex(4).upper()


def cheapest_rate(db: Session, room_type_id: int, checkin: date, checkout: date) -> Optional[RoomTypeRate]:
    """Lowest rate whose validity window covers the whole stay (open ends always match)."""
    return (
        db.query(RoomTypeRate)
        .filter(
            RoomTypeRate.room_type_id == room_type_id,
            or_(RoomTypeRate.valid_from.is_(None), RoomTypeRate.valid_from <= checkin),
            or_(RoomTypeRate.valid_to.is_(None), RoomTypeRate.valid_to >= checkout),
        )
        .order_by(RoomTypeRate.price.asc(), RoomTypeRate.id.asc())
        .first()
    )


def rooms_left(db: Session, hotel_id: int, room_type_id: int, checkin: date, checkout: date) -> int:
    total = (
        db.query(func.count(Room.id))
        .filter(Room.hotel_id == hotel_id, Room.room_type_id == room_type_id, Room.status == "available")
        .scalar()
        or 0
    )
    overlapping = (
        db.query(func.count(HotelBooking.id))
        .filter(
            HotelBooking.room_type_id == room_type_id,
            HotelBooking.status != "cancelled",
            HotelBooking.checkin_date < checkout,
            HotelBooking.checkout_date > checkin,
        )
        .scalar()
        or 0
    )
    return int(total) - int(overlapping)


def book_hotel(db: Session, user_id: int, hotel_id: int, form: BookingForm) -> HotelBooking:
    room_type = HotelRepository(db).room_type(hotel_id, to_int(form.room_type_id))
    if room_type is None:
        raise BookingError("Room type not found for this hotel.")

    checkin, checkout = form.checkin_date, form.checkout_date
    if form.guest_count > (room_type.max_guests or 1):
        raise BookingError(f"{room_type.name} sleeps at most {room_type.max_guests} guests.")

    rate = cheapest_rate(db, room_type.id, checkin, checkout)
    if rate is None:
        raise BookingError("No rate is available for these dates.")

    nights = (checkout - checkin).days
    if rate.min_stay and nights < rate.min_stay:
        raise BookingError(f"This rate requires a minimum stay of {rate.min_stay} nights.")
    if rate.max_stay and nights > rate.max_stay:
        raise BookingError(f"This rate allows at most {rate.max_stay} nights.")
    if rooms_left(db, hotel_id, room_type.id, checkin, checkout) <= 0:
        raise BookingError("No rooms of this type are left for these dates.")

    total = rate.price * nights
    try:
        booking = HotelBooking(
            booking_ref=new_booking_ref(),
            user_id=user_id,
            hotel_id=hotel_id,
            room_type_id=room_type.id,
            checkin_date=checkin,
            checkout_date=checkout,
            guests=form.guest_count,
            status="pending",
            total_amount=total,
            currency=rate.currency or "INR",
        )
        db.add(booking)
        db.flush()
        db.add(Payment(
            hotel_booking_id=booking.id,
            amount=total,
            currency=booking.currency,
            status="pending",
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Booking {booking.booking_ref}: user {user_id}, hotel {hotel_id}, {nights} nights")
    return booking
