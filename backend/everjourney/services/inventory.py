"""
Vendor inventory writes: new hotels and bulk room generation.

Room generation creates a room type, its amenities, a base rate and a
contiguous run of numbered rooms in one transaction. The run is checked
against the hotel's existing numbers first; UNIQUE(hotel_id, room_number)
is the final word, and a violation is reported as the same conflict.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from everjourney.db.models import Amenity, Hotel, Room, RoomType, RoomTypeRate
from everjourney.db.repositories import HotelRepository
from everjourney.services.forms import HotelForm, RoomsForm
from everjourney.services.listing import to_int, to_number

logger = logging.getLogger(__name__)

MAX_CONFLICTS_SHOWN = 10


class RoomNumberConflict(Exception):
    def __init__(self, numbers: List[str]):
        super().__init__(conflict_message(numbers))
        self.numbers = numbers


def conflict_message(numbers: List[str]) -> str:
    shown = ", ".join(numbers[:MAX_CONFLICTS_SHOWN])
    return (
        f"These room numbers already exist for this hotel: {shown}. "
        "Please choose a different starting number or reduce the count."
    )


def room_number_conflicts(db: Session, hotel_id: int, candidates: List[str]) -> List[str]:
    existing = HotelRepository(db).room_numbers(hotel_id)
    return [number for number in candidates if number in existing]


def _amenities(db: Session, raw_ids: List[str]) -> List[Amenity]:
    ids = {to_int(value) for value in raw_ids}
    ids.discard(None)
    if not ids:
        return []
    return db.query(Amenity).filter(Amenity.id.in_(ids)).order_by(Amenity.id).all()


def create_hotel(db: Session, owner: Dict, form: HotelForm) -> Hotel:
    try:
        hotel = Hotel(
            owner_user_id=owner["id"],
            name=form.hotel_name.strip(),
            description=form.hotel_description.strip() or None,
            address_line1=form.address_line1.strip(),
            address_line2=form.address_line2.strip() or None,
            city_id=to_int(form.city_id),
            star_rating=form.stars,
            phone=form.hotel_phone.strip() or None,
            email=(form.hotel_email.strip() or owner["email"]).lower(),
            status="active",
            property_type=form.property_type.strip() or None,
        )
        hotel.amenities = _amenities(db, form.amenity_ids)
        db.add(hotel)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Vendor {owner['id']} created hotel {hotel.id}")
    return hotel


def generate_rooms(db: Session, hotel_id: int, form: RoomsForm) -> RoomType:
    """
    Insert room type + amenities + base rate + rooms. Raises
    RoomNumberConflict (nothing written) if any generated number is taken.
    """
    candidates = form.candidate_numbers()
    conflicts = room_number_conflicts(db, hotel_id, candidates)
    if conflicts:
        raise RoomNumberConflict(conflicts)

    floor: Optional[int] = to_int(form.default_floor)
    status = "available" if form.rooms_active else "inactive"

    try:
        room_type = RoomType(
            hotel_id=hotel_id,
            name=form.room_type_name.strip(),
            description=form.room_type_description.strip() or None,
            max_guests=form.guests,
            area_sq_m=to_number(form.area_sq_m),
        )
        room_type.amenities = _amenities(db, form.room_amenity_ids)
        db.add(room_type)
        db.flush()

        db.add(RoomTypeRate(
            room_type_id=room_type.id,
            currency=form.currency.strip() or "INR",
            price=form.price,
            min_stay=to_int(form.min_stay, 1),
            max_stay=to_int(form.max_stay),
            inventory=len(candidates),
        ))
        db.add_all(
            Room(
                hotel_id=hotel_id,
                room_type_id=room_type.id,
                room_number=number,
                floor=floor,
                status=status,
            )
            for number in candidates
        )
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Room generation for hotel {hotel_id} hit the room-number constraint: {e.orig}")
        raise RoomNumberConflict(room_number_conflicts(db, hotel_id, candidates) or candidates) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f"Hotel {hotel_id}: created room type {room_type.id} with {len(candidates)} rooms")
    return room_type
