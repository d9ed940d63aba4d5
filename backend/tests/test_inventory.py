import pytest

from everjourney.db.models import Room, RoomType, RoomTypeRate
from everjourney.db.repositories import HotelRepository
from everjourney.services.forms import HotelForm, RoomsForm
from everjourney.services.inventory import (
    RoomNumberConflict,
    conflict_message,
    create_hotel,
    generate_rooms,
)


def _rooms_form(**values):
    fields = dict(room_type_name="Family Suite", base_price="9900", room_count="3", rooms_active="on")
    fields.update(values)
    return RoomsForm(**fields)


def _room_numbers(db, hotel_id):
    return sorted(HotelRepository(db).room_numbers(hotel_id))


def test_create_hotel(db, catalog):
    owner = {"id": catalog.hotelier.id, "email": "hotels@example.com"}
    form = HotelForm(
        hotel_name="Lake Palace",
        address_line1="Lake Road",
        city_id=str(catalog.pune.id),
        star_rating="7",
        amenity_ids=[str(catalog.pool.id), "junk"],
    )
    hotel = create_hotel(db, owner, form)

    assert hotel.owner_user_id == catalog.hotelier.id
    assert hotel.star_rating is None
    assert hotel.email == "hotels@example.com"
    assert [a.code for a in hotel.amenities] == ["swimming_pool"]


def test_hotel_form_requires_name_address_and_city():
    assert HotelForm().validation_errors() == [
        "Hotel name is required.",
        "Address line 1 is required.",
        "City is required.",
    ]


def test_generate_rooms_writes_type_rate_and_numbered_rooms(db, catalog):
    hotel_id = catalog.hill_cottage.id
    room_type = generate_rooms(db, hotel_id, _rooms_form(room_amenity_ids=[str(catalog.wifi.id)], default_floor="2"))

    assert room_type.max_guests == 2
    assert [a.code for a in room_type.amenities] == ["free_wifi"]
    rate = db.query(RoomTypeRate).filter_by(room_type_id=room_type.id).one()
    assert float(rate.price) == 9900
    assert rate.inventory == 3
    assert _room_numbers(db, hotel_id) == ["201", "202", "203"]
    assert {r.floor for r in db.query(Room).filter_by(hotel_id=hotel_id)} == {2}


def test_inactive_rooms(db, catalog):
    generate_rooms(db, catalog.hill_cottage.id, _rooms_form(rooms_active=None, room_count="1"))
    assert db.query(Room).filter_by(hotel_id=catalog.hill_cottage.id).one().status == "inactive"


def test_overlapping_numbers_write_nothing(db, catalog):
    hotel_id = catalog.sea_view.id
    room_types_before = db.query(RoomType).count()

    with pytest.raises(RoomNumberConflict) as excinfo:
        generate_rooms(db, hotel_id, _rooms_form(room_number_start="200"))

    assert excinfo.value.numbers == ["201", "202"]
    assert "201, 202" in str(excinfo.value)
    assert db.query(RoomType).count() == room_types_before
    assert _room_numbers(db, hotel_id) == ["201", "202"]


def test_unique_constraint_reports_the_same_conflict(db, catalog, monkeypatch):
    hotel_id = catalog.sea_view.id
    room_types_before = db.query(RoomType).count()
    # A concurrent request took the numbers after our pre-check
    monkeypatch.setattr(HotelRepository, "room_numbers", lambda self, hotel_id: set())

    with pytest.raises(RoomNumberConflict) as excinfo:
        generate_rooms(db, hotel_id, _rooms_form(room_number_start="200"))

    assert excinfo.value.numbers == ["200", "201", "202"]
    assert db.query(RoomType).count() == room_types_before
    assert db.query(Room).filter_by(hotel_id=hotel_id).count() == 2


def test_conflict_message_lists_at_most_ten_numbers():
    message = conflict_message([str(n) for n in range(100, 115)])
    assert "109" in message
    assert "110" not in message


def test_rooms_form_validation():
    errors = RoomsForm(max_guests="0").validation_errors()
    assert "Room type name is required." in errors
    assert "Valid base price per night is required." in errors
    assert "Please specify how many rooms to generate." in errors
    assert "Max guests must be at least 1." in errors
    assert RoomsForm(room_count="2").candidate_numbers() == ["201", "202"]
