from everjourney.services.catalog import hotel_detail, room_detail
from everjourney.services.deal_listing import search_deals
from everjourney.services.hotel_listing import HOTEL_PLACEHOLDER, search_hotels


def _names(result):
    return [item["name"] for item in result.items]


def test_only_active_hotels_are_listed(db, catalog):
    result = search_hotels(db, {})
    assert sorted(_names(result)) == ["Budget Inn", "Hill Cottage", "Sea View Resort"]
    assert result.total == 3


def test_city_filter(db, catalog):
    assert _names(search_hotels(db, {"city": str(catalog.mumbai.id)})) == ["Sea View Resort"]


def test_text_search_matches_city_name(db, catalog):
    assert _names(search_hotels(db, {"q": "PUNE"})) == ["Budget Inn"]


def test_price_max_needs_a_rate_at_or_below(db, catalog):
    assert _names(search_hotels(db, {"price_max": "2200"})) == ["Budget Inn"]


def test_star_filter_is_a_minimum(db, catalog):
    assert sorted(_names(search_hotels(db, {"stars": "4"}))) == ["Hill Cottage", "Sea View Resort"]


def test_amenity_labels_match_codes(db, catalog):
    assert _names(search_hotels(db, {"amenities[]": ["Swimming Pool"]})) == ["Sea View Resort"]
    assert sorted(_names(search_hotels(db, {"amenities": "free_wifi"}))) == ["Budget Inn", "Sea View Resort"]


def test_room_type_filter(db, catalog):
    assert _names(search_hotels(db, {"room_type": "deluxe"})) == ["Sea View Resort"]


def test_price_sort_puts_unpriced_hotels_last(db, catalog):
    assert _names(search_hotels(db, {"sort": "price_asc"})) == ["Budget Inn", "Sea View Resort", "Hill Cottage"]
    assert _names(search_hotels(db, {"sort": "price_desc"})) == ["Sea View Resort", "Budget Inn", "Hill Cottage"]


def test_projection_fills_price_and_placeholder(db, catalog):
    item = search_hotels(db, {"city": str(catalog.mumbai.id)}).items[0]
    assert item["min_price"] == 7500
    assert item["city"] == "Mumbai"
    assert item["country"] == "India"
    assert item["image"] == HOTEL_PLACEHOLDER


def test_deals_need_a_rate(db, catalog):
    result = search_deals(db, {})
    assert _names(result) == ["Budget Inn", "Sea View Resort"]


def test_hotel_detail(db, catalog):
    detail = hotel_detail(db, catalog.sea_view.id)
    assert detail["hotel"].name == "Sea View Resort"
    assert detail["min_price"] == 7500
    assert [rt["name"] for rt in detail["room_types"]] == ["Deluxe King"]
    assert hotel_detail(db, 9999) is None


def test_room_detail_falls_back_to_placeholder_images(db, catalog):
    room_type_id = catalog.budget_inn.room_types[0].id
    detail = room_detail(db, catalog.budget_inn.id, room_type_id)
    assert detail["rooms_available"] == 1
    assert detail["room_images"]
    assert room_detail(db, catalog.sea_view.id, room_type_id) is None
