from datetime import datetime

from everjourney.services.deal_listing import transport_deals
from everjourney.services.transport_listing import duration_label, search_transport, to_datetime


def _providers(result):
    return [item["provider_name"] for item in result.items]


def test_departed_routes_are_hidden(db, catalog):
    result = search_transport(db, {})
    assert result.total == 2
    assert _providers(result) == ["Deccan Cabs", "Konkan Express"]


def test_city_filters(db, catalog):
    result = search_transport(db, {"from_city": str(catalog.mumbai.id), "to_city": str(catalog.goa.id)})
    assert _providers(result) == ["Konkan Express"]
    assert search_transport(db, {"from_city": str(catalog.pune.id)}).total == 0


def test_date_filter_matches_departure_day(db, catalog):
    day = catalog.to_goa.departure_datetime.date().isoformat()
    assert _providers(search_transport(db, {"date": day})) == ["Konkan Express"]


def test_type_falls_back_to_provider_type(db, catalog):
    assert _providers(search_transport(db, {"type": "cab"})) == ["Deccan Cabs"]


def test_seat_class_and_price_filters(db, catalog):
    assert _providers(search_transport(db, {"seat_class": "SLEEP"})) == ["Konkan Express"]
    assert _providers(search_transport(db, {"price_max": "1000"})) == ["Konkan Express"]


def test_cheapest_sort(db, catalog):
    assert _providers(search_transport(db, {"sort": "cheapest"})) == ["Konkan Express", "Deccan Cabs"]
    assert _providers(search_transport(db, {"sort": "expensive"})) == ["Deccan Cabs", "Konkan Express"]


def test_route_projection(db, catalog):
    item = search_transport(db, {"q": "konkan"}).items[0]
    assert item["transport_type"] == "bus"
    assert item["from_city"] == "Mumbai"
    assert item["to_city"] == "Goa"
    assert item["min_price"] == 950
    assert item["seats_left"] == 18
    assert item["duration_label"] == "11h 00m"
    assert item["avg_rating"] is None


def test_duration_label():
    start = datetime(2026, 1, 1, 22, 15)
    assert duration_label(start, datetime(2026, 1, 2, 1, 0)) == "02h 45m"
    assert duration_label(start, None) == ""
    assert duration_label(start, datetime(2026, 1, 1, 20, 0)) == ""


def test_to_datetime_accepts_driver_strings():
    assert to_datetime("2026-03-04 05:06:07.000000") == datetime(2026, 3, 4, 5, 6, 7)
    assert to_datetime("") is None
    assert to_datetime("not a date") is None


def test_transport_deals_are_upcoming_and_cheapest_first(db, catalog):
    deals = transport_deals(db)
    assert [d["provider_name"] for d in deals] == ["Konkan Express", "Deccan Cabs"]
    assert deals[0]["min_price"] == 950
    assert deals[0]["from_city"] == "Mumbai"
