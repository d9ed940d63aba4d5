from datetime import date, timedelta
import inspect

from fastapi.routing import APIRoute

from everjourney.core.config import Settings, settings
from everjourney.db.models import Hotel, Room, User
from everjourney.main import app


def _location(response):
    return response.headers["location"]


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------

def test_public_pages_render(client, catalog):
    for path in ("/", "/support", "/stays/hotels", "/hotels", "/packages/index", "/package-list",
                 "/transport", "/deals", "/auth", "/auth/login", "/signup", "/vendor/join"):
        response = client.get(path)
        assert response.status_code == 200, path
        assert "text/html" in response.headers["content-type"]


def test_home_alias_redirects(client):
    response = client.get("/home", follow_redirects=False)
    assert response.status_code == 302
    assert _location(response) == "/"


def test_hotel_listing_page_applies_filters(client, catalog):
    response = client.get("/stays/hotels", params={"city": catalog.pune.id, "per_page": 500})
    assert "Budget Inn" in response.text
    assert "Sea View Resort" not in response.text


def test_hotel_listing_survives_garbage_params(client, catalog):
    response = client.get("/stays/hotels?page=-4&per_page=abc&stars=lots&price_max=nan&sort=%27")
    assert response.status_code == 200
    assert "Sea View Resort" in response.text


def test_oversized_numbers_in_the_query_string_do_not_break_listings(client, catalog):
    response = client.get("/stays/hotels?page=1e20")
    assert response.status_code == 200
    assert "Sea View Resort" not in response.text

    response = client.get("/stays/hotels?city=99999999999999999999")
    assert response.status_code == 200
    assert "Sea View Resort" in response.text and "Budget Inn" in response.text

    assert client.get("/packages/index?nights=1e19").status_code == 200
    assert client.get("/transport?page=1e300&from_city=99999999999999999999").status_code == 200


def test_out_of_range_ids_in_the_path_are_404(client, catalog):
    for path in ("/hotel/99999999999999999999", "/hotel/abc", f"/hotel/{catalog.sea_view.id}/room/-1"):
        response = client.get(path)
        assert response.status_code == 404, path
        assert "text/html" in response.headers["content-type"]


def test_search_box_forwards_to_the_right_listing(client):
    response = client.get("/search?kind=transport&from_city=3&q=&checkin=2026-01-01", follow_redirects=False)
    assert response.status_code == 302
    assert _location(response) == "/transport?from_city=3"

    response = client.get("/search?q=goa&amenities[]=spa&date=2026-01-01", follow_redirects=False)
    assert _location(response) == "/stays/hotels?q=goa&amenities%5B%5D=spa"


def test_hotel_and_room_pages(client, catalog):
    assert "Deluxe King" in client.get(f"/hotel/{catalog.sea_view.id}").text
    room_type_id = catalog.sea_view.room_types[0].id
    assert client.get(f"/hotel/{catalog.sea_view.id}/room/{room_type_id}").status_code == 200
    assert client.get(f"/hotel/{catalog.budget_inn.id}/room/{room_type_id}").status_code == 404


def test_missing_hotel_is_a_404_page(client, catalog):
    response = client.get("/hotel/9999")
    assert response.status_code == 404
    assert "Hotel not found" in response.text


def test_unknown_path_renders_error_page(client):
    response = client.get("/no/such/page")
    assert response.status_code == 404
    assert "couldn&#39;t find that page" in response.text or "couldn't find that page" in response.text


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_protected_page_redirects_to_login(client):
    response = client.get("/profile", follow_redirects=False)
    assert response.status_code == 303
    assert _location(response) == "/auth/login?redirect=%2Fprofile"


def test_form_post_returns_to_the_submitting_page_after_login(client, catalog):
    response = client.post(
        f"/hotel/{catalog.sea_view.id}/book",
        data={"room_type_id": "1"},
        headers={"referer": f"http://testserver/hotel/{catalog.sea_view.id}?from=list"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert _location(response) == f"/auth/login?redirect=%2Fhotel%2F{catalog.sea_view.id}%3Ffrom%3Dlist"


def test_login_follows_only_local_redirects(client, catalog, sign_in):
    response = client.post("/auth/login", data={
        "email": "guest@example.com", "password": "correct-horse", "redirect": "/profile",
    }, follow_redirects=False)
    assert _location(response) == "/profile"
    assert client.get("/profile").status_code == 200

    client.post("/auth/logout")
    response = client.post("/auth/login", data={
        "email": "guest@example.com", "password": "correct-horse", "redirect": "//evil.example.com",
    }, follow_redirects=False)
    assert _location(response) == "/"


def test_bad_credentials(client, catalog):
    response = client.post("/auth/login", data={"email": "guest@example.com", "password": "nope"})
    assert response.status_code == 401
    assert "Invalid email or password." in response.text

    assert client.post("/auth/login", data={"email": "", "password": ""}).status_code == 400


def test_signup_and_duplicate_email(client, catalog):
    fields = {
        "first_name": "Neha", "email": "neha@example.com", "password": "long-enough",
        "password_confirm": "long-enough", "accept_terms": "on",
    }
    response = client.post("/auth/signup", data=fields, follow_redirects=False)
    assert response.status_code == 303
    assert client.get("/profile").status_code == 200

    client.post("/auth/logout")
    response = client.post("/auth/signup", data={**fields, "email": "NEHA@example.com"})
    assert response.status_code == 409
    assert "Email already registered" in response.text


def test_signup_validation_keeps_entered_values(client):
    response = client.post("/auth/signup", data={"first_name": "Neha", "email": "bad", "password": "x"})
    assert response.status_code == 400
    assert "A valid email is required." in response.text
    assert 'value="Neha"' in response.text


def test_session_lives_in_a_signed_cookie(client, catalog, sign_in):
    sign_in("guest@example.com")
    cookie = client.cookies.get(settings.session_cookie)
    assert cookie and "guest@example.com" not in cookie
    assert client.get("/profile").status_code == 200

    client.cookies.clear()
    client.cookies.set(settings.session_cookie, cookie[:-4] + "AAAA")
    assert client.get("/profile", follow_redirects=False).status_code == 303


def test_logout_clears_the_session(client, catalog, sign_in):
    sign_in("guest@example.com")
    response = client.post("/auth/logout", follow_redirects=False)
    assert _location(response) == "/"
    assert client.get("/profile", follow_redirects=False).status_code == 303


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

def test_customers_cannot_open_vendor_or_admin_pages(client, catalog, sign_in):
    sign_in("guest@example.com")
    assert client.get("/vendor/dashboard").status_code == 403
    assert client.get("/admin/dashboard").status_code == 403


def test_admin_dashboard(client, catalog, sign_in):
    response = sign_in("admin@example.com")
    assert _location(response) == "/admin/dashboard"
    assert client.get("/admin/dashboard").status_code == 200
    assert client.get("/profile").status_code == 200


def test_vendor_login_only_accepts_vendors(client, catalog):
    response = client.post("/vendor/hotel/login", data={"email": "guest@example.com", "password": "correct-horse"})
    assert response.status_code == 401


def test_travel_vendor_cannot_manage_hotels(client, catalog, sign_in):
    response = sign_in("travel@example.com", path="/vendor/travel/login")
    assert _location(response) == "/vendor/dashboard"
    assert "Konkan Express" in client.get("/vendor/dashboard").text
    assert client.get("/vendor/hotels/new").status_code == 403


# ---------------------------------------------------------------------------
# Vendor inventory
# ---------------------------------------------------------------------------

def test_hotel_vendor_adds_hotel_then_rooms(client, db, catalog, sign_in):
    sign_in("hotels@example.com", path="/vendor/hotel/login")
    assert client.get("/vendor/hotels/new").status_code == 200

    response = client.post("/vendor/hotels", data={
        "hotel_name": "Lake Palace", "address_line1": "Lake Road", "city_id": str(catalog.pune.id),
        "amenity_ids": [str(catalog.wifi.id), str(catalog.pool.id)],
    }, follow_redirects=False)
    assert response.status_code == 303
    hotel = db.query(Hotel).filter_by(name="Lake Palace").one()
    assert _location(response) == f"/vendor/hotels/{hotel.id}/rooms/new"
    assert len(hotel.amenities) == 2

    assert client.get(_location(response)).status_code == 200
    response = client.post(f"/vendor/hotels/{hotel.id}/rooms", data={
        "room_type_name": "Lake View", "base_price": "5000", "room_count": "2", "room_number_start": "10",
        "rooms_active": "on",
    }, follow_redirects=False)
    assert response.status_code == 303
    assert _location(response) == "/profile"
    assert db.query(Room).filter_by(hotel_id=hotel.id).count() == 2


def test_hotel_form_errors(client, catalog, sign_in):
    sign_in("hotels@example.com", path="/vendor/hotel/login")
    response = client.post("/vendor/hotels", data={"hotel_name": ""})
    assert response.status_code == 400
    assert "Hotel name is required." in response.text


def test_room_number_conflict_is_reported(client, db, catalog, sign_in):
    sign_in("hotels@example.com", path="/vendor/hotel/login")
    response = client.post(f"/vendor/hotels/{catalog.sea_view.id}/rooms", data={
        "room_type_name": "Twin", "base_price": "4000", "room_count": "3", "room_number_start": "200",
    })
    assert response.status_code == 400
    assert "already exist" in response.text
    assert db.query(Room).filter_by(hotel_id=catalog.sea_view.id).count() == 2


def test_vendor_cannot_touch_another_vendors_hotel(client, catalog, sign_in):
    sign_in("hotels@example.com", path="/vendor/hotel/login")
    assert client.get(f"/vendor/hotels/{catalog.hill_cottage.id}/rooms/new").status_code == 404


def test_hotel_vendor_signup_lands_on_dashboard(client, db, catalog):
    response = client.post("/vendor/hotel/signup", data={
        "first_name": "Ravi", "email": "ravi@example.com", "password": "long-enough",
        "password_confirm": "long-enough", "accept_terms": "on",
        "hotel_name": "Ravi Residency", "hotel_city": "Goa", "hotel_address": "Beach Road",
    }, follow_redirects=False)
    assert response.status_code == 303
    assert _location(response) == "/vendor/dashboard"
    assert "Ravi Residency" in client.get("/vendor/dashboard").text
    assert db.query(User).filter_by(email="ravi@example.com").one().role == "vendor"


# ---------------------------------------------------------------------------
# Booking + profile
# ---------------------------------------------------------------------------

def test_guest_books_a_room(client, catalog, sign_in):
    sign_in("guest@example.com")
    checkin = date.today() + timedelta(days=7)
    response = client.post(f"/hotel/{catalog.budget_inn.id}/book", data={
        "room_type_id": str(catalog.budget_inn.room_types[0].id),
        "checkin": checkin.isoformat(),
        "checkout": (checkin + timedelta(days=2)).isoformat(),
        "guests": "1",
    }, follow_redirects=False)
    assert response.status_code == 303
    assert _location(response).startswith(f"/hotel/{catalog.budget_inn.id}?booked=EJ")

    assert "Budget Inn" in client.get("/profile").text


def test_booking_errors_stay_on_the_hotel_page(client, catalog, sign_in):
    sign_in("guest@example.com")
    response = client.post(f"/hotel/{catalog.budget_inn.id}/book", data={"room_type_id": "x"})
    assert response.status_code == 400
    assert "Please choose a room type." in response.text


def test_address_and_password_changes(client, catalog, sign_in):
    sign_in("guest@example.com")
    assert client.post("/profile/addresses", data={"line1": ""}).status_code == 400
    response = client.post("/profile/addresses", data={"line1": "5 Hill Road", "city": "Pune"}, follow_redirects=False)
    assert _location(response) == "/profile"
    assert "5 Hill Road" in client.get("/profile").text

    response = client.post("/profile/change-password",
                           data={"current_password": "wrong", "new_password": "new-password"})
    assert response.status_code == 401
    response = client.post("/profile/change-password",
                           data={"current_password": "correct-horse", "new_password": "new-password"},
                           follow_redirects=False)
    assert response.status_code == 303


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health_endpoints(client, catalog):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["hotels"] == 4
    assert client.get("/health/ready").json()["ready"] is True
    assert client.get("/health/live").json()["alive"] is True
    assert client.get("/_dbinfo").json()["dialect"] == "sqlite"
    assert "hotels" in client.get("/debug-db").json()["tables"]


def test_debug_endpoints_are_off_by_default(client, monkeypatch):
    monkeypatch.delenv("DEBUG_ENDPOINTS_ENABLED", raising=False)
    assert Settings(_env_file=None).debug_endpoints_enabled is False

    monkeypatch.setattr(settings, "debug_endpoints_enabled", False)
    assert client.get("/_dbinfo").status_code == 404
    assert client.get("/debug-db").status_code == 404


def test_database_pages_run_in_the_threadpool():
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path != "/health/live":
            assert not inspect.iscoroutinefunction(route.endpoint), route.path


def test_security_headers(client):
    response = client.get("/health/live")
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "X-Process-Time" in response.headers
