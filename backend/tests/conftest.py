import os
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

# Configure before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["DEBUG_ENDPOINTS_ENABLED"] = "true"

from fastapi.testclient import TestClient

from everjourney.core.security import hash_password
from everjourney.db.database import SessionLocal, engine
from everjourney.db.models import (
    Amenity,
    Base,
    City,
    Country,
    Hotel,
    Location,
    Package,
    PackageInclusion,
    Room,
    RoomType,
    RoomTypeRate,
    TransportProvider,
    TransportRoute,
    TransportSeat,
    User,
    UserProfile,
    utcnow,
)
from everjourney.main import app
from everjourney.services.hotel_listing import amenity_code

PASSWORD = "correct-horse"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    return TestClient(app)


def add_user(db, email, role="user", first_name="Test"):
    user = User(email=email, password_hash=hash_password(PASSWORD), role=role, is_verified=True)
    db.add(user)
    db.flush()
    db.add(UserProfile(user_id=user.id, first_name=first_name))
    return user


def add_hotel(db, owner, name, city, stars=None, status="active", amenities=(), room_types=()):
    """room_types: (name, max_guests, price, room numbers)"""
    hotel = Hotel(owner_user_id=owner.id, name=name, address_line1="1 Main Road",
                  city_id=city.id, star_rating=stars, status=status)
    hotel.amenities = list(amenities)
    db.add(hotel)
    db.flush()
    for rt_name, guests, price, numbers in room_types:
        room_type = RoomType(hotel_id=hotel.id, name=rt_name, max_guests=guests)
        db.add(room_type)
        db.flush()
        db.add(RoomTypeRate(room_type_id=room_type.id, currency="INR", price=Decimal(price), min_stay=1))
        db.add_all(Room(hotel_id=hotel.id, room_type_id=room_type.id, room_number=n) for n in numbers)
    db.flush()
    return hotel


def add_route(db, provider, origin, destination, departure, hours, seats, transport_type=None):
    route = TransportRoute(
        provider_id=provider.id,
        transport_type=transport_type,
        from_city_id=origin.id,
        to_city_id=destination.id,
        departure_datetime=departure,
        arrival_datetime=departure + timedelta(hours=hours),
    )
    db.add(route)
    db.flush()
    db.add_all(
        TransportSeat(route_id=route.id, seat_class=seat_class, price=Decimal(price), available_seats=left)
        for seat_class, price, left in seats
    )
    return route


@pytest.fixture
def catalog(db):
    """Small committed catalogue: four hotels (one inactive), three packages, three routes (one departed)."""
    india = Country(name="India", code="IN")
    db.add(india)
    db.flush()
    mumbai, pune, goa = (City(name=n, country_id=india.id) for n in ("Mumbai", "Pune", "Goa"))
    db.add_all([mumbai, pune, goa])
    wifi = Amenity(name="Free WiFi", code=amenity_code("Free WiFi"))
    pool = Amenity(name="Swimming Pool", code=amenity_code("Swimming Pool"))
    db.add_all([wifi, pool])
    db.flush()

    admin = add_user(db, "admin@example.com", "admin", "Ada")
    hotelier = add_user(db, "hotels@example.com", "vendor", "Hema")
    other_hotelier = add_user(db, "other@example.com", "vendor", "Omar")
    operator = add_user(db, "travel@example.com", "vendor", "Tarun")
    guest = add_user(db, "guest@example.com", "user", "Gita")

    sea_view = add_hotel(db, hotelier, "Sea View Resort", mumbai, stars=5, amenities=[wifi, pool],
                         room_types=[("Deluxe King", 2, 7500, ["201", "202"])])
    budget_inn = add_hotel(db, hotelier, "Budget Inn", pune, stars=3, amenities=[wifi],
                           room_types=[("Standard", 2, 2200, ["101"])])
    add_hotel(db, hotelier, "Closed Lodge", mumbai, stars=4, status="inactive",
              room_types=[("Basic", 2, 1000, ["1"])])
    hill_cottage = add_hotel(db, other_hotelier, "Hill Cottage", goa, stars=4)

    packages = {}
    for title, city, nights, price, active, description in (
        ("Goa Beach Escape", "Goa", 5, 32000, True, "Sun and sand with daily breakfast."),
        ("Royal Rajasthan", "Jaipur", 6, 45500, True, "Forts and palaces. " * 20),
        ("Mumbai City Break", "Mumbai", 3, 18500, False, "City lights and a beach sunset walk."),
    ):
        location = Location(city=city, country="India")
        db.add(location)
        db.flush()
        package = Package(title=title, description=description, base_price=Decimal(price),
                          nights=nights, dest_loc_id=location.id, is_active=active)
        db.add(package)
        db.flush()
        db.add(PackageInclusion(package_id=package.id, description="Breakfast"))
        packages[title] = package

    konkan = TransportProvider(owner_user_id=operator.id, name="Konkan Express", provider_type="bus")
    deccan = TransportProvider(owner_user_id=operator.id, name="Deccan Cabs", provider_type="cab")
    db.add_all([konkan, deccan])
    db.flush()
    now = utcnow().replace(minute=0, second=0, microsecond=0)
    to_goa = add_route(db, konkan, mumbai, goa, now + timedelta(days=3), 11,
                       [("sleeper", 1450, 18), ("seater", 950, 0)])
    to_pune = add_route(db, deccan, mumbai, pune, now + timedelta(days=1), 3, [("sedan", 3200, 4)])
    departed = add_route(db, konkan, pune, mumbai, now - timedelta(days=2), 3, [("seater", 500, 10)])

    db.commit()
    return SimpleNamespace(
        mumbai=mumbai, pune=pune, goa=goa, wifi=wifi, pool=pool,
        admin=admin, hotelier=hotelier, other_hotelier=other_hotelier, operator=operator, guest=guest,
        sea_view=sea_view, budget_inn=budget_inn, hill_cottage=hill_cottage,
        packages=packages, konkan=konkan, deccan=deccan,
        to_goa=to_goa, to_pune=to_pune, departed=departed,
    )


@pytest.fixture
def sign_in(client):
    """Sign ``client`` in through the login form at ``path``."""

    def _sign_in(email, path="/auth/login", password=PASSWORD):
        response = client.post(path, data={"email": email, "password": password}, follow_redirects=False)
        assert response.status_code == 303, response.text
        return response

    return _sign_in
