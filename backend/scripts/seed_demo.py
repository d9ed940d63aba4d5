"""
Seed a demo catalogue: cities, amenities, demo accounts, hotels with rooms
and rates, holiday packages and upcoming transport routes.

Run: python scripts/seed_demo.py [--reset]

Uses DATABASE_URL (defaults from everjourney.core.config). --reset drops and
recreates every table first.
"""

import os
import sys
from datetime import timedelta
from decimal import Decimal

# Add backend directory to path for package imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from everjourney.core.security import hash_password
from everjourney.db.database import engine, session_scope
from everjourney.db.models import (
    Amenity,
    Base,
    City,
    Country,
    Hotel,
    HotelImage,
    HotelReview,
    Location,
    Package,
    PackageInclusion,
    Room,
    RoomType,
    RoomTypeRate,
    TransportProvider,
    TransportReview,
    TransportRoute,
    TransportSeat,
    User,
    UserProfile,
    package_hotels,
    utcnow,
)
from everjourney.services.hotel_listing import amenity_code

DEMO_PASSWORD = "everjourney123"

CITIES = ["Mumbai", "Pune", "Goa", "Delhi", "Jaipur", "Bengaluru"]
AMENITIES = ["Free WiFi", "Swimming Pool", "Parking", "Breakfast Included", "Air Conditioning", "Spa", "Gym"]

HOTELS = [
    # name, city, address, stars, property type, room types [(name, guests, price, count, start)]
    ("EverJourney Resort", "Mumbai", "123 Beach Road, Marine Drive", 5, "resort",
     [("Deluxe King", 2, 7500, 6, 201), ("Ocean Suite", 4, 14500, 2, 301)]),
    ("Sunny Stay Hotel", "Pune", "45 Central Road, Camp", 3, "budget",
     [("Standard Double", 2, 2200, 8, 101)]),
    ("Palm Grove Villas", "Goa", "Candolim Beach Lane", 4, "villa",
     [("Garden Villa", 4, 9800, 4, 11), ("Pool Villa", 6, 16500, 2, 21)]),
    ("Pink City Haveli", "Jaipur", "MI Road, near Ajmeri Gate", 4, "heritage",
     [("Heritage Room", 2, 5400, 5, 201)]),
]

PACKAGES = [
    ("Goa Beach Escape", "Goa", 5, 32000, "Five nights by the sea with airport transfers, daily breakfast and a sunset cruise."),
    ("Royal Rajasthan", "Jaipur", 6, 45500, "Forts, palaces and bazaars: a guided week through the Pink City and beyond."),
    ("Mumbai City Break", "Mumbai", 3, 18500, "Three nights in the city that never sleeps, with a heritage walk and street food trail."),
]

ROUTES = [
    # provider, type, from, to, days ahead, hour, duration hours, seats [(class, price, available)]
    ("Konkan Express Travels", "bus", "Mumbai", "Goa", 3, 20, 11, [("sleeper", 1450, 18), ("seater", 950, 24)]),
    ("Deccan Cabs", "cab", "Mumbai", "Pune", 1, 7, 3, [("sedan", 3200, 4)]),
    ("SkyHop Airlines", "airline", "Delhi", "Jaipur", 5, 9, 1, [("economy", 3899, 60), ("business", 11999, 8)]),
    ("Konkan Express Travels", "bus", "Goa", "Mumbai", 8, 19, 11, [("sleeper", 1500, 20)]),
]


def _user(db, email, role, first_name, last_name=None):
    user = User(email=email, password_hash=hash_password(DEMO_PASSWORD), role=role, is_verified=True)
    db.add(user)
    db.flush()
    db.add(UserProfile(user_id=user.id, first_name=first_name, last_name=last_name))
    return user


def seed(db):
    india = Country(name="India", code="IN")
    db.add(india)
    db.flush()

    cities = {}
    for name in CITIES:
        cities[name] = City(name=name, country_id=india.id)
        db.add(cities[name])
    amenities = [Amenity(name=label, code=amenity_code(label)) for label in AMENITIES]
    db.add_all(amenities)
    db.flush()
    print(f"  {len(cities)} cities, {len(amenities)} amenities")

    _user(db, "admin@everjourney.example", "admin", "Admin")
    hotelier = _user(db, "hotels@everjourney.example", "vendor", "Hema", "Rao")
    operator = _user(db, "travel@everjourney.example", "vendor", "Tarun", "Shah")
    guest = _user(db, "guest@everjourney.example", "user", "Gita", "Menon")
    print(f"  4 demo accounts (password: {DEMO_PASSWORD})")

    hotels = []
    room_total = 0
    for i, (name, city, address, stars, kind, room_types) in enumerate(HOTELS):
        hotel = Hotel(
            owner_user_id=hotelier.id,
            name=name,
            description=f"{name} in {city}.",
            address_line1=address,
            city_id=cities[city].id,
            star_rating=stars,
            status="active",
            property_type=kind,
        )
        hotel.amenities = amenities[i % 3: i % 3 + 4]
        db.add(hotel)
        db.flush()
        db.add(HotelImage(hotel_id=hotel.id, url="/static/img/hotel-placeholder.svg", is_primary=True, sort_order=1))

        for rt_name, guests, price, count, start in room_types:
            room_type = RoomType(hotel_id=hotel.id, name=rt_name, max_guests=guests)
            room_type.amenities = amenities[:3]
            db.add(room_type)
            db.flush()
            db.add(RoomTypeRate(room_type_id=room_type.id, currency="INR", price=Decimal(price), min_stay=1, inventory=count))
            db.add_all(
                Room(hotel_id=hotel.id, room_type_id=room_type.id, room_number=str(start + n), floor=(start + n) // 100, status="available")
                for n in range(count)
            )
            room_total += count
        hotels.append(hotel)

    db.add(HotelReview(hotel_id=hotels[0].id, user_id=guest.id, rating=5, title="Perfect sea view", comment="Lovely staff and a great breakfast."))
    db.add(HotelReview(hotel_id=hotels[2].id, user_id=guest.id, rating=4, title="Quiet and green", comment="Pool villa was worth it."))
    print(f"  {len(hotels)} hotels, {room_total} rooms")

    for title, city, nights, price, description in PACKAGES:
        location = Location(city=city, country="India")
        db.add(location)
        db.flush()
        package = Package(
            title=title,
            description=description,
            base_price=Decimal(price),
            currency="INR",
            nights=nights,
            dest_loc_id=location.id,
            is_active=True,
        )
        db.add(package)
        db.flush()
        for hotel in hotels:
            if hotel.city_id == cities[city].id:
                db.execute(package_hotels.insert().values(package_id=package.id, hotel_id=hotel.id))
        db.add(PackageInclusion(package_id=package.id, description="Daily breakfast"))
        db.add(PackageInclusion(package_id=package.id, description="Airport transfers"))
    print(f"  {len(PACKAGES)} packages")

    providers = {}
    for provider_name, kind, origin, destination, days, hour, hours, seats in ROUTES:
        provider = providers.get(provider_name)
        if provider is None:
            provider = TransportProvider(
                owner_user_id=operator.id,
                name=provider_name,
                provider_type=kind,
                contact_info={"email": operator.email},
            )
            db.add(provider)
            db.flush()
            providers[provider_name] = provider
        departure = utcnow().replace(hour=hour, minute=0, second=0, microsecond=0)
        departure += timedelta(days=days)
        route = TransportRoute(
            provider_id=provider.id,
            transport_type=kind,
            from_city_id=cities[origin].id,
            to_city_id=cities[destination].id,
            departure_datetime=departure,
            arrival_datetime=departure + timedelta(hours=hours),
        )
        db.add(route)
        db.flush()
        db.add_all(
            TransportSeat(route_id=route.id, seat_class=seat_class, price=Decimal(price), currency="INR", available_seats=left)
            for seat_class, price, left in seats
        )
    for provider in providers.values():
        db.add(TransportReview(provider_id=provider.id, user_id=guest.id, rating=4, comment="On time and comfortable."))
    print(f"  {len(providers)} transport providers, {len(ROUTES)} routes")


def main():
    reset = "--reset" in sys.argv[1:]
    print(f"Database: {engine.url.render_as_string(hide_password=True)}")

    if reset:
        Base.metadata.drop_all(engine)
        print("Dropped existing tables")
    Base.metadata.create_all(engine)
    print("Tables ready")

    with session_scope() as db:
        if db.query(User).count() and not reset:
            print("Database already has users; re-run with --reset to start over.")
            return
        seed(db)
    print("Demo data seeded.")


if __name__ == "__main__":
    main()
