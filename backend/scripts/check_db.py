"""Check database connectivity and print row counts and indexes for the catalogue tables."""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect, text

from everjourney.db.database import engine

TABLES = ["users", "hotels", "rooms", "room_type_rates", "packages", "transport_routes", "hotel_bookings", "transport_bookings"]

print(f"Database: {engine.url.render_as_string(hide_password=True)} ({engine.dialect.name})")

with engine.connect() as conn:
    conn.execute(text("SELECT 1"))
    print("  Connection OK")

    existing = set(inspect(conn).get_table_names())
    missing = [t for t in TABLES if t not in existing]
    if missing:
        print(f"  Missing tables: {', '.join(missing)} (start the app or run seed_demo.py)")

    for table in TABLES:
        if table not in existing:
            continue
        count = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
        indexes = [ix["name"] for ix in inspect(conn).get_indexes(table)]
        print(f"  {table}: {count} rows, indexes: {', '.join(indexes) or '-'}")

print("\nDone.")
