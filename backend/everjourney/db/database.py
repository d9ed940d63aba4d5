"""
Database connection and session management.
Pooled engine with health-checked connections and automatic recycling.
Supports PostgreSQL (production) and SQLite (local development and tests).
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator, Iterator
import logging
import os

from everjourney.core.config import settings
from everjourney.db.models import Base

logger = logging.getLogger(__name__)

if settings.is_sqlite:
    # SQLite: single shared connection, foreign keys enforced
    # Resolve relative file paths against the backend directory
    db_url = settings.database_url
    db_path = db_url.replace("sqlite:///", "", 1)
    if db_url.startswith("sqlite:///") and db_path.startswith("./"):
        backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
        db_url = f"sqlite:///{os.path.join(backend_dir, db_path[2:])}"

    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    # PostgreSQL: production pooling
    _connect_args = {
        "connect_timeout": 10,
        "options": "-c statement_timeout=30000",
    }

    engine = create_engine(
        settings.database_url,
        poolclass=QueuePool,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=settings.database_pool_pre_ping,
        pool_timeout=30,
        echo=False,
        connect_args=_connect_args,
    )

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Tag connections so they are easy to find in pg_stat_activity."""
        cursor = dbapi_conn.cursor()
        cursor.execute("SET application_name = 'everjourney'")
        cursor.close()

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection for a request-scoped database session.
    The session (and its pooled connection) is always released when the
    request finishes, whatever the outcome.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts: commit on success, rollback on error, always closed."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create database tables at startup."""
    logger.info("Initializing database schema...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized")
