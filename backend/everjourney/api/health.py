"""
Health check and database diagnostic routes.
Probes for load-balancer readiness plus the JSON debug endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import inspect, text
from datetime import datetime, timezone
import time
import logging

from everjourney.core.config import settings
from everjourney.core.rate_limiting import limiter, HEALTH_LIMIT
from everjourney.db.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Track startup time for uptime reporting
_STARTUP_TIME = time.time()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
@limiter.limit(HEALTH_LIMIT)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Check system health: database connectivity, hotel count, uptime.
    A database failure reports ``degraded`` rather than failing the probe.
    """
    health = {
        "status": "healthy",
        "database": "unavailable",
        "hotels": 0,
        "uptime_seconds": int(time.time() - _STARTUP_TIME),
        "timestamp": _now(),
    }
    try:
        health["hotels"] = db.execute(text("SELECT COUNT(*) FROM hotels")).scalar() or 0
        health["database"] = "available"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        db.rollback()
        health["status"] = "degraded"
    return health


@router.get("/health/ready")
@limiter.limit(HEALTH_LIMIT)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """Ready only when the database answers."""
    try:
        db.execute(text("SELECT 1"))
        return {"ready": True, "timestamp": _now()}
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        db.rollback()
        return {"ready": False, "error": str(e), "timestamp": _now()}


@router.get("/health/live")
async def liveness_check():
    """Liveness probe. Returns 200 if service is running."""
    return {"alive": True, "uptime_seconds": int(time.time() - _STARTUP_TIME), "timestamp": _now()}


def _require_debug_endpoints() -> None:
    if not settings.debug_endpoints_enabled:
        raise HTTPException(status_code=404)


@router.get("/_dbinfo", dependencies=[Depends(_require_debug_endpoints)])
def db_info(db: Session = Depends(get_db)):
    """Which database the app is connected to and how big the main tables are."""
    dialect = db.get_bind().dialect.name
    info = {"ok": True, "dialect": dialect}
    try:
        if dialect == "postgresql":
            row = db.execute(text("SELECT current_database(), current_user, version()")).one()
            info.update(database=row[0], user=row[1], version=row[2])
        else:
            info.update(database=str(db.get_bind().url.database or ":memory:"),
                        version=db.execute(text("SELECT sqlite_version()")).scalar())
        for table in ("users", "hotels", "rooms", "packages", "transport_routes"):
            info[f"{table}_count"] = db.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar() or 0
    except SQLAlchemyError as e:
        logger.error(f"_dbinfo failed: {e}")
        db.rollback()
        return {"ok": False, "dialect": dialect, "error": str(e)}
    return info


@router.get("/debug-db", dependencies=[Depends(_require_debug_endpoints)])
def debug_db(db: Session = Depends(get_db)):
    """Connectivity probe plus the list of tables the schema created."""
    try:
        db.execute(text("SELECT 1"))
        tables = sorted(inspect(db.get_bind()).get_table_names())
    except SQLAlchemyError as e:
        logger.error(f"debug-db failed: {e}")
        db.rollback()
        return {"ok": False, "error": str(e)}
    return {"ok": True, "tables": tables, "timestamp": _now()}
