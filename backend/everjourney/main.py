"""
EverJourney -- FastAPI application
Server-rendered travel booking site: stays, packages, transport and deals.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from contextlib import asynccontextmanager
import logging
import logging.config
import time

from slowapi.errors import RateLimitExceeded

from everjourney.core.config import settings
from everjourney.core.rate_limiting import limiter, rate_limit_handler
from everjourney.core.security import LoginRequired
from everjourney.core.templating import STATIC_DIR, render
from everjourney.db.database import init_db
from everjourney.api import (
    health,
    routes_admin,
    routes_auth,
    routes_home,
    routes_packages,
    routes_profile,
    routes_stays,
    routes_transport,
    routes_vendor,
)

# Configure logging
logging_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "detailed": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
        },
        "json": {
            "()": "everjourney.core.monitoring.JSONFormatter",
        },
    },
    "handlers": {
        "default": {
            "formatter": "json" if settings.log_format == "json" else "detailed",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "everjourney": {"handlers": ["default"], "level": settings.log_level},
        "uvicorn": {"handlers": ["default"], "level": "INFO"},
        "sqlalchemy": {"handlers": ["default"], "level": "WARNING"},
    },
}

logging.config.dictConfig(logging_config)
logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGES = {
    404: "We couldn't find that page.",
    403: "You don't have access to this page.",
    405: "That action isn't allowed here.",
    400: "Some of the details sent were not valid.",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment} | Workers: {settings.api_workers}")

    if settings.uses_default_secret:
        logger.warning("SESSION_SECRET is not set; using the insecure development default")

    init_db()
    logger.info("Application startup complete -- ready to serve")

    yield

    logger.info("Application shutting down")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="EverJourney -- hotels, holiday packages and transport in one place.",
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

# GZip compression (min 500 bytes)
app.add_middleware(GZipMiddleware, minimum_size=500)

# Signed cookie sessions
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=settings.session_cookie,
    max_age=settings.session_max_age,
    same_site="lax",
)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


# Combined request logging + security headers middleware (single pass)
@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Log requests with timing + add security headers in one pass."""
    start = time.perf_counter()
    request_id = request.headers.get("X-Request-ID", "")

    response = await call_next(request)

    elapsed = time.perf_counter() - start
    response.headers["X-Process-Time"] = f"{elapsed:.3f}"

    # Security headers
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"

    if request_id:
        response.headers["X-Request-ID"] = request_id

    # Log non-static requests
    path = request.url.path
    if not path.startswith("/static"):
        logger.info(
            f"{request.method} {path} -> {response.status_code} in {elapsed:.3f}s",
            extra={"path": path, "status_code": response.status_code, "duration_ms": round(elapsed * 1000, 1)},
        )

    return response


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(exc.login_url, status_code=303)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework and route errors (404, 403, ...) as the site error page."""
    message = exc.detail
    if message in (None, "", "Not Found", "Forbidden"):
        message = DEFAULT_ERROR_MESSAGES.get(exc.status_code, "Something went wrong.")
    return render(
        request,
        "error.html",
        {"status_code": exc.status_code, "message": message},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Out-of-range or malformed ids in the URL name no page; other bad input is a 400."""
    status_code = 404 if any(err.get("loc", ("",))[0] == "path" for err in exc.errors()) else 400
    return render(
        request,
        "error.html",
        {"status_code": status_code, "message": DEFAULT_ERROR_MESSAGES[status_code]},
        status_code=status_code,
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions gracefully."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return render(
        request,
        "error.html",
        {
            "status_code": 500,
            "message": str(exc) if settings.debug else "Something went wrong on our side. Please try again.",
        },
        status_code=500,
    )


# Include routers
app.include_router(health.router)
app.include_router(routes_home.router)
app.include_router(routes_auth.router)
app.include_router(routes_stays.router)
app.include_router(routes_packages.router)
app.include_router(routes_transport.router)
app.include_router(routes_vendor.router)
app.include_router(routes_profile.router)
app.include_router(routes_admin.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "everjourney.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
