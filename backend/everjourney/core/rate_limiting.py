"""
Rate Limiting & Throttling
Per-IP request throttling for listing pages and auth forms.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import HTMLResponse
import logging

from everjourney.core.config import settings

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


# Rate limit definitions
SEARCH_LIMIT = "120/minute"
AUTH_LIMIT = "20/minute"
WRITE_LIMIT = "30/minute"
HEALTH_LIMIT = "1000/minute"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> HTMLResponse:
    """Return a plain 429 page when the rate limit is exceeded."""
    client_host = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for {client_host}: {request.url.path}")

    return HTMLResponse(
        "<h1>Too many requests</h1><p>Please slow down and try again in a minute.</p>",
        status_code=429,
        headers={"Retry-After": "60"},
    )
