"""
Authentication helpers: password hashing, the session user record and the
route guards used as FastAPI dependencies.

Session payload: {id, email, role, vendor_type?, is_verified}
"""

from typing import Any, Dict, Optional
from urllib.parse import quote, urlsplit
import logging

from fastapi import HTTPException, Request
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)

SESSION_KEY = "user"
ROLE_USER = "user"
ROLE_VENDOR = "vendor"
ROLE_ADMIN = "admin"
VENDOR_HOTEL = "hotel"
VENDOR_TRAVEL = "travel"


class LoginRequired(Exception):
    """Raised by guards when no user is signed in; handled as a redirect to the login page."""

    def __init__(self, next_url: str = "/profile"):
        super().__init__(next_url)
        self.next_url = next_url

    @property
    def login_url(self) -> str:
        return f"/auth/login?redirect={quote(self.next_url, safe='')}"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


def safe_redirect(target: Optional[str], default: str = "/") -> str:
    """Only same-site absolute paths are followed after login."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return default


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

def login_session(request: Request, user: Any, vendor_type: Optional[str] = None) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "id": user.id,
        "email": user.email,
        "role": user.role or ROLE_USER,
        "is_verified": bool(user.is_verified),
    }
    if vendor_type:
        record["vendor_type"] = vendor_type
    request.session.clear()
    request.session[SESSION_KEY] = record
    logger.info(f"Signed in user {user.id} as {record['role']}")
    return record


def logout_session(request: Request) -> None:
    request.session.clear()


def current_user(request: Request) -> Optional[Dict[str, Any]]:
    if "session" not in request.scope:
        return None
    user = request.session.get(SESSION_KEY)
    if isinstance(user, dict) and user.get("id"):
        return user
    return None


def home_for(user: Dict[str, Any]) -> str:
    role = user.get("role")
    if role == ROLE_ADMIN:
        return "/admin/dashboard"
    if role == ROLE_VENDOR:
        return "/vendor/dashboard"
    return "/"


# ---------------------------------------------------------------------------
# Route guards (FastAPI dependencies)
# ---------------------------------------------------------------------------

def _next_url(request: Request) -> str:
    """Where to return after login; form posts go back to the page that submitted them."""
    if request.method != "GET":
        referer = urlsplit(request.headers.get("referer", ""))
        if referer.netloc and referer.netloc != request.url.netloc:
            return "/"
        return safe_redirect(referer.path + (f"?{referer.query}" if referer.query else ""), "/")
    url = request.url.path
    if request.url.query:
        url += f"?{request.url.query}"
    return url


def require_login(request: Request) -> Dict[str, Any]:
    user = current_user(request)
    if user is None:
        raise LoginRequired(_next_url(request))
    return user


def require_vendor(request: Request) -> Dict[str, Any]:
    user = require_login(request)
    if user.get("role") != ROLE_VENDOR:
        raise HTTPException(status_code=403, detail="Vendor access only")
    return user


def require_hotel_vendor(request: Request) -> Dict[str, Any]:
    user = require_vendor(request)
    if (user.get("vendor_type") or VENDOR_HOTEL) != VENDOR_HOTEL:
        raise HTTPException(status_code=403, detail="Only hotel vendors can manage hotels and rooms.")
    return user


def require_admin(request: Request) -> Dict[str, Any]:
    user = require_login(request)
    if user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Admin access only")
    return user
