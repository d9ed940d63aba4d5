"""
Jinja2 environment for the server-rendered pages.

``render`` is the single entry point routes use: it injects the signed-in
user and the page metadata every layout needs.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.templating import Jinja2Templates

from everjourney.core.config import settings
from everjourney.core.security import current_user

PACKAGE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def page_url(request: Request, page: int) -> str:
    """Current URL with ``page`` replaced; every other query key is kept."""
    pairs = [(k, v) for k, v in request.query_params.multi_items() if k != "page"]
    pairs.append(("page", str(page)))
    return f"{request.url.path}?{urlencode(pairs)}"


def money(value: Any, currency: str = "INR") -> str:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "-"
    symbol = "₹" if currency in (None, "", "INR") else f"{currency} "
    return f"{symbol}{amount:,.0f}"


def datefmt(value: Any, fmt: str = "%d %b %Y") -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime(fmt)
    return str(value or "")


templates.env.globals["page_url"] = page_url
templates.env.globals["app_name"] = settings.app_name
templates.env.filters["money"] = money
templates.env.filters["datefmt"] = datefmt


def render(
    request: Request,
    name: str,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None,
):
    ctx: Dict[str, Any] = {
        "current_user": current_user(request),
        "active_page": request.url.path,
        "title": settings.app_name,
    }
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code, headers=headers)
