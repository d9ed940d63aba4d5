"""
Profile pages (customer, vendor or admin view), address book and password change.
"""

from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
import logging

from everjourney.core.rate_limiting import limiter, AUTH_LIMIT, WRITE_LIMIT
from everjourney.core.security import ROLE_ADMIN, ROLE_VENDOR, require_login
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.accounts import InvalidCredentials, add_address, change_password
from everjourney.services.dashboards import admin_overview, user_profile, vendor_dashboard
from everjourney.services.forms import AddressForm, ChangePasswordForm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


def _profile_page(request: Request, db: Session, user: Dict[str, Any], password_errors: List[str], status_code: int = 200):
    role = user.get("role")
    if role == ROLE_ADMIN:
        return render(request, "admin/dashboard.html", {"title": "Admin", **admin_overview(db)}, status_code=status_code)
    if role == ROLE_VENDOR:
        context = {"title": "Vendor profile", "password_errors": password_errors, **vendor_dashboard(db, user)}
        return render(request, "profile/vendor.html", context, status_code=status_code)
    context = {"title": "My profile", "password_errors": password_errors, **user_profile(db, user["id"])}
    return render(request, "profile/user.html", context, status_code=status_code)


@router.get("")
def profile(request: Request, user: Dict[str, Any] = Depends(require_login), db: Session = Depends(get_db)):
    return _profile_page(request, db, user, [])


@router.get("/addresses/new")
def new_address(request: Request, user: Dict[str, Any] = Depends(require_login)):
    return render(request, "profile/address_new.html", {"title": "Add address", "old": {}, "errors": []})


@router.post("/addresses")
@limiter.limit(WRITE_LIMIT)
def create_address(
    request: Request,
    form: Annotated[AddressForm, Form()],
    user: Dict[str, Any] = Depends(require_login),
    db: Session = Depends(get_db),
):
    errors = form.validation_errors()
    if errors:
        return render(request, "profile/address_new.html",
                      {"title": "Add address", "old": form.old(), "errors": errors}, status_code=400)
    try:
        add_address(db, user["id"], form)
    except Exception:
        logger.exception(f"Adding address failed for user {user['id']}")
        return render(request, "profile/address_new.html",
                      {"title": "Add address", "old": form.old(), "errors": ["Server error, please try again."]},
                      status_code=500)
    return RedirectResponse("/profile", status_code=303)


@router.post("/change-password")
@limiter.limit(AUTH_LIMIT)
def update_password(
    request: Request,
    form: Annotated[ChangePasswordForm, Form()],
    user: Dict[str, Any] = Depends(require_login),
    db: Session = Depends(get_db),
):
    errors = form.validation_errors()
    if errors:
        return _profile_page(request, db, user, errors, 400)
    try:
        change_password(db, user["id"], form)
    except LookupError:
        raise HTTPException(status_code=404, detail="User not found")
    except InvalidCredentials as e:
        return _profile_page(request, db, user, [str(e)], 401)
    return RedirectResponse("/profile", status_code=303)
