"""
Sign-in, signup and logout for customers and for hotel / travel vendors.
"""

from typing import Annotated, Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
import logging

from everjourney.core.rate_limiting import limiter, AUTH_LIMIT
from everjourney.core.security import (
    ROLE_VENDOR,
    VENDOR_HOTEL,
    VENDOR_TRAVEL,
    current_user,
    home_for,
    login_session,
    logout_session,
    safe_redirect,
)
from everjourney.core.templating import render
from everjourney.db.database import get_db
from everjourney.services.accounts import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    authenticate,
    register_hotel_vendor,
    register_travel_vendor,
    register_user,
)
from everjourney.services.forms import (
    AccountForm,
    HotelVendorSignupForm,
    LoginForm,
    SignupForm,
    TravelVendorSignupForm,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

VENDOR_PAGES = {
    VENDOR_HOTEL: {
        "label": "Hotel partner",
        "signup_template": "auth/vendor/hotel_signup.html",
        "register": register_hotel_vendor,
    },
    VENDOR_TRAVEL: {
        "label": "Travel partner",
        "signup_template": "auth/vendor/travel_signup.html",
        "register": register_travel_vendor,
    },
}


def _redirect(target: str) -> RedirectResponse:
    return RedirectResponse(target, status_code=303)


def _signed_in_vendor(request: Request) -> Optional[RedirectResponse]:
    user = current_user(request)
    if user and user.get("role") == ROLE_VENDOR:
        return _redirect("/vendor/dashboard")
    return None


# ---------------------------------------------------------------------------
# Landing + customer auth
# ---------------------------------------------------------------------------

@router.get("/auth")
def auth_index(request: Request):
    user = current_user(request)
    if user:
        return _redirect(home_for(user))
    return render(request, "auth/index.html", {
        "title": "Login or Sign up",
        "redirect": request.query_params.get("redirect", ""),
    })


@router.get("/auth/login")
@router.get("/login")
def login_page(request: Request):
    if current_user(request):
        return _redirect("/")
    return render(request, "auth/login.html", {
        "title": "Sign in",
        "errors": [],
        "old": {"email": "", "redirect": request.query_params.get("redirect", "")},
    })


@router.post("/auth/login")
@limiter.limit(AUTH_LIMIT)
def login(request: Request, form: Annotated[LoginForm, Form()], db: Session = Depends(get_db)):
    return _login(request, db, form, "auth/login.html", {"title": "Sign in"}, role=None, vendor_type=None)


@router.get("/auth/signup")
@router.get("/signup")
def signup_page(request: Request):
    if current_user(request):
        return _redirect("/")
    return render(request, "auth/signup.html", {
        "title": "Sign up",
        "errors": [],
        "old": {"redirect": request.query_params.get("redirect", "")},
    })


@router.post("/auth/signup")
@limiter.limit(AUTH_LIMIT)
def signup(request: Request, form: Annotated[SignupForm, Form()], db: Session = Depends(get_db)):
    return _signup(request, db, form, register_user, "auth/signup.html", {"title": "Sign up"}, "/", None)


@router.get("/auth/logout")
@router.post("/auth/logout")
def logout(request: Request):
    user = current_user(request)
    logout_session(request)
    if user:
        logger.info(f"Signed out user {user['id']}")
    return _redirect("/")


# ---------------------------------------------------------------------------
# Vendor auth
# ---------------------------------------------------------------------------

@router.get("/vendor/join")
def vendor_join(request: Request):
    return _signed_in_vendor(request) or render(request, "auth/vendor/index.html", {"title": "Join as Vendor"})


def _vendor_login_context(vendor_type: str) -> Dict[str, Any]:
    return {
        "title": f"{VENDOR_PAGES[vendor_type]['label']} login",
        "vendor_type": vendor_type,
        "vendor_label": VENDOR_PAGES[vendor_type]["label"],
    }


def _vendor_login_page(request: Request, vendor_type: str):
    return _signed_in_vendor(request) or render(request, "auth/vendor/login.html", {
        **_vendor_login_context(vendor_type),
        "errors": [],
        "old": {"email": "", "redirect": request.query_params.get("redirect", "")},
    })


def _vendor_signup_page(request: Request, vendor_type: str):
    page = VENDOR_PAGES[vendor_type]
    return _signed_in_vendor(request) or render(request, page["signup_template"], {
        "title": f"{page['label']} signup",
        "errors": [],
        "old": {},
    })


@router.get("/vendor/hotel/login")
def hotel_vendor_login_page(request: Request):
    return _vendor_login_page(request, VENDOR_HOTEL)


@router.post("/vendor/hotel/login")
@limiter.limit(AUTH_LIMIT)
def hotel_vendor_login(request: Request, form: Annotated[LoginForm, Form()], db: Session = Depends(get_db)):
    return _login(request, db, form, "auth/vendor/login.html", _vendor_login_context(VENDOR_HOTEL),
                  role=ROLE_VENDOR, vendor_type=VENDOR_HOTEL)


@router.get("/vendor/hotel/signup")
def hotel_vendor_signup_page(request: Request):
    return _vendor_signup_page(request, VENDOR_HOTEL)


@router.post("/vendor/hotel/signup")
@limiter.limit(AUTH_LIMIT)
def hotel_vendor_signup(
    request: Request, form: Annotated[HotelVendorSignupForm, Form()], db: Session = Depends(get_db)
):
    return _vendor_signup(request, db, form, VENDOR_HOTEL)


@router.get("/vendor/travel/login")
def travel_vendor_login_page(request: Request):
    return _vendor_login_page(request, VENDOR_TRAVEL)


@router.post("/vendor/travel/login")
@limiter.limit(AUTH_LIMIT)
def travel_vendor_login(request: Request, form: Annotated[LoginForm, Form()], db: Session = Depends(get_db)):
    return _login(request, db, form, "auth/vendor/login.html", _vendor_login_context(VENDOR_TRAVEL),
                  role=ROLE_VENDOR, vendor_type=VENDOR_TRAVEL)


@router.get("/vendor/travel/signup")
def travel_vendor_signup_page(request: Request):
    return _vendor_signup_page(request, VENDOR_TRAVEL)


@router.post("/vendor/travel/signup")
@limiter.limit(AUTH_LIMIT)
def travel_vendor_signup(
    request: Request, form: Annotated[TravelVendorSignupForm, Form()], db: Session = Depends(get_db)
):
    return _vendor_signup(request, db, form, VENDOR_TRAVEL)


def _vendor_signup(request: Request, db: Session, form: AccountForm, vendor_type: str):
    page = VENDOR_PAGES[vendor_type]
    return _signup(
        request, db, form, page["register"], page["signup_template"],
        {"title": f"{page['label']} signup"}, "/vendor/dashboard", vendor_type,
    )


# ---------------------------------------------------------------------------
# Shared handlers
# ---------------------------------------------------------------------------

def _login(
    request: Request,
    db: Session,
    form: LoginForm,
    template: str,
    context: Dict[str, Any],
    role: Optional[str],
    vendor_type: Optional[str],
):
    old = {"email": form.normalized_email, "redirect": form.redirect}

    def failed(errors, status_code):
        return render(request, template, {**context, "errors": errors, "old": old}, status_code=status_code)

    errors = form.validation_errors()
    if errors:
        return failed(errors, 400)

    try:
        user = authenticate(db, form.email, form.password, role=role)
    except InvalidCredentials as e:
        return failed([str(e)], 401)
    except Exception:
        logger.exception("Sign-in failed")
        return failed(["Server error, please try again."], 500)

    session_user = login_session(request, user, vendor_type)
    default = "/vendor/dashboard" if vendor_type else home_for(session_user)
    return _redirect(safe_redirect(form.redirect, default))


def _signup(
    request: Request,
    db: Session,
    form: AccountForm,
    register: Callable[[Session, Any], Any],
    template: str,
    context: Dict[str, Any],
    default_target: str,
    vendor_type: Optional[str],
):
    def failed(errors, status_code):
        return render(request, template, {**context, "errors": errors, "old": form.old()}, status_code=status_code)

    errors = form.validation_errors()
    if errors:
        return failed(errors, 400)

    try:
        user = register(db, form)
    except EmailAlreadyRegistered:
        return failed(["Email already registered. Try signing in."], 409)
    except Exception:
        logger.exception("Signup failed")
        return failed(["Server error creating account, please try again."], 500)

    login_session(request, user, vendor_type)
    return _redirect(safe_redirect(form.redirect, default_target))
