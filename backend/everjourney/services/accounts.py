"""
Account flows: customer and vendor signup, sign-in, password change and
address book.

Each signup is one transaction (user -> profile -> role-specific row). The
email pre-check is only a fast path; the UNIQUE constraint on users.email
decides, and its violation surfaces as the same EmailAlreadyRegistered.
"""

from typing import Any, Callable, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from everjourney.core.security import (
    ROLE_USER,
    ROLE_VENDOR,
    hash_password,
    verify_password,
)
from everjourney.db.models import (
    City,
    Hotel,
    TransportProvider,
    User,
    UserAddress,
    UserProfile,
    utcnow,
)
from everjourney.db.repositories import UserRepository
from everjourney.services.forms import (
    AccountForm,
    AddressForm,
    ChangePasswordForm,
    HotelVendorSignupForm,
    SignupForm,
    TravelVendorSignupForm,
)
from everjourney.services.listing import to_number

logger = logging.getLogger(__name__)


class EmailAlreadyRegistered(Exception):
    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email


class InvalidCredentials(Exception):
    pass


def _blank_to_none(value: str) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _create_account(
    db: Session,
    form: AccountForm,
    role: str,
    add_children: Callable[[User], None],
    **profile_fields: Any,
) -> User:
    email = form.normalized_email
    if UserRepository(db).email_taken(email):
        raise EmailAlreadyRegistered(email)

    try:
        user = User(
            email=email,
            password_hash=hash_password(form.password),
            role=role,
            is_verified=False,
        )
        db.add(user)
        db.flush()

        db.add(UserProfile(
            user_id=user.id,
            first_name=form.first_name.strip(),
            last_name=_blank_to_none(form.last_name),
            phone=_blank_to_none(form.phone),
            **profile_fields,
        ))
        add_children(user)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Signup for {email} lost a uniqueness race: {e.orig}")
        raise EmailAlreadyRegistered(email) from e
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created {role} account {user.id}")
    return user


def register_user(db: Session, form: SignupForm) -> User:
    """Customer signup: user + profile (+ default address when any address field is given)."""

    def add_children(user: User) -> None:
        if form.has_address:
            db.add(UserAddress(
                user_id=user.id,
                label="Home",
                line1=form.address_line1.strip(),
                line2=form.address_line2.strip(),
                city_name=_blank_to_none(form.city),
                state=form.state.strip(),
                postal_code=form.postal_code.strip(),
                is_default=True,
            ))

    return _create_account(
        db, form, ROLE_USER, add_children,
        dob=form.birth_date, gender=_blank_to_none(form.gender),
    )


def _city_named(db: Session, name: str) -> Optional[City]:
    return db.query(City).filter(func.lower(City.name) == name.strip().lower()).first()


def register_hotel_vendor(db: Session, form: HotelVendorSignupForm) -> User:
    """Hotel partner signup: vendor user + profile + their first hotel."""

    def add_children(user: User) -> None:
        city = _city_named(db, form.hotel_city)
        db.add(Hotel(
            owner_user_id=user.id,
            name=form.hotel_name.strip(),
            address_line1=form.hotel_address.strip(),
            address_line2=form.hotel_state.strip() or form.hotel_city.strip(),
            city_id=city.id if city else None,
            star_rating=to_number(form.star_rating),
            phone=_blank_to_none(form.hotel_phone) or _blank_to_none(form.phone),
            email=form.normalized_email,
            status="active",
            property_type=_blank_to_none(form.property_type),
        ))

    return _create_account(db, form, ROLE_VENDOR, add_children)


def register_travel_vendor(db: Session, form: TravelVendorSignupForm) -> User:
    """Transport partner signup: vendor user + profile + transport provider."""

    def add_children(user: User) -> None:
        db.add(TransportProvider(
            owner_user_id=user.id,
            name=form.provider_name.strip(),
            provider_type=form.provider_type.strip() or "other",
            code=_blank_to_none(form.provider_code),
            contact_info={
                "phone": _blank_to_none(form.phone),
                "email": form.normalized_email,
                "service_city": form.service_city.strip(),
            },
            registration_number=_blank_to_none(form.registration_number),
            vehicle_type=_blank_to_none(form.vehicle_type),
        ))

    return _create_account(db, form, ROLE_VENDOR, add_children)


def authenticate(db: Session, email: str, password: str, role: Optional[str] = None) -> User:
    user = UserRepository(db).get_by_email(email, role=role)
    if user is None or not verify_password(user.password_hash, password):
        logger.info(f"Failed sign-in for {email.strip().lower()}")
        raise InvalidCredentials("Invalid email or password.")
    return user


def change_password(db: Session, user_id: int, form: ChangePasswordForm) -> None:
    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise LookupError("User not found")
    if not verify_password(user.password_hash, form.current_password):
        raise InvalidCredentials("Current password incorrect")

    try:
        user.password_hash = hash_password(form.new_password)
        user.updated_at = utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Password changed for user {user_id}")


def add_address(db: Session, user_id: int, form: AddressForm) -> UserAddress:
    make_default = bool(form.is_default) or not UserRepository(db).addresses(user_id)
    try:
        if make_default:
            db.query(UserAddress).filter(UserAddress.user_id == user_id).update({"is_default": False})
        address = UserAddress(
            user_id=user_id,
            label=form.label.strip() or "Home",
            line1=form.line1.strip(),
            line2=form.line2.strip(),
            city_name=form.city.strip(),
            state=form.state.strip(),
            postal_code=form.postal_code.strip(),
            is_default=make_default,
        )
        db.add(address)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return address
