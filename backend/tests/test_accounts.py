import pytest

from everjourney.db.models import Hotel, TransportProvider, User, UserAddress
from everjourney.db.repositories import UserRepository
from everjourney.services.accounts import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    add_address,
    authenticate,
    change_password,
    register_hotel_vendor,
    register_travel_vendor,
    register_user,
)
from everjourney.services.forms import (
    AddressForm,
    ChangePasswordForm,
    HotelVendorSignupForm,
    SignupForm,
    TravelVendorSignupForm,
)

ACCOUNT = dict(
    first_name="Mira",
    email="  Mira@Example.com ",
    password="long-enough",
    password_confirm="long-enough",
    accept_terms="on",
)


def test_signup_creates_user_profile_and_address(db):
    user = register_user(db, SignupForm(**ACCOUNT, city="Pune", address_line1="4 Lake Road", dob="1990-05-01"))

    assert user.email == "mira@example.com"
    assert user.role == "user"
    assert user.profile.first_name == "Mira"
    assert str(user.profile.dob) == "1990-05-01"
    [address] = user.addresses
    assert address.is_default
    assert address.city_name == "Pune"


def test_signup_without_address_fields_skips_address(db):
    user = register_user(db, SignupForm(**ACCOUNT))
    assert db.query(UserAddress).filter_by(user_id=user.id).count() == 0


def test_duplicate_signup_is_rejected(db):
    register_user(db, SignupForm(**ACCOUNT))
    with pytest.raises(EmailAlreadyRegistered):
        register_user(db, SignupForm(**{**ACCOUNT, "email": "MIRA@example.com"}))
    assert db.query(User).count() == 1


def test_signup_race_is_settled_by_the_unique_constraint(db, monkeypatch):
    register_user(db, SignupForm(**ACCOUNT))
    # Second request passed the pre-check before the first committed
    monkeypatch.setattr(UserRepository, "email_taken", lambda self, email: False)

    with pytest.raises(EmailAlreadyRegistered):
        register_user(db, SignupForm(**ACCOUNT))
    assert db.query(User).count() == 1


def test_signup_validation_messages():
    form = SignupForm(email="nope", password="short", password_confirm="other")
    errors = form.validation_errors()
    assert "First name is required." in errors
    assert "A valid email is required." in errors
    assert "Password must be at least 8 characters." in errors
    assert "Passwords do not match." in errors
    assert "You must accept the Terms of Service." in errors
    assert "password" not in form.old()


def test_hotel_vendor_signup_resolves_city_by_name(db, catalog):
    form = HotelVendorSignupForm(
        **{**ACCOUNT, "email": "owner@example.com"},
        hotel_name="Harbour House",
        hotel_city="mumbai",
        hotel_address="9 Dock Street",
        star_rating="4",
    )
    user = register_hotel_vendor(db, form)

    hotel = db.query(Hotel).filter_by(owner_user_id=user.id).one()
    assert user.role == "vendor"
    assert hotel.city_id == catalog.mumbai.id
    assert hotel.star_rating == 4
    assert hotel.email == "owner@example.com"


def test_hotel_vendor_signup_requires_hotel_fields():
    errors = HotelVendorSignupForm(**ACCOUNT).validation_errors()
    assert "Hotel / property name is required." in errors
    assert "City / destination is required." in errors


def test_travel_vendor_signup_creates_provider(db):
    form = TravelVendorSignupForm(
        **ACCOUNT, provider_name="Coastline Coaches", provider_type="bus", service_city="Goa",
    )
    user = register_travel_vendor(db, form)

    provider = db.query(TransportProvider).filter_by(owner_user_id=user.id).one()
    assert provider.name == "Coastline Coaches"
    assert provider.contact_info["service_city"] == "Goa"


def test_authenticate(db, catalog):
    assert authenticate(db, "GUEST@example.com", "correct-horse").id == catalog.guest.id
    with pytest.raises(InvalidCredentials):
        authenticate(db, "guest@example.com", "wrong-password")
    with pytest.raises(InvalidCredentials):
        authenticate(db, "nobody@example.com", "correct-horse")
    with pytest.raises(InvalidCredentials):
        authenticate(db, "guest@example.com", "correct-horse", role="vendor")


def test_change_password(db, catalog):
    with pytest.raises(InvalidCredentials):
        change_password(db, catalog.guest.id, ChangePasswordForm(current_password="nope", new_password="new-password"))

    change_password(db, catalog.guest.id, ChangePasswordForm(current_password="correct-horse", new_password="new-password"))
    assert authenticate(db, "guest@example.com", "new-password").id == catalog.guest.id

    with pytest.raises(LookupError):
        change_password(db, 9999, ChangePasswordForm(current_password="x", new_password="new-password"))


def test_new_default_address_replaces_the_old_default(db, catalog):
    first = add_address(db, catalog.guest.id, AddressForm(line1="1 First St", city="Pune"))
    assert first.is_default

    second = add_address(db, catalog.guest.id, AddressForm(line1="2 Second St", city="Goa", is_default="on"))
    db.refresh(first)
    assert second.is_default
    assert not first.is_default

    third = add_address(db, catalog.guest.id, AddressForm(line1="3 Third St", city="Goa"))
    assert not third.is_default
