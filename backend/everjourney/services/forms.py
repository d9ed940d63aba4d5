"""
Form payloads for the HTML write flows.

Every field is a plain string so a half-filled form always parses; the
user-facing checks live in ``validation_errors()`` and produce the message
list the templates render. Checkboxes arrive as an optional value, multi-
selects as lists.
"""

from datetime import date
from typing import Any, ClassVar, Dict, List, Optional
import re

from pydantic import BaseModel, Field

from everjourney.services.listing import to_date, to_int, to_number

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
DEFAULT_ROOM_START = 201

SECRET_FIELDS = {"password", "password_confirm", "current_password", "new_password"}


class FormModel(BaseModel):
    def old(self) -> Dict[str, Any]:
        """Submitted values for re-rendering the form, secrets removed."""
        return {k: v for k, v in self.model_dump().items() if k not in SECRET_FIELDS}

    def validation_errors(self) -> List[str]:
        return []


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class LoginForm(FormModel):
    email: str = ""
    password: str = ""
    redirect: str = ""

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.normalized_email:
            errors.append("Please enter your email.")
        if not self.password:
            errors.append("Please enter your password.")
        return errors


class AccountForm(FormModel):
    """Fields shared by customer and vendor signups."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    password: str = ""
    password_confirm: str = ""
    accept_terms: Optional[str] = None
    redirect: str = ""

    terms_message: ClassVar[str] = "You must accept the Terms of Service."

    @property
    def normalized_email(self) -> str:
        return self.email.strip().lower()

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.first_name.strip():
            errors.append("First name is required.")
        if not EMAIL_RE.match(self.email.strip()):
            errors.append("A valid email is required.")
        if len(self.password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if self.password != self.password_confirm:
            errors.append("Passwords do not match.")
        if not self.accept_terms:
            errors.append(self.terms_message)
        return errors


class SignupForm(AccountForm):
    dob: str = ""
    gender: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    @property
    def birth_date(self) -> Optional[date]:
        return to_date(self.dob) if self.dob else None

    @property
    def has_address(self) -> bool:
        return any(
            v.strip()
            for v in (self.address_line1, self.address_line2, self.city, self.state, self.postal_code, self.country)
        )


class HotelVendorSignupForm(AccountForm):
    hotel_name: str = ""
    hotel_city: str = ""
    hotel_state: str = ""
    hotel_address: str = ""
    hotel_phone: str = ""
    star_rating: str = ""
    property_type: str = ""

    terms_message: ClassVar[str] = "You must accept the partner terms & conditions."

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        if not self.hotel_name.strip():
            errors.append("Hotel / property name is required.")
        if not self.hotel_city.strip():
            errors.append("City / destination is required.")
        if not self.hotel_address.strip():
            errors.append("Address is required.")
        return errors


class TravelVendorSignupForm(AccountForm):
    provider_name: str = ""
    provider_type: str = ""
    provider_code: str = ""
    service_city: str = ""
    registration_number: str = ""
    vehicle_type: str = ""

    terms_message: ClassVar[str] = "You must accept the partner terms & conditions."

    def validation_errors(self) -> List[str]:
        errors = super().validation_errors()
        if not self.provider_name.strip():
            errors.append("Business / agency name is required.")
        if not self.provider_type.strip():
            errors.append("Service type is required.")
        if not self.service_city.strip():
            errors.append("Primary service city / route is required.")
        return errors


class ChangePasswordForm(FormModel):
    current_password: str = ""
    new_password: str = ""

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.current_password:
            errors.append("Please enter your current password.")
        if len(self.new_password) < MIN_PASSWORD_LENGTH:
            errors.append(f"New password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return errors


class AddressForm(FormModel):
    label: str = "Home"
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    is_default: Optional[str] = None

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.line1.strip():
            errors.append("Address line 1 is required.")
        if not self.city.strip():
            errors.append("City is required.")
        return errors


# ---------------------------------------------------------------------------
# Vendor inventory
# ---------------------------------------------------------------------------

class HotelForm(FormModel):
    hotel_name: str = ""
    hotel_description: str = ""
    address_line1: str = ""
    address_line2: str = ""
    city_id: str = ""
    star_rating: str = ""
    hotel_phone: str = ""
    hotel_email: str = ""
    property_type: str = ""
    amenity_ids: List[str] = Field(default_factory=list)

    @property
    def stars(self) -> Optional[float]:
        """Out-of-range or unparseable ratings are stored as unrated."""
        value = to_number(self.star_rating)
        if value is None or not 0 <= value <= 5:
            return None
        return value

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.hotel_name.strip():
            errors.append("Hotel name is required.")
        if not self.address_line1.strip():
            errors.append("Address line 1 is required.")
        if to_int(self.city_id) is None:
            errors.append("City is required.")
        return errors


class RoomsForm(FormModel):
    room_type_name: str = ""
    room_type_description: str = ""
    base_price: str = ""
    currency: str = "INR"
    room_count: str = ""
    max_guests: str = ""
    area_sq_m: str = ""
    room_number_start: str = ""
    min_stay: str = ""
    max_stay: str = ""
    default_floor: str = ""
    rooms_active: Optional[str] = None
    room_amenity_ids: List[str] = Field(default_factory=list)

    @property
    def price(self) -> Optional[float]:
        return to_number(self.base_price)

    @property
    def count(self) -> int:
        return to_int(self.room_count, 0)

    @property
    def guests(self) -> Optional[int]:
        if not self.max_guests.strip():
            return 2
        return to_int(self.max_guests)

    @property
    def start_number(self) -> int:
        return to_int(self.room_number_start, DEFAULT_ROOM_START)

    def candidate_numbers(self) -> List[str]:
        """The contiguous run of room numbers this request would create."""
        return [str(self.start_number + i) for i in range(max(self.count, 0))]

    def validation_errors(self) -> List[str]:
        errors = []
        if not self.room_type_name.strip():
            errors.append("Room type name is required.")
        if self.price is None or self.price < 0:
            errors.append("Valid base price per night is required.")
        if self.count <= 0:
            errors.append("Please specify how many rooms to generate.")
        if self.guests is None or self.guests <= 0:
            errors.append("Max guests must be at least 1.")
        return errors


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

class BookingForm(FormModel):
    room_type_id: str = ""
    checkin: str = ""
    checkout: str = ""
    guests: str = "1"

    @property
    def checkin_date(self) -> Optional[date]:
        return to_date(self.checkin)

    @property
    def checkout_date(self) -> Optional[date]:
        return to_date(self.checkout)

    @property
    def guest_count(self) -> int:
        return to_int(self.guests, 1)

    def validation_errors(self) -> List[str]:
        errors = []
        if to_int(self.room_type_id) is None:
            errors.append("Please choose a room type.")
        if self.checkin_date is None or self.checkout_date is None:
            errors.append("Please choose check-in and check-out dates.")
        elif self.checkout_date <= self.checkin_date:
            errors.append("Check-out must be after check-in.")
        elif self.checkin_date < date.today():
            errors.append("Check-in cannot be in the past.")
        if self.guest_count < 1:
            errors.append("At least one guest is required.")
        return errors
