"""
Permission checks.

Role gates live in api/deps.py as dependencies. The helpers here answer
row-level questions ("may this user touch this booking?") that need the
row loaded first.
"""
from typing import Optional

from homecare.models.user import User
from homecare.models.booking import Booking
from homecare.models.provider import ProviderProfile
from homecare.core.exceptions import PermissionDenied


def is_booking_homeowner(user: User, booking: Booking) -> bool:
    return booking.homeowner_id == user.id


def is_booking_provider(profile: Optional[ProviderProfile], booking: Booking) -> bool:
    return profile is not None and booking.provider_id == profile.id


def can_view_booking(user: User, profile: Optional[ProviderProfile], booking: Booking) -> bool:
    """Admins and both sides of the booking can see it."""
    if user.is_admin:
        return True
    return is_booking_homeowner(user, booking) or is_booking_provider(profile, booking)


def require_founding_provider(profile: Optional[ProviderProfile]) -> ProviderProfile:
    if profile is None or not profile.is_founding_provider:
        raise PermissionDenied(detail="Only founding providers can manage discount codes")
    return profile
