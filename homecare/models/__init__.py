"""
Database Models

Importing this package registers every table on Base.metadata.
"""
from homecare.models.user import User, UserRole
from homecare.models.plan import Plan, UserPlan, ReportDownload
from homecare.models.property import Property
from homecare.models.task import MasterTask, UserTask, TaskHistory
from homecare.models.onboarding import UserOnboarding, ProviderOnboarding
from homecare.models.provider import (
    ServiceType,
    ProviderProfile,
    ProviderService,
    ExternalReview,
    ProviderAgreement,
    ProviderDocument,
)
from homecare.models.application import ProviderApplication
from homecare.models.schedule import (
    ProviderAvailability,
    ProviderUnavailability,
    Holiday,
    ProviderHolidayPreference,
)
from homecare.models.booking import Booking
from homecare.models.review import Review
from homecare.models.discount import DiscountCode
from homecare.models.notification import Notification
from homecare.models.audit import AuditLog

__all__ = [
    "User", "UserRole",
    "Plan", "UserPlan", "ReportDownload",
    "Property",
    "MasterTask", "UserTask", "TaskHistory",
    "UserOnboarding", "ProviderOnboarding",
    "ServiceType", "ProviderProfile", "ProviderService", "ExternalReview",
    "ProviderAgreement", "ProviderDocument",
    "ProviderApplication",
    "ProviderAvailability", "ProviderUnavailability", "Holiday", "ProviderHolidayPreference",
    "Booking",
    "Review",
    "DiscountCode",
    "Notification",
    "AuditLog",
]
