"""
Admin Endpoints

Provider moderation, platform analytics and the audit trail.
Application review lives in applications.py; user management in users.py.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.plan import Plan, UserPlan
from homecare.models.provider import ProviderProfile
from homecare.models.application import ProviderApplication
from homecare.models.booking import Booking
from homecare.models.audit import AuditLog
from homecare.schemas.provider import (
    ProviderProfileResponse,
    ProviderStatusUpdate,
    FoundingUpdate,
    AuditLogListResponse,
    AnalyticsResponse,
)
from homecare.api.deps import require_admin
from homecare.core.exceptions import InvalidInputError, NotFoundError
from homecare.services.notifications import notify, record_audit
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

ACTIVE_SUBSCRIPTION_STATUSES = ("active", "trialing", "past_due")


def _get_provider(db: Session, provider_id: str) -> ProviderProfile:
    provider = db.get(ProviderProfile, provider_id)
    if not provider:
        raise NotFoundError("Provider", provider_id)
    return provider


@router.get("/providers", response_model=list[ProviderProfileResponse])
async def list_providers(
    onboarding_status: Optional[str] = Query(None, pattern="^(draft|pending|approved|rejected)$"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    query = db.query(ProviderProfile)
    if onboarding_status:
        query = query.filter(ProviderProfile.onboarding_status == onboarding_status)
    return query.order_by(ProviderProfile.created_at.desc()).all()


@router.post("/providers/{provider_id}/status", response_model=ProviderProfileResponse)
async def set_provider_status(
    provider_id: str,
    update: ProviderStatusUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Approve or reject a provider who went through the full onboarding flow.

    Rejection needs a reason; it is shown to the provider.
    """
    provider = _get_provider(db, provider_id)

    if update.status == "rejected":
        reason = (update.reason or "").strip()
        if not reason:
            raise InvalidInputError("Rejection reason is required")
        provider.onboarding_status = "rejected"
        provider.rejection_reason = reason
        provider.is_active = False
        notify(
            db,
            provider.user_id,
            "Profile not approved",
            f"Your provider profile was not approved: {reason}",
            type="warning",
            link="/provider/onboarding",
        )
    else:
        provider.onboarding_status = "approved"
        provider.rejection_reason = None
        provider.is_active = True
        notify(
            db,
            provider.user_id,
            "Profile approved",
            "Your provider profile is live. Homeowners can now book you.",
            type="success",
            link="/provider/dashboard",
        )

    record_audit(
        db,
        current_user.id,
        f"provider.{update.status}",
        "provider_profile",
        provider.id,
        {"reason": provider.rejection_reason} if provider.rejection_reason else {},
    )
    db.commit()
    db.refresh(provider)

    logger.info(f"Provider {provider.id} set to {provider.onboarding_status} by {current_user.id}")

    return provider


@router.patch("/providers/{provider_id}/founding", response_model=ProviderProfileResponse)
async def set_founding_provider(
    provider_id: str,
    update: FoundingUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    provider = _get_provider(db, provider_id)
    provider.is_founding_provider = update.is_founding_provider

    record_audit(
        db,
        current_user.id,
        "provider.founding_updated",
        "provider_profile",
        provider.id,
        {"is_founding_provider": update.is_founding_provider},
    )
    db.commit()
    db.refresh(provider)
    return provider


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    users_by_role = {
        role.value: count
        for role, count in db.query(User.role, func.count(User.id)).group_by(User.role)
    }
    providers_by_status = dict(
        db.query(ProviderProfile.onboarding_status, func.count(ProviderProfile.id))
        .group_by(ProviderProfile.onboarding_status)
        .all()
    )
    bookings_by_status = dict(
        db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    )
    active_subscriptions_by_plan = dict(
        db.query(Plan.slug, func.count(UserPlan.user_id))
        .join(UserPlan, UserPlan.plan_id == Plan.id)
        .filter(UserPlan.subscription_status.in_(ACTIVE_SUBSCRIPTION_STATUSES))
        .group_by(Plan.slug)
        .all()
    )
    pending_applications = db.query(ProviderApplication).filter(
        ProviderApplication.status == "pending"
    ).count()

    return AnalyticsResponse(
        users_by_role=users_by_role,
        providers_by_status=providers_by_status,
        bookings_by_status=bookings_by_status,
        active_subscriptions_by_plan=active_subscriptions_by_plan,
        pending_applications=pending_applications,
    )


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def audit_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    action: Optional[str] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)

    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(
        (page - 1) * page_size
    ).limit(page_size).all()

    return AuditLogListResponse(logs=logs, total=total, page=page, page_size=page_size)
