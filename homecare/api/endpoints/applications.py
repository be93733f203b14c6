"""
Provider Applications

Short-form route to becoming a provider: submit one application, an
admin approves or rejects it. Approval creates the provider profile and
switches the account to the provider role.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime

from homecare.database import get_db
from homecare.models.user import User, UserRole
from homecare.models.application import ProviderApplication
from homecare.models.provider import ProviderProfile, ProviderService, ServiceType
from homecare.schemas.provider import ApplicationCreate, ApplicationResponse, ApplicationReview
from homecare.api.deps import get_current_user, require_admin
from homecare.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from homecare.services.notifications import notify, record_audit
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/provider-applications", tags=["provider-applications"])
admin_router = APIRouter(prefix="/admin/applications", tags=["admin"])

REQUIRED_AGREEMENTS = ["Provider Agreement", "Code of Conduct", "Non-Discrimination Policy"]


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    missing = [name for name in REQUIRED_AGREEMENTS if name not in payload.agreements]
    if missing:
        raise InvalidInputError(f"All agreements must be signed. Missing: {', '.join(missing)}")

    existing_profile = db.query(ProviderProfile).filter(
        ProviderProfile.user_id == current_user.id,
        ProviderProfile.onboarding_status == "approved",
        ProviderProfile.is_active == True
    ).first()
    if existing_profile:
        raise ConflictError("You already have an active provider profile")

    pending = db.query(ProviderApplication).filter(
        ProviderApplication.user_id == current_user.id,
        ProviderApplication.status == "pending"
    ).first()
    if pending:
        raise ConflictError("You already have a pending application")

    known = {s.id for s in db.query(ServiceType).filter(ServiceType.id.in_(payload.service_type_ids))}
    unknown = set(payload.service_type_ids) - known
    if unknown:
        raise InvalidInputError(f"Unknown service types: {sorted(unknown)}")

    data = payload.model_dump(exclude={"agreements"})
    application = ProviderApplication(
        user_id=current_user.id,
        agreements_signed=list(payload.agreements),
        status="pending",
        **data
    )
    db.add(application)
    db.commit()
    db.refresh(application)

    logger.info(f"Provider application submitted: {application.id} by {current_user.id}")

    return application


@router.get("/me", response_model=list[ApplicationResponse])
async def my_applications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return db.query(ProviderApplication).filter(
        ProviderApplication.user_id == current_user.id
    ).order_by(ProviderApplication.created_at.desc()).all()


@admin_router.get("", response_model=list[ApplicationResponse])
async def list_applications(
    status: Optional[str] = Query(None, pattern="^(pending|approved|rejected)$"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    query = db.query(ProviderApplication)
    if status:
        query = query.filter(ProviderApplication.status == status)
    return query.order_by(ProviderApplication.created_at).all()


@admin_router.post("/{application_id}/review", response_model=ApplicationResponse)
async def review_application(
    application_id: str,
    review: ApplicationReview,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Approve or reject a pending application.

    Approve: creates (or refreshes) an approved, active provider profile
    with the applied-for services and makes the user a provider.
    Reject: requires a reason, which is passed on to the applicant.
    """
    application = db.get(ProviderApplication, application_id)
    if not application:
        raise NotFoundError("Application", application_id)

    if application.status != "pending":
        raise ConflictError(f"Application has already been {application.status}")

    if review.action == "reject" and not (review.rejection_reason or "").strip():
        raise InvalidInputError("Rejection reason is required")

    applicant = db.get(User, application.user_id)
    now = datetime.utcnow()
    application.reviewed_by = current_user.id
    application.reviewed_at = now

    if review.action == "approve":
        application.status = "approved"

        profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == application.user_id).first()
        if profile is None:
            profile = ProviderProfile(user_id=application.user_id)
            db.add(profile)
        profile.full_name = application.full_name
        profile.business_name = application.business_name
        profile.email = application.email
        profile.phone = application.phone
        profile.zip_code = application.zip_code
        profile.bio = application.description
        profile.onboarding_status = "approved"
        profile.rejection_reason = None
        profile.is_active = True
        profile.services = [
            ProviderService(service_type_id=sid) for sid in sorted(set(application.service_type_ids))
        ]

        if applicant is not None and applicant.role != UserRole.ADMIN:
            applicant.role = UserRole.PROVIDER

        notify(
            db,
            application.user_id,
            "Application approved",
            "Your provider application has been approved. Welcome aboard!",
            type="success",
            link="/provider/dashboard",
        )
    else:
        application.status = "rejected"
        application.rejection_reason = review.rejection_reason.strip()
        notify(
            db,
            application.user_id,
            "Application not approved",
            f"Your provider application was not approved: {application.rejection_reason}",
            type="warning",
        )

    record_audit(
        db,
        current_user.id,
        f"application.{application.status}",
        "provider_application",
        application.id,
        {"reason": application.rejection_reason} if application.rejection_reason else {},
    )
    db.commit()
    db.refresh(application)

    logger.info(f"Application {application.id} {application.status} by {current_user.id}")

    return application
