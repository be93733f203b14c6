"""
Provider Onboarding Endpoints

Seven ordered steps; each POST saves its step and advances progress.
A step can be (re)submitted once every earlier step is done.

    1 basic-info                 5 external-reviews
    2 services-offered           6 background-check-consent
    3 documents-upload           7 agreements
    4 business-profile

After step 7 the provider submits for admin review.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.provider import (
    ProviderProfile,
    ProviderService,
    ServiceType,
    ExternalReview,
    ProviderAgreement,
    ProviderDocument,
)
from homecare.schemas.onboarding import (
    ProviderProgress,
    BasicInfo,
    ServicesOffered,
    BusinessProfile,
    ExternalReviews,
    BackgroundCheckConsent,
    AgreementsPayload,
)
from homecare.schemas.provider import ProviderProfileResponse
from homecare.api.deps import require_provider
from homecare.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from homecare.services import onboarding as flow
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/provider-onboarding", tags=["provider-onboarding"])

REVIEW_PLATFORMS = ["google", "yelp", "angi", "bbb", "facebook", "other"]
REQUIRED_AGREEMENTS = ["Provider Agreement", "Code of Conduct", "Non-Discrimination Policy"]
REQUIRED_DOCUMENT_TYPES = ("license", "insurance")


def _start_step(db: Session, user: User, step: int):
    progress = flow.get_or_create_provider_onboarding(db, user.id)
    flow.require_provider_step(progress, step)
    return progress


def _profile(db: Session, user: User) -> ProviderProfile:
    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == user.id).first()
    if not profile:
        raise NotFoundError("Provider profile")
    return profile


def _progress_response(progress, profile=None) -> ProviderProgress:
    return ProviderProgress(
        **flow.provider_progress_summary(progress),
        onboarding_status=profile.onboarding_status if profile else None,
    )


def _finish_step(db: Session, user: User, progress, step: int) -> ProviderProgress:
    flow.complete_provider_step(progress, step)
    db.commit()
    logger.info(f"Provider onboarding step {step} completed by {user.id}")
    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == user.id).first()
    return _progress_response(progress, profile)


@router.get("/progress", response_model=ProviderProgress)
async def get_progress(
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    progress = flow.get_or_create_provider_onboarding(db, current_user.id)
    db.commit()
    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == current_user.id).first()
    return _progress_response(progress, profile)


@router.post("/basic-info", response_model=ProviderProgress)
async def basic_info(
    payload: BasicInfo,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """Step 1: create or update the provider profile."""
    progress = _start_step(db, current_user, 1)

    profile = db.query(ProviderProfile).filter(ProviderProfile.user_id == current_user.id).first()
    if profile is None:
        profile = ProviderProfile(user_id=current_user.id, onboarding_status="draft", is_active=False)
        db.add(profile)

    for field, value in payload.model_dump().items():
        setattr(profile, field, value)

    return _finish_step(db, current_user, progress, 1)


@router.post("/services-offered", response_model=ProviderProgress)
async def services_offered(
    payload: ServicesOffered,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """
    Step 2: services and service radius.

    Free-text services (comma separated) are added to the catalogue as
    custom service types.
    """
    progress = _start_step(db, current_user, 2)
    profile = _profile(db, current_user)

    service_ids = set(payload.service_type_ids)
    if service_ids:
        known = {s.id for s in db.query(ServiceType).filter(ServiceType.id.in_(service_ids))}
        unknown = service_ids - known
        if unknown:
            raise InvalidInputError(f"Unknown service types: {sorted(unknown)}")

    custom_names = [
        name.strip() for name in (payload.other_services or "").split(",") if name.strip()
    ]
    for name in custom_names:
        service_type = db.query(ServiceType).filter(ServiceType.name.ilike(name)).first()
        if service_type is None:
            service_type = ServiceType(name=name, is_custom=True, created_by=current_user.id)
            db.add(service_type)
            db.flush()
            logger.info(f"Custom service type created: {name} by {current_user.id}")
        service_ids.add(service_type.id)

    if not service_ids:
        raise InvalidInputError("No services selected")

    profile.services = [ProviderService(service_type_id=sid) for sid in sorted(service_ids)]
    profile.radius_miles = payload.radius_miles
    profile.other_services = payload.other_services

    return _finish_step(db, current_user, progress, 2)


@router.post("/documents-upload", response_model=ProviderProgress)
async def documents_upload(
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """Step 3: confirm uploads. Needs at least one license or insurance document."""
    progress = _start_step(db, current_user, 3)

    has_required = db.query(ProviderDocument).filter(
        ProviderDocument.user_id == current_user.id,
        ProviderDocument.doc_type.in_(REQUIRED_DOCUMENT_TYPES)
    ).first()
    if not has_required:
        raise InvalidInputError("Please upload at least one license or insurance document")

    return _finish_step(db, current_user, progress, 3)


@router.post("/business-profile", response_model=ProviderProgress)
async def business_profile(
    payload: BusinessProfile,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """Step 4: bio, logo, portfolio and social links."""
    progress = _start_step(db, current_user, 4)
    profile = _profile(db, current_user)

    profile.bio = payload.bio
    if payload.logo_url:
        profile.logo_url = payload.logo_url
    profile.portfolio = list(payload.portfolio)
    profile.social_links = [link.model_dump() for link in payload.social_links]

    return _finish_step(db, current_user, progress, 4)


@router.post("/external-reviews", response_model=ProviderProgress)
async def external_reviews(
    payload: ExternalReviews,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """Step 5: links to reviews elsewhere. Replaces whatever was saved before."""
    progress = _start_step(db, current_user, 5)
    profile = _profile(db, current_user)

    data = payload.model_dump()
    entries = []
    for platform in REVIEW_PLATFORMS:
        url = (data.get(f"{platform}_url") or "").strip()
        if not url:
            continue
        testimonial = (data.get(f"{platform}_testimonial") or "").strip() or None
        entries.append(ExternalReview(platform=platform, url=url, testimonial=testimonial))

    if not entries:
        raise InvalidInputError("Please provide at least one review platform link")

    profile.external_reviews = entries

    return _finish_step(db, current_user, progress, 5)


@router.post("/background-check-consent", response_model=ProviderProgress)
async def background_check_consent(
    payload: BackgroundCheckConsent,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    progress = _start_step(db, current_user, 6)
    profile = _profile(db, current_user)

    if not payload.consent:
        raise InvalidInputError("Background check consent is required")
    profile.background_check_consent = True

    return _finish_step(db, current_user, progress, 6)


@router.post("/agreements", response_model=ProviderProgress)
async def agreements(
    payload: AgreementsPayload,
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """Step 7: all three platform agreements must be accepted."""
    progress = _start_step(db, current_user, 7)
    profile = _profile(db, current_user)

    missing = [name for name in REQUIRED_AGREEMENTS if name not in payload.agreements]
    if missing:
        raise InvalidInputError(f"All agreements must be accepted. Missing: {', '.join(missing)}")

    already_signed = {a.agreement_type for a in profile.agreements}
    for name in REQUIRED_AGREEMENTS:
        if name not in already_signed:
            profile.agreements.append(ProviderAgreement(agreement_type=name))

    return _finish_step(db, current_user, progress, 7)


@router.post("/submit-for-review", response_model=ProviderProfileResponse)
async def submit_for_review(
    current_user: User = Depends(require_provider),
    db: Session = Depends(get_db)
):
    """Hand the finished profile to the admins."""
    progress = flow.get_or_create_provider_onboarding(db, current_user.id)
    if not progress.completed:
        raise ConflictError("Complete all onboarding steps before submitting")

    profile = _profile(db, current_user)
    if profile.onboarding_status == "approved":
        raise ConflictError("Profile is already approved")

    profile.onboarding_status = "pending"
    profile.rejection_reason = None
    db.commit()
    db.refresh(profile)

    logger.info(f"Provider submitted for review: {profile.id}")

    return profile
