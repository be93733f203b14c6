"""
Provider Directory (public)

Only approved, active providers are listed.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.provider import ProviderProfile, ProviderService, ServiceType
from homecare.schemas.provider import (
    ProviderProfileResponse,
    ProviderListResponse,
    ServiceTypeResponse,
)
from homecare.core.exceptions import NotFoundError

router = APIRouter(prefix="/providers", tags=["providers"])
service_types_router = APIRouter(prefix="/service-types", tags=["providers"])


def _bookable(db: Session):
    return db.query(ProviderProfile).filter(
        ProviderProfile.onboarding_status == "approved",
        ProviderProfile.is_active == True
    )


@service_types_router.get("", response_model=list[ServiceTypeResponse])
async def list_service_types(db: Session = Depends(get_db)):
    return db.query(ServiceType).order_by(ServiceType.is_custom, ServiceType.name).all()


@router.get("", response_model=ProviderListResponse)
async def list_providers(
    service_type_id: Optional[int] = None,
    zip_code: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Search providers by service and ZIP code, best rated first."""
    query = _bookable(db)

    if service_type_id:
        query = query.join(ProviderService).filter(ProviderService.service_type_id == service_type_id)
    if zip_code:
        query = query.filter(ProviderProfile.zip_code == zip_code)

    total = query.count()

    offset = (page - 1) * page_size
    providers = query.order_by(
        ProviderProfile.avg_rating.is_(None),
        ProviderProfile.avg_rating.desc(),
        ProviderProfile.review_count.desc(),
    ).offset(offset).limit(page_size).all()

    return ProviderListResponse(
        providers=providers,
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{provider_id}", response_model=ProviderProfileResponse)
async def get_provider(
    provider_id: str,
    db: Session = Depends(get_db)
):
    provider = _bookable(db).filter(ProviderProfile.id == provider_id).first()
    if not provider:
        raise NotFoundError("Provider", provider_id)
    return provider
