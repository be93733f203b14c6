"""
Property Endpoints

Homeowners manage their own homes. Rows belonging to someone else are
reported as not found rather than forbidden.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.property import Property
from homecare.schemas.property import PropertyCreate, PropertyUpdate, PropertyResponse
from homecare.api.deps import require_homeowner
from homecare.core.exceptions import NotFoundError
from homecare.services.plans import check_property_limit
from homecare.services.regions import infer_region
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])


def get_owned_property(db: Session, user: User, property_id: str) -> Property:
    prop = db.query(Property).filter(
        Property.id == property_id,
        Property.user_id == user.id
    ).first()
    if not prop:
        raise NotFoundError("Property", property_id)
    return prop


def create_property_for(db: Session, user: User, address: str, property_type: str, **fields) -> Property:
    """
    Plan-limit check, region inference and insert (not committed).

    Shared with the onboarding wizard.
    """
    check_property_limit(db, user.id)

    prop = Property(
        user_id=user.id,
        address=address,
        property_type=property_type,
        nickname=fields.pop("nickname", None) or address,
        region=fields.pop("region", None) or infer_region(address),
        **fields
    )
    db.add(prop)
    db.flush()
    return prop


@router.get("", response_model=list[PropertyResponse])
async def list_properties(
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    return db.query(Property).filter(
        Property.user_id == current_user.id
    ).order_by(Property.created_at).all()


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """
    Add a property.

    Enforces the plan's max_homes. Nickname defaults to the address and
    region is inferred from the address unless given.
    """
    prop = create_property_for(db, current_user, **property_data.model_dump())
    db.commit()
    db.refresh(prop)

    logger.info(f"Property created: {prop.id} by {current_user.id} (region={prop.region})")

    return prop


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: str,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    return get_owned_property(db, current_user, property_id)


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: str,
    property_data: PropertyUpdate,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    prop = get_owned_property(db, current_user, property_id)

    update_data = property_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(prop, field, value)

    db.commit()
    db.refresh(prop)

    logger.info(f"Property updated: {prop.id} by {current_user.id}")

    return prop


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(
    property_id: str,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """Delete a property along with its tasks and history."""
    prop = get_owned_property(db, current_user, property_id)
    db.delete(prop)
    db.commit()

    logger.info(f"Property deleted: {property_id} by {current_user.id}")
    return None
