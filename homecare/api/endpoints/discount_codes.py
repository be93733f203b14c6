"""
Discount Code Endpoints

Founding providers issue percentage codes; any signed-in user can
validate or redeem them.
"""
import secrets
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import update
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.provider import ProviderProfile
from homecare.models.discount import DiscountCode
from homecare.schemas.notification import (
    DiscountCodeCreate,
    DiscountCodeResponse,
    RedeemRequest,
    DiscountValidation,
)
from homecare.api.deps import get_current_user, get_provider_profile
from homecare.core.exceptions import ConflictError, InvalidInputError
from homecare.core.permissions import require_founding_provider
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/discount-codes", tags=["discount-codes"])


def generate_code() -> str:
    return f"FOUND{secrets.token_hex(4).upper()}"


def _find_code(db: Session, code: str) -> DiscountCode:
    discount = db.query(DiscountCode).filter(DiscountCode.code == code.strip().upper()).first()
    if not discount:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid discount code")
    return discount


def consume_discount_use(db: Session, code: str) -> bool:
    """
    Increment usage_count in a single conditional UPDATE.

    The limit and expiry are checked by the database, not against a
    previously loaded row. Returns False when nothing was updated.
    """
    result = db.execute(
        update(DiscountCode)
        .where(
            DiscountCode.code == code.strip().upper(),
            DiscountCode.usage_count < DiscountCode.usage_limit,
            DiscountCode.expires_at >= datetime.utcnow(),
        )
        .values(usage_count=DiscountCode.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


@router.post("", response_model=DiscountCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_discount_code(
    payload: DiscountCodeCreate,
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    require_founding_provider(profile)

    if payload.code:
        code = payload.code.upper()
        if db.query(DiscountCode).filter(DiscountCode.code == code).first():
            raise ConflictError("Discount code already exists")
    else:
        code = generate_code()
        while db.query(DiscountCode).filter(DiscountCode.code == code).first():
            code = generate_code()

    discount = DiscountCode(
        code=code,
        provider_id=profile.id,
        percent_off=payload.percent_off,
        expires_at=datetime.utcnow() + timedelta(days=payload.expires_in_days),
        usage_limit=payload.usage_limit,
        usage_count=0,
    )
    db.add(discount)
    db.commit()
    db.refresh(discount)

    logger.info(f"Discount code created: {discount.code} by provider {profile.id}")

    return discount


@router.get("", response_model=list[DiscountCodeResponse])
async def list_discount_codes(
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    return db.query(DiscountCode).filter(
        DiscountCode.provider_id == profile.id
    ).order_by(DiscountCode.created_at.desc()).all()


@router.post("/redeem", response_model=DiscountCodeResponse)
async def redeem_discount_code(
    payload: RedeemRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Spend one use of a code. Concurrent redeems can never exceed usage_limit."""
    if not consume_discount_use(db, payload.code):
        db.rollback()
        discount = _find_code(db, payload.code)
        if discount.is_expired():
            raise InvalidInputError("This discount code has expired")
        raise InvalidInputError("This discount code has already been used")

    db.commit()
    discount = _find_code(db, payload.code)
    db.refresh(discount)

    logger.info(f"Discount code redeemed: {discount.code} by {current_user.id}")

    return discount


@router.get("/validate", response_model=DiscountValidation)
async def validate_discount_code(
    code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    discount = _find_code(db, code)
    expired = discount.is_expired()
    used_up = discount.is_used_up
    return DiscountValidation(
        valid=not (expired or used_up),
        code=discount.code,
        percent_off=discount.percent_off,
        is_expired=expired,
        is_used_up=used_up,
    )
