"""
Review Endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.user import User
from homecare.models.booking import Booking
from homecare.models.provider import ProviderProfile
from homecare.models.review import Review
from homecare.schemas.booking import ReviewCreate, ReviewResponse
from homecare.api.deps import get_current_user, require_homeowner
from homecare.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from homecare.services.notifications import notify
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


def refresh_provider_rating(db: Session, provider: ProviderProfile) -> None:
    average, count = db.query(func.avg(Review.rating), func.count(Review.id)).filter(
        Review.provider_id == provider.id
    ).one()
    provider.avg_rating = round(float(average), 2) if average is not None else None
    provider.review_count = count


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """Rate a completed booking. One review per booking."""
    booking = db.query(Booking).filter(
        Booking.id == payload.booking_id,
        Booking.homeowner_id == current_user.id
    ).first()
    if not booking:
        raise InvalidInputError("You can only review your own bookings")
    if booking.status != "completed":
        raise InvalidInputError("Only completed bookings can be reviewed")

    if db.query(Review).filter(Review.booking_id == booking.id).first():
        raise ConflictError("This booking has already been reviewed")

    review = Review(
        booking_id=booking.id,
        provider_id=booking.provider_id,
        reviewer_id=current_user.id,
        rating=payload.rating,
        comment=payload.comment,
    )
    db.add(review)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("This booking has already been reviewed")

    provider = db.get(ProviderProfile, booking.provider_id)
    if provider is not None:
        refresh_provider_rating(db, provider)
        notify(
            db,
            provider.user_id,
            "New review",
            f"You received a {payload.rating}-star review",
            type="review",
            link="/provider/reviews",
        )

    db.commit()
    db.refresh(review)

    logger.info(f"Review created: {review.id} for provider {review.provider_id} by {current_user.id}")

    return review


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    provider_id: Optional[str] = None,
    my_reviews: bool = False,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if my_reviews:
        query = db.query(Review).filter(Review.reviewer_id == current_user.id)
    elif provider_id:
        if not db.get(ProviderProfile, provider_id):
            raise NotFoundError("Provider", provider_id)
        query = db.query(Review).filter(Review.provider_id == provider_id)
    else:
        raise InvalidInputError("Provide provider_id or my_reviews=true")

    return query.order_by(Review.created_at.desc()).all()
