"""
Booking Endpoints

Homeowners book a provider slot; the provider confirms, completes or
cancels it. Either side may cancel an open booking.
"""
import os
import time
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from homecare.database import get_db
from homecare.models.user import User, UserRole
from homecare.models.property import Property
from homecare.models.provider import ProviderProfile, ServiceType
from homecare.models.booking import Booking, FINAL_BOOKING_STATUSES
from homecare.schemas.booking import BookingCreate, BookingUpdate, BookingResponse
from homecare.api.deps import get_current_user, require_homeowner, get_provider_profile
from homecare.core.exceptions import ConflictError, InvalidInputError, NotFoundError, PermissionDenied
from homecare.core.permissions import can_view_booking, is_booking_homeowner, is_booking_provider
from homecare.config import get_settings
from homecare.services.scheduling import is_slot_available
from homecare.services.notifications import notify
from homecare.services.storage import LocalStorage, get_storage, sanitize_filename
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


def _profile_for(db: Session, user: User) -> Optional[ProviderProfile]:
    if user.role != UserRole.PROVIDER:
        return None
    return db.query(ProviderProfile).filter(ProviderProfile.user_id == user.id).first()


def _get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


def _when(booking: Booking) -> str:
    return booking.start_ts.strftime("%Y-%m-%d %H:%M UTC")


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db)
):
    """
    Book a provider slot.

    The requested [start_ts, end_ts) must be one of the provider's free
    slots for that day; the booking starts out pending.
    """
    now = datetime.utcnow()
    if payload.start_ts < now:
        raise InvalidInputError("Cannot book a time in the past")
    if payload.start_ts >= payload.end_ts:
        raise InvalidInputError("end_ts must be after start_ts")

    provider = db.get(ProviderProfile, payload.provider_id)
    if not provider or not provider.is_bookable:
        raise NotFoundError("Provider", payload.provider_id)

    if payload.property_id:
        prop = db.query(Property).filter(
            Property.id == payload.property_id,
            Property.user_id == current_user.id
        ).first()
        if not prop:
            raise NotFoundError("Property", payload.property_id)

    if payload.service_type_id is not None and not db.get(ServiceType, payload.service_type_id):
        raise NotFoundError("Service type", payload.service_type_id)

    if not is_slot_available(db, provider.id, payload.start_ts, payload.end_ts, now=now):
        raise ConflictError("Selected time slot is no longer available")

    booking = Booking(
        homeowner_id=current_user.id,
        status="pending",
        images=[],
        **payload.model_dump()
    )
    db.add(booking)
    db.flush()

    notify(
        db,
        provider.user_id,
        "New booking request",
        f"{current_user.full_name or current_user.email} requested {_when(booking)}",
        type="booking",
        link=f"/provider/bookings/{booking.id}",
    )
    db.commit()
    db.refresh(booking)

    logger.info(f"Booking created: {booking.id} provider={provider.id} by {current_user.id}")

    return booking


@router.post("/{booking_id}/images", response_model=BookingResponse)
async def upload_booking_images(
    booking_id: str,
    files: List[UploadFile] = File(...),
    current_user: User = Depends(require_homeowner),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage)
):
    """Attach photos of the job. Images only, capped per booking."""
    settings = get_settings()
    booking = _get_booking(db, booking_id)
    if not is_booking_homeowner(current_user, booking):
        raise NotFoundError("Booking", booking_id)

    existing = list(booking.images or [])
    if len(existing) + len(files) > settings.MAX_BOOKING_IMAGES:
        raise InvalidInputError(f"A booking can have at most {settings.MAX_BOOKING_IMAGES} images")

    uploads = []
    for upload in files:
        extension = os.path.splitext(upload.filename or "")[1].lower().lstrip(".")
        if extension not in IMAGE_EXTENSIONS or not (upload.content_type or "").startswith("image/"):
            raise InvalidInputError(f"{upload.filename} is not an image")
        data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise InvalidInputError(f"{upload.filename} is too large")
        uploads.append((sanitize_filename(upload.filename), data))

    for name, data in uploads:
        key = f"bookings/{booking.id}/{int(time.time() * 1000)}_{name}"
        existing.append(storage.save(key, data))

    booking.images = existing
    db.commit()
    db.refresh(booking)

    logger.info(f"{len(uploads)} images added to booking {booking.id}")
    return booking


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status: Optional[str] = Query(None, pattern="^(pending|confirmed|cancelled|completed)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Homeowners see their bookings, providers their jobs, admins everything."""
    query = db.query(Booking)

    if current_user.role == UserRole.HOMEOWNER:
        query = query.filter(Booking.homeowner_id == current_user.id)
    elif current_user.role == UserRole.PROVIDER:
        profile = _profile_for(db, current_user)
        if profile is None:
            return []
        query = query.filter(Booking.provider_id == profile.id)

    if status:
        query = query.filter(Booking.status == status)

    return query.order_by(Booking.start_ts).all()


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    booking = _get_booking(db, booking_id)
    if not can_view_booking(current_user, _profile_for(db, current_user), booking):
        raise NotFoundError("Booking", booking_id)
    return booking


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    update: BookingUpdate,
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    """Provider-side status changes and notes."""
    booking = _get_booking(db, booking_id)
    if not is_booking_provider(profile, booking):
        raise PermissionDenied("Only the booked provider can update this booking")

    if booking.status in FINAL_BOOKING_STATUSES:
        raise ConflictError(f"Booking is already {booking.status}")

    if update.status == "completed" and booking.start_ts > datetime.utcnow():
        raise InvalidInputError("A booking cannot be completed before it starts")

    if update.provider_notes is not None:
        booking.provider_notes = update.provider_notes

    if update.status and update.status != booking.status:
        booking.status = update.status
        notify(
            db,
            booking.homeowner_id,
            f"Booking {update.status}",
            f"Your booking for {_when(booking)} is now {update.status}",
            type="booking",
            link=f"/bookings/{booking.id}",
        )
        logger.info(f"Booking {booking.id} -> {update.status} by provider {profile.id}")

    db.commit()
    db.refresh(booking)
    return booking


@router.delete("/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel a booking. Cancelling twice is a no-op."""
    booking = _get_booking(db, booking_id)
    profile = _profile_for(db, current_user)

    is_homeowner = is_booking_homeowner(current_user, booking)
    is_provider = is_booking_provider(profile, booking)
    if not (is_homeowner or is_provider):
        raise NotFoundError("Booking", booking_id)

    if booking.status == "cancelled":
        return booking
    if booking.status == "completed":
        raise ConflictError("Completed bookings cannot be cancelled")

    booking.status = "cancelled"

    if is_homeowner:
        provider = db.get(ProviderProfile, booking.provider_id)
        recipient = provider.user_id if provider else None
    else:
        recipient = booking.homeowner_id
    if recipient:
        notify(
            db,
            recipient,
            "Booking cancelled",
            f"The booking for {_when(booking)} was cancelled",
            type="booking",
            link=f"/bookings/{booking.id}",
        )

    db.commit()
    db.refresh(booking)

    logger.info(f"Booking cancelled: {booking.id} by {current_user.id}")
    return booking
