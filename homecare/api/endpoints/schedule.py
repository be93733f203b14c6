"""
Provider Schedule Endpoints

Weekly availability, one-off unavailability, holidays off and the public
slot finder.
"""
from datetime import date, datetime, timedelta
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from homecare.database import get_db
from homecare.models.provider import ProviderProfile
from homecare.models.schedule import (
    Holiday,
    ProviderAvailability,
    ProviderHolidayPreference,
    ProviderUnavailability,
)
from homecare.schemas.common import to_naive_utc
from homecare.schemas.booking import (
    AvailabilityUpdate,
    AvailabilityResponse,
    UnavailabilityCreate,
    UnavailabilityResponse,
    HolidayResponse,
    HolidayPreferencesUpdate,
    SlotsResponse,
)
from homecare.api.deps import get_provider_profile
from homecare.core.exceptions import InvalidInputError, NotFoundError
from homecare.services import scheduling
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/provider-schedule", tags=["scheduling"])


def _availability(db: Session, provider_id: str) -> AvailabilityResponse:
    windows = db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == provider_id
    ).order_by(ProviderAvailability.day_of_week, ProviderAvailability.start_time).all()
    return AvailabilityResponse(provider_id=provider_id, windows=windows)


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    return _availability(db, profile.id)


@router.put("/availability", response_model=AvailabilityResponse)
async def replace_availability(
    payload: AvailabilityUpdate,
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    """Replace the whole weekly schedule."""
    db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == profile.id
    ).delete(synchronize_session=False)

    for window in payload.windows:
        db.add(ProviderAvailability(provider_id=profile.id, **window.model_dump()))

    db.commit()
    logger.info(f"Availability updated for provider {profile.id}: {len(payload.windows)} windows")
    return _availability(db, profile.id)


@router.get("/unavailability", response_model=list[UnavailabilityResponse])
async def list_unavailability(
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    return db.query(ProviderUnavailability).filter(
        ProviderUnavailability.provider_id == profile.id
    ).order_by(ProviderUnavailability.start_ts).all()


@router.post("/unavailability", response_model=UnavailabilityResponse, status_code=status.HTTP_201_CREATED)
async def add_unavailability(
    payload: UnavailabilityCreate,
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    if payload.end_ts <= payload.start_ts:
        raise InvalidInputError("end_ts must be after start_ts")

    block = ProviderUnavailability(provider_id=profile.id, **payload.model_dump())
    db.add(block)
    db.commit()
    db.refresh(block)

    logger.info(f"Unavailability added for provider {profile.id}: {block.start_ts} - {block.end_ts}")
    return block


@router.delete("/unavailability/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unavailability(
    block_id: str,
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    block = db.query(ProviderUnavailability).filter(
        ProviderUnavailability.id == block_id,
        ProviderUnavailability.provider_id == profile.id
    ).first()
    if not block:
        raise NotFoundError("Unavailability", block_id)

    db.delete(block)
    db.commit()
    return None


def _holidays(db: Session, provider_id: str, today: Optional[date] = None) -> list[HolidayResponse]:
    """Holidays this year and next, flagged with the provider's choice."""
    today = today or date.today()
    holidays = db.query(Holiday).filter(
        Holiday.date >= date(today.year, 1, 1),
        Holiday.date <= date(today.year + 1, 12, 31),
    ).order_by(Holiday.date).all()

    blocked = {
        pref.holiday_id
        for pref in db.query(ProviderHolidayPreference).filter(
            ProviderHolidayPreference.provider_id == provider_id,
            ProviderHolidayPreference.blocks_availability.is_(True),
        )
    }
    return [
        HolidayResponse(id=h.id, name=h.name, date=h.date, blocks_availability=h.id in blocked)
        for h in holidays
    ]


@router.get("/holidays", response_model=list[HolidayResponse])
async def list_holidays(
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    return _holidays(db, profile.id)


@router.put("/holidays", response_model=list[HolidayResponse])
async def replace_holiday_preferences(
    payload: HolidayPreferencesUpdate,
    profile: ProviderProfile = Depends(get_provider_profile),
    db: Session = Depends(get_db)
):
    """
    Replace the set of holidays the provider takes off.

    Only entries with blocks_availability=true are stored; every other
    holiday stays bookable.
    """
    blocked_ids = {p.holiday_id for p in payload.holiday_preferences if p.blocks_availability}
    known = {h.id for h in db.query(Holiday.id).filter(Holiday.id.in_(blocked_ids))}
    unknown = blocked_ids - known
    if unknown:
        raise InvalidInputError(f"Unknown holiday id(s): {', '.join(map(str, sorted(unknown)))}")

    db.query(ProviderHolidayPreference).filter(
        ProviderHolidayPreference.provider_id == profile.id
    ).delete(synchronize_session=False)
    for holiday_id in sorted(blocked_ids):
        db.add(ProviderHolidayPreference(provider_id=profile.id, holiday_id=holiday_id, blocks_availability=True))

    db.commit()
    logger.info(f"Holiday preferences updated for provider {profile.id}: {len(blocked_ids)} blocked")
    return _holidays(db, profile.id)


@router.get("/slots", response_model=SlotsResponse)
async def get_slots(
    provider_id: str,
    from_ts: datetime = Query(..., alias="from"),
    to_ts: datetime = Query(..., alias="to"),
    slot_mins: int = Query(30, ge=scheduling.MIN_SLOT_MINUTES, le=scheduling.MAX_SLOT_MINUTES),
    db: Session = Depends(get_db)
):
    """
    Free slots for a provider in [from, to), grouped by UTC date.

    Public: homeowners browse slots before signing in.
    """
    range_start = to_naive_utc(from_ts)
    range_end = to_naive_utc(to_ts)

    if range_end <= range_start:
        raise InvalidInputError("'to' must be after 'from'")
    if range_end - range_start > timedelta(days=scheduling.MAX_RANGE_DAYS):
        raise InvalidInputError(f"Date range cannot exceed {scheduling.MAX_RANGE_DAYS} days")

    provider = db.get(ProviderProfile, provider_id)
    if not provider or not provider.is_bookable:
        raise NotFoundError("Provider", provider_id)

    slots = scheduling.get_available_slots(db, provider.id, range_start, range_end, slot_mins)

    return SlotsResponse(
        provider_id=provider.id,
        slot_mins=slot_mins,
        total_slots=len(slots),
        slots_by_date=scheduling.group_slots_by_date(slots),
    )
