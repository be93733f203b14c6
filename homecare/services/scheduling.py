"""
Provider slot generation.

Slots are cut from the provider's weekly availability windows and then
filtered against unavailability blocks, holidays the provider has taken
off and live bookings. All times are naive UTC; a holiday blocks its whole
UTC day.
"""
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from homecare.models.booking import Booking, ACTIVE_BOOKING_STATUSES
from homecare.models.schedule import (
    Holiday,
    ProviderAvailability,
    ProviderHolidayPreference,
    ProviderUnavailability,
)

Interval = Tuple[datetime, datetime]

MIN_SLOT_MINUTES = 15
MAX_SLOT_MINUTES = 480
MAX_RANGE_DAYS = 62


def sql_day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def overlaps(start: datetime, end: datetime, intervals: List[Interval]) -> bool:
    return any(start < other_end and other_start < end for other_start, other_end in intervals)


def generate_slots(
    windows: List[ProviderAvailability],
    busy: List[Interval],
    range_start: datetime,
    range_end: datetime,
    slot_mins: int,
    now: Optional[datetime] = None,
) -> List[Interval]:
    """
    Cut [range_start, range_end) into bookable slots.

    Within each window, slots start at the window start and advance by
    slot length plus the window's buffer. A slot is kept only if it fits
    the window and the range, starts after now, and misses every busy interval.
    """
    now = now or datetime.utcnow()
    slot = timedelta(minutes=slot_mins)

    windows_by_day: Dict[int, List[ProviderAvailability]] = {}
    for window in windows:
        windows_by_day.setdefault(window.day_of_week, []).append(window)

    slots: List[Interval] = []
    day = range_start.date()
    while datetime.combine(day, datetime.min.time()) < range_end:
        day_windows = sorted(windows_by_day.get(sql_day_of_week(day), []), key=lambda w: w.start_time)
        for window in day_windows:
            window_start = datetime.combine(day, window.start_time)
            window_end = datetime.combine(day, window.end_time)
            step = slot + timedelta(minutes=window.buffer_min or 0)

            cursor = window_start
            while cursor + slot <= window_end:
                slot_end = cursor + slot
                if (
                    cursor >= range_start
                    and slot_end <= range_end
                    and cursor > now
                    and not overlaps(cursor, slot_end, busy)
                ):
                    slots.append((cursor, slot_end))
                cursor += step
        day += timedelta(days=1)

    slots.sort()
    return slots


def holiday_intervals(db: Session, provider_id: str, range_start: datetime,
                      range_end: datetime) -> List[Interval]:
    holidays = db.query(Holiday).join(
        ProviderHolidayPreference, ProviderHolidayPreference.holiday_id == Holiday.id
    ).filter(
        ProviderHolidayPreference.provider_id == provider_id,
        ProviderHolidayPreference.blocks_availability.is_(True),
        Holiday.date >= range_start.date(),
        Holiday.date <= range_end.date(),
    ).all()

    intervals = []
    for holiday in holidays:
        day_start = datetime.combine(holiday.date, datetime.min.time())
        intervals.append((day_start, day_start + timedelta(days=1)))
    return intervals


def busy_intervals(db: Session, provider_id: str, range_start: datetime, range_end: datetime,
                   exclude_booking_id: Optional[str] = None) -> List[Interval]:
    """Unavailability blocks, blocked holidays and pending/confirmed bookings touching the range."""
    blocks = db.query(ProviderUnavailability).filter(
        ProviderUnavailability.provider_id == provider_id,
        ProviderUnavailability.start_ts < range_end,
        ProviderUnavailability.end_ts > range_start,
    ).all()

    bookings_query = db.query(Booking).filter(
        Booking.provider_id == provider_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start_ts < range_end,
        Booking.end_ts > range_start,
    )
    if exclude_booking_id:
        bookings_query = bookings_query.filter(Booking.id != exclude_booking_id)

    intervals = [(b.start_ts, b.end_ts) for b in blocks]
    intervals.extend(holiday_intervals(db, provider_id, range_start, range_end))
    intervals.extend((b.start_ts, b.end_ts) for b in bookings_query.all())
    return intervals


def get_available_slots(db: Session, provider_id: str, range_start: datetime, range_end: datetime,
                        slot_mins: int = 30, now: Optional[datetime] = None) -> List[Interval]:
    windows = db.query(ProviderAvailability).filter(
        ProviderAvailability.provider_id == provider_id
    ).all()
    busy = busy_intervals(db, provider_id, range_start, range_end)
    return generate_slots(windows, busy, range_start, range_end, slot_mins, now=now)


def group_slots_by_date(slots: List[Interval]) -> "OrderedDict[str, List[Dict[str, datetime]]]":
    grouped: "OrderedDict[str, List[Dict[str, datetime]]]" = OrderedDict()
    for start, end in slots:
        grouped.setdefault(start.date().isoformat(), []).append({"start_ts": start, "end_ts": end})
    return grouped


def is_slot_available(db: Session, provider_id: str, start: datetime, end: datetime,
                      now: Optional[datetime] = None) -> bool:
    """
    True if [start, end) is exactly one of the provider's generated slots
    for that day, using the requested duration as the slot length.
    """
    slot_mins = int((end - start).total_seconds() // 60)
    if slot_mins <= 0 or (end - start) != timedelta(minutes=slot_mins):
        return False

    day_start = datetime.combine(start.date(), datetime.min.time())
    day_end = day_start + timedelta(days=1)
    slots = get_available_slots(db, provider_id, day_start, day_end, slot_mins, now=now)
    return (start, end) in slots
