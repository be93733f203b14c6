"""Unit tests for slot generation."""
from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from homecare.seed import federal_holidays
from homecare.services.scheduling import generate_slots, group_slots_by_date, overlaps, sql_day_of_week

pytestmark = pytest.mark.unit

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 1, 0, 0)


def window(day_of_week, start, end, buffer_min=0):
    return SimpleNamespace(day_of_week=day_of_week, start_time=start, end_time=end, buffer_min=buffer_min)


def at(hour, minute=0, day=MONDAY):
    return datetime.combine(day, time(hour, minute))


class TestDayOfWeek:
    def test_sunday_is_zero(self):
        assert sql_day_of_week(date(2030, 1, 6)) == 0
        assert sql_day_of_week(MONDAY) == 1
        assert sql_day_of_week(date(2030, 1, 12)) == 6


class TestOverlaps:
    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(at(10), at(11), [(at(9), at(10))])
        assert not overlaps(at(10), at(11), [(at(11), at(12))])

    def test_partial_overlap(self):
        assert overlaps(at(10), at(11), [(at(10, 30), at(12))])


class TestGenerateSlots:
    def test_slots_fill_window(self):
        slots = generate_slots([window(1, time(9), time(11))], [], at(0), at(23, 59), 30, now=NOW)
        assert slots == [
            (at(9), at(9, 30)),
            (at(9, 30), at(10)),
            (at(10), at(10, 30)),
            (at(10, 30), at(11)),
        ]

    def test_partial_slot_at_window_end_is_dropped(self):
        slots = generate_slots([window(1, time(9), time(10, 15))], [], at(0), at(23), 30, now=NOW)
        assert [s for s, _ in slots] == [at(9), at(9, 30)]

    def test_buffer_spaces_slots(self):
        slots = generate_slots([window(1, time(9), time(12), buffer_min=30)], [], at(0), at(23), 60, now=NOW)
        assert slots == [(at(9), at(10)), (at(10, 30), at(11, 30))]

    def test_other_weekdays_ignored(self):
        slots = generate_slots([window(2, time(9), time(17))], [], at(0), at(23), 60, now=NOW)
        assert slots == []

    def test_busy_intervals_removed(self):
        busy = [(at(9, 30), at(10, 30))]
        slots = generate_slots([window(1, time(9), time(12))], busy, at(0), at(23), 60, now=NOW)
        assert slots == [(at(11), at(12))]

    def test_past_slots_removed(self):
        slots = generate_slots([window(1, time(9), time(12))], [], at(0), at(23), 60, now=at(10))
        assert slots == [(at(11), at(12))]

    def test_slots_clipped_to_range(self):
        slots = generate_slots([window(1, time(9), time(12))], [], at(10), at(11, 30), 60, now=NOW)
        assert slots == [(at(10), at(11))]

    def test_multiple_days_grouped_by_date(self):
        tuesday = date(2030, 1, 8)
        windows = [window(1, time(9), time(10)), window(2, time(9), time(10))]
        slots = generate_slots(windows, [], at(0), at(0, day=date(2030, 1, 9)), 60, now=NOW)
        grouped = group_slots_by_date(slots)
        assert list(grouped.keys()) == ["2030-01-07", "2030-01-08"]
        assert grouped["2030-01-08"] == [{"start_ts": at(9, day=tuesday), "end_ts": at(10, day=tuesday)}]


class TestFederalHolidays:
    def test_floating_holidays_2030(self):
        holidays = dict(federal_holidays(2030))
        assert holidays["Martin Luther King Jr. Day"] == date(2030, 1, 21)
        assert holidays["Memorial Day"] == date(2030, 5, 27)
        assert holidays["Labor Day"] == date(2030, 9, 2)
        assert holidays["Thanksgiving Day"] == date(2030, 11, 28)

    def test_fixed_dates(self):
        holidays = dict(federal_holidays(2031))
        assert holidays["Independence Day"] == date(2031, 7, 4)
        assert holidays["Christmas Day"] == date(2031, 12, 25)
        assert len(holidays) == 11
