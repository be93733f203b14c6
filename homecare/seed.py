"""
Reference Data

Plans, service types, the master maintenance task catalogue and the US
federal holidays for this year and next.
seed_reference_data() is idempotent: rows are keyed by id/name and only
missing ones are inserted.
"""
import calendar
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from homecare.models.plan import Plan, FREE_PLAN_ID, CORE_PLAN_ID, PREMIUM_PLAN_ID
from homecare.models.provider import ServiceType
from homecare.models.schedule import Holiday
from homecare.models.task import MasterTask
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

PLANS = [
    dict(id=FREE_PLAN_ID, name="Free", slug="free", price_cents=0, max_homes=1,
         unlimited_reminders=False, report_access=False, priority_support=False),
    dict(id=CORE_PLAN_ID, name="Core", slug="core", price_cents=700, max_homes=3,
         unlimited_reminders=True, report_access=False, priority_support=False),
    dict(id=PREMIUM_PLAN_ID, name="Premium", slug="rivopro", price_cents=2000, max_homes=None,
         unlimited_reminders=True, report_access=True, priority_support=True),
]

SERVICE_TYPES = [
    "HVAC",
    "Plumbing",
    "Electrical",
    "Roofing",
    "Gutter Cleaning",
    "Landscaping",
    "Pest Control",
    "Handyman",
    "Painting",
    "Appliance Repair",
    "Chimney Sweep",
    "Pool Service",
]

# (title, category, frequency_months, region, plan_name, description)
MASTER_TASKS = [
    ("Replace HVAC filter", "HVAC", 3, None, None,
     "Swap the furnace/air handler filter to keep airflow and efficiency up."),
    ("Test smoke and CO detectors", "Safety", 6, None, None,
     "Press the test button on every detector and replace batteries as needed."),
    ("Clean gutters and downspouts", "Exterior", 6, None, None,
     "Clear leaves and debris so water drains away from the foundation."),
    ("Flush water heater", "Plumbing", 12, None, None,
     "Drain sediment from the tank to extend the heater's life."),
    ("Inspect roof for damage", "Exterior", 12, None, None,
     "Look for missing shingles, flashing gaps and signs of leaks."),
    ("Service air conditioner", "HVAC", 12, None, "Core",
     "Professional tune-up before the cooling season."),
    ("Service furnace", "HVAC", 12, None, "Core",
     "Professional inspection before the heating season."),
    ("Whole-home maintenance inspection", "General", 12, None, "Premium",
     "Annual walkthrough by a vetted provider with a written report."),
    ("Winterize outdoor faucets", "Plumbing", 12, "Northeast", None,
     "Shut off and drain exterior hose bibs before the first freeze."),
    ("Winterize outdoor faucets", "Plumbing", 12, "Midwest", None,
     "Shut off and drain exterior hose bibs before the first freeze."),
    ("Winterize outdoor faucets", "Plumbing", 12, "Mountain States", None,
     "Shut off and drain exterior hose bibs before the first freeze."),
    ("Check sump pump", "Plumbing", 6, "Midwest", None,
     "Pour water into the pit and confirm the pump kicks on."),
    ("Inspect hurricane shutters", "Exterior", 12, "Southeast", None,
     "Verify shutters and fasteners before hurricane season."),
    ("Clear brush around the house", "Exterior", 12, "West Coast", None,
     "Maintain defensible space against wildfire."),
    ("Inspect for termites", "Pest Control", 12, "Southwest", None,
     "Look for mud tubes and damaged wood around the foundation."),
    ("Clean moss from roof", "Exterior", 12, "Pacific Northwest", None,
     "Remove moss buildup that holds moisture against shingles."),
    ("Service dehumidifier", "HVAC", 12, "South Central", None,
     "Clean coils and drain lines on whole-home dehumidifiers."),
    ("Check heat tape on pipes", "Plumbing", 12, "Alaska", None,
     "Confirm heat tape works on exposed pipes before winter."),
    ("Inspect for salt air corrosion", "Exterior", 12, "Hawaii", None,
     "Check railings, fixtures and AC condensers for corrosion."),
]


HOLIDAY_YEARS_AHEAD = 1


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """n-th weekday (Monday = 0) of a month; n = -1 for the last one."""
    if n > 0:
        first = date(year, month, 1)
        return first + timedelta(days=(weekday - first.weekday()) % 7 + 7 * (n - 1))
    last = date(year, month, calendar.monthrange(year, month)[1])
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def federal_holidays(year: int) -> List[Tuple[str, date]]:
    return [
        ("New Year's Day", date(year, 1, 1)),
        ("Martin Luther King Jr. Day", _nth_weekday(year, 1, 0, 3)),
        ("Presidents' Day", _nth_weekday(year, 2, 0, 3)),
        ("Memorial Day", _nth_weekday(year, 5, 0, -1)),
        ("Juneteenth", date(year, 6, 19)),
        ("Independence Day", date(year, 7, 4)),
        ("Labor Day", _nth_weekday(year, 9, 0, 1)),
        ("Columbus Day", _nth_weekday(year, 10, 0, 2)),
        ("Veterans Day", date(year, 11, 11)),
        ("Thanksgiving Day", _nth_weekday(year, 11, 3, 4)),
        ("Christmas Day", date(year, 12, 25)),
    ]


def seed_reference_data(db: Session, today: Optional[date] = None) -> None:
    """Insert plans, service types, master tasks and holidays that aren't present yet."""
    existing_plans = {p.id for p in db.query(Plan).all()}
    for plan in PLANS:
        if plan["id"] not in existing_plans:
            db.add(Plan(**plan))

    existing_types = {s.name for s in db.query(ServiceType).all()}
    for name in SERVICE_TYPES:
        if name not in existing_types:
            db.add(ServiceType(name=name, is_custom=False))

    existing_tasks = {
        (t.title, t.region, t.plan_name) for t in db.query(MasterTask).all()
    }
    for title, category, frequency, region, plan_name, description in MASTER_TASKS:
        if (title, region, plan_name) not in existing_tasks:
            db.add(MasterTask(
                title=title,
                category=category,
                frequency_months=frequency,
                region=region,
                plan_name=plan_name,
                description=description,
            ))

    today = today or date.today()
    existing_holidays = {(h.name, h.date) for h in db.query(Holiday).all()}
    for year in range(today.year, today.year + HOLIDAY_YEARS_AHEAD + 1):
        for name, day in federal_holidays(year):
            if (name, day) not in existing_holidays:
                db.add(Holiday(name=name, date=day))

    db.commit()
    logger.info("Reference data seeded")
