"""
Maintenance task seeding, completion and reminders.
"""
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from homecare.models.plan import Plan
from homecare.models.property import Property
from homecare.models.task import MasterTask, UserTask, TaskHistory
from homecare.core.exceptions import ConflictError
from homecare.services.notifications import notify
from homecare.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FREQUENCY_MONTHS = 12

# completed_by -> (history source, confidence)
COMPLETION_SOURCES = {
    "professional": ("verified_pro", 1.0),
    "diy": ("diy_upload", 0.9),
}


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of the month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = start.day
    while True:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1


def seed_tasks_for_property(db: Session, user_id: str, prop: Property, plan: Plan,
                            today: Optional[date] = None) -> List[UserTask]:
    """
    Copy the master tasks matching the plan and property region onto the property.

    Tasks already seeded from the same master task are skipped, so calling
    this twice doesn't duplicate anything.
    """
    today = today or date.today()

    master_tasks = db.query(MasterTask).filter(
        or_(MasterTask.plan_name == plan.name, MasterTask.plan_name.is_(None)),
        or_(MasterTask.region == prop.region, MasterTask.region.is_(None)),
    ).order_by(MasterTask.id).all()

    already_seeded = {
        row.master_task_id for row in db.query(UserTask.master_task_id).filter(
            UserTask.property_id == prop.id,
            UserTask.master_task_id.isnot(None),
        )
    }

    created = []
    for master in master_tasks:
        if master.id in already_seeded:
            continue
        task = UserTask(
            user_id=user_id,
            property_id=prop.id,
            master_task_id=master.id,
            title=master.title,
            description=master.description,
            category=master.category,
            due_date=add_months(today, master.frequency_months or DEFAULT_FREQUENCY_MONTHS),
            status="pending",
        )
        db.add(task)
        created.append(task)

    db.flush()
    logger.info(f"Seeded {len(created)} tasks for property {prop.id} (plan={plan.slug}, region={prop.region})")
    return created


def complete_task(db: Session, task: UserTask, completed_by: str,
                  notes: Optional[str] = None) -> TaskHistory:
    """
    Mark a task complete and record it in the property's history.

    Recurring master tasks get their next occurrence scheduled.
    """
    if task.status == "completed":
        raise ConflictError("Task is already completed")

    source, confidence = COMPLETION_SOURCES[completed_by]
    now = datetime.utcnow()

    task.status = "completed"
    task.completed_at = now
    task.completed_by = completed_by

    history = TaskHistory(
        user_id=task.user_id,
        property_id=task.property_id,
        user_task_id=task.id,
        title=task.title,
        completed_at=now,
        source=source,
        confidence=confidence,
        notes=notes,
    )
    db.add(history)

    master = task.master_task
    if master is not None and master.frequency_months:
        db.add(UserTask(
            user_id=task.user_id,
            property_id=task.property_id,
            master_task_id=master.id,
            title=task.title,
            description=task.description,
            category=task.category,
            due_date=add_months(now.date(), master.frequency_months),
            status="pending",
        ))

    return history


def send_task_reminders(db: Session, today: Optional[date] = None) -> Dict[str, int]:
    """
    Notify users about pending tasks due tomorrow and in seven days.

    Each task is reminded at most once per window (tracked by the
    reminder_sent_* flags). Commits on success.
    """
    today = today or date.today()
    windows = [
        ("1day", today + timedelta(days=1), UserTask.reminder_sent_1day, "due tomorrow"),
        ("7day", today + timedelta(days=7), UserTask.reminder_sent_7day, "due in 7 days"),
    ]

    counts = {"1day": 0, "7day": 0}
    users_notified = set()

    for key, due, flag, phrase in windows:
        tasks = db.query(UserTask).filter(
            UserTask.status == "pending",
            UserTask.due_date == due,
            flag == False,
        ).all()

        by_user: Dict[str, List[UserTask]] = {}
        for task in tasks:
            by_user.setdefault(task.user_id, []).append(task)

        for user_id, user_tasks in by_user.items():
            if len(user_tasks) == 1:
                message = f"\"{user_tasks[0].title}\" is {phrase}."
            else:
                titles = ", ".join(t.title for t in user_tasks)
                message = f"{len(user_tasks)} maintenance tasks are {phrase}: {titles}."
            notify(db, user_id, "Maintenance reminder", message, type="reminder", link="/dashboard/tasks")
            users_notified.add(user_id)

            for task in user_tasks:
                setattr(task, f"reminder_sent_{key}", True)
            counts[key] += len(user_tasks)

    db.commit()
    logger.info(
        f"Task reminders sent: {counts['1day']} due tomorrow, {counts['7day']} due in 7 days, "
        f"{len(users_notified)} users"
    )
    return {
        "due_tomorrow": counts["1day"],
        "due_in_7_days": counts["7day"],
        "users_notified": len(users_notified),
    }
