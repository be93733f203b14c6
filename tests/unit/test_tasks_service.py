"""Unit tests for task seeding, completion and reminders."""
from datetime import date, timedelta

import pytest

from homecare.models.notification import Notification
from homecare.models.plan import Plan, CORE_PLAN_ID, FREE_PLAN_ID, PREMIUM_PLAN_ID
from homecare.models.property import Property
from homecare.models.task import UserTask
from homecare.core.exceptions import ConflictError
from homecare.services.tasks import add_months, complete_task, seed_tasks_for_property, send_task_reminders

pytestmark = pytest.mark.unit

TODAY = date(2030, 3, 15)


def add_property(db, user, region="Northeast"):
    prop = Property(user_id=user.id, nickname="Home", address="1 Main St", property_type="house", region=region)
    db.add(prop)
    db.commit()
    return prop


class TestAddMonths:
    def test_simple(self):
        assert add_months(date(2030, 1, 15), 3) == date(2030, 4, 15)

    def test_wraps_year(self):
        assert add_months(date(2030, 11, 1), 3) == date(2031, 2, 1)

    def test_clamps_to_month_end(self):
        assert add_months(date(2030, 1, 31), 1) == date(2030, 2, 28)
        assert add_months(date(2032, 1, 31), 1) == date(2032, 2, 29)


class TestSeedTasks:
    def test_free_plan_gets_generic_and_regional_tasks(self, db, homeowner):
        prop = add_property(db, homeowner, region="Northeast")
        created = seed_tasks_for_property(db, homeowner.id, prop, db.get(Plan, FREE_PLAN_ID), today=TODAY)
        db.commit()

        titles = sorted(t.title for t in created)
        assert "Winterize outdoor faucets" in titles
        assert "Service air conditioner" not in titles
        assert "Clean moss from roof" not in titles
        assert len(created) == 6

    def test_plan_specific_tasks(self, db, homeowner):
        prop = add_property(db, homeowner, region="Midwest")
        core = seed_tasks_for_property(db, homeowner.id, prop, db.get(Plan, CORE_PLAN_ID), today=TODAY)
        titles = {t.title for t in core}
        assert {"Service air conditioner", "Service furnace", "Check sump pump"} <= titles
        assert "Whole-home maintenance inspection" not in titles

        other = add_property(db, homeowner, region="Hawaii")
        premium = seed_tasks_for_property(db, homeowner.id, other, db.get(Plan, PREMIUM_PLAN_ID), today=TODAY)
        titles = {t.title for t in premium}
        assert "Whole-home maintenance inspection" in titles
        assert "Inspect for salt air corrosion" in titles
        assert "Service furnace" not in titles

    def test_due_dates_follow_frequency(self, db, homeowner):
        prop = add_property(db, homeowner)
        created = seed_tasks_for_property(db, homeowner.id, prop, db.get(Plan, FREE_PLAN_ID), today=TODAY)
        by_title = {t.title: t for t in created}
        assert by_title["Replace HVAC filter"].due_date == date(2030, 6, 15)
        assert by_title["Flush water heater"].due_date == date(2031, 3, 15)

    def test_seeding_twice_is_idempotent(self, db, homeowner):
        prop = add_property(db, homeowner)
        plan = db.get(Plan, FREE_PLAN_ID)
        first = seed_tasks_for_property(db, homeowner.id, prop, plan, today=TODAY)
        second = seed_tasks_for_property(db, homeowner.id, prop, plan, today=TODAY)
        db.commit()

        assert len(first) == 6
        assert second == []
        assert db.query(UserTask).filter(UserTask.property_id == prop.id).count() == 6


class TestCompleteTask:
    def test_professional_completion_is_verified_and_recurs(self, db, homeowner):
        prop = add_property(db, homeowner)
        seed_tasks_for_property(db, homeowner.id, prop, db.get(Plan, FREE_PLAN_ID), today=TODAY)
        db.commit()
        task = db.query(UserTask).filter(UserTask.title == "Replace HVAC filter").one()

        history = complete_task(db, task, "professional", "Done by HVAC pro")
        db.commit()

        assert task.status == "completed"
        assert history.source == "verified_pro"
        assert history.confidence == 1.0
        next_tasks = db.query(UserTask).filter(
            UserTask.title == "Replace HVAC filter",
            UserTask.status == "pending"
        ).all()
        assert len(next_tasks) == 1
        assert next_tasks[0].due_date == add_months(history.completed_at.date(), 3)

    def test_diy_completion_confidence(self, db, homeowner):
        prop = add_property(db, homeowner)
        task = UserTask(user_id=homeowner.id, property_id=prop.id, title="Paint fence",
                        category="Custom", due_date=TODAY, status="pending")
        db.add(task)
        db.commit()

        history = complete_task(db, task, "diy")
        db.commit()

        assert history.source == "diy_upload"
        assert history.confidence == 0.9
        # Custom tasks don't recur
        assert db.query(UserTask).filter(UserTask.title == "Paint fence").count() == 1

    def test_completing_twice_conflicts(self, db, homeowner):
        prop = add_property(db, homeowner)
        task = UserTask(user_id=homeowner.id, property_id=prop.id, title="Paint fence",
                        category="Custom", due_date=TODAY, status="pending")
        db.add(task)
        db.commit()
        complete_task(db, task, "diy")
        db.commit()

        with pytest.raises(ConflictError):
            complete_task(db, task, "diy")


class TestReminders:
    def _task(self, db, user, prop, title, due, status="pending"):
        task = UserTask(user_id=user.id, property_id=prop.id, title=title, category="Custom",
                        due_date=due, status=status)
        db.add(task)
        return task

    def test_reminds_each_window_once(self, db, homeowner):
        prop = add_property(db, homeowner)
        tomorrow = self._task(db, homeowner, prop, "Clean gutters", TODAY + timedelta(days=1))
        week = self._task(db, homeowner, prop, "Test detectors", TODAY + timedelta(days=7))
        self._task(db, homeowner, prop, "Later", TODAY + timedelta(days=3))
        self._task(db, homeowner, prop, "Done", TODAY + timedelta(days=1), status="completed")
        db.commit()

        result = send_task_reminders(db, today=TODAY)

        assert result == {"due_tomorrow": 1, "due_in_7_days": 1, "users_notified": 1}
        assert tomorrow.reminder_sent_1day is True
        assert week.reminder_sent_7day is True

        messages = [n.message for n in db.query(Notification).filter(Notification.user_id == homeowner.id)]
        assert any("Clean gutters" in m and "due tomorrow" in m for m in messages)
        assert any("Test detectors" in m and "due in 7 days" in m for m in messages)

        again = send_task_reminders(db, today=TODAY)
        assert again == {"due_tomorrow": 0, "due_in_7_days": 0, "users_notified": 0}

    def test_multiple_tasks_grouped_into_one_notification(self, db, homeowner):
        prop = add_property(db, homeowner)
        self._task(db, homeowner, prop, "A", TODAY + timedelta(days=1))
        self._task(db, homeowner, prop, "B", TODAY + timedelta(days=1))
        db.commit()

        result = send_task_reminders(db, today=TODAY)

        assert result["due_tomorrow"] == 2
        notifications = db.query(Notification).filter(Notification.user_id == homeowner.id).all()
        assert len(notifications) == 1
        assert "2 maintenance tasks are due tomorrow" in notifications[0].message
