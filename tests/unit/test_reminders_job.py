"""Unit tests for the scheduled reminders entry point."""
from unittest.mock import MagicMock

import pytest

from homecare.jobs import reminders

pytestmark = pytest.mark.unit


class TestRemindersJob:
    def test_runs_reminders_and_closes_session(self, monkeypatch):
        session = MagicMock()
        sender = MagicMock(return_value={"due_tomorrow": 2, "due_in_7_days": 1, "users_notified": 2})
        monkeypatch.setattr(reminders, "SessionLocal", lambda: session)
        monkeypatch.setattr(reminders, "send_task_reminders", sender)

        result = reminders.main()

        assert result == {"due_tomorrow": 2, "due_in_7_days": 1, "users_notified": 2}
        sender.assert_called_once_with(session)
        session.close.assert_called_once()

    def test_session_closed_on_failure(self, monkeypatch):
        session = MagicMock()
        monkeypatch.setattr(reminders, "SessionLocal", lambda: session)
        monkeypatch.setattr(reminders, "send_task_reminders", MagicMock(side_effect=RuntimeError("db down")))

        with pytest.raises(RuntimeError):
            reminders.main()

        session.close.assert_called_once()
