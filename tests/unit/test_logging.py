"""Unit tests for log formatting and security events."""
import json
import logging

import pytest

from homecare.utils.logging import ContextFormatter, JSONFormatter, get_logger, log_security_event

pytestmark = pytest.mark.unit


def make_record(**extra):
    record = logging.LogRecord("homecare.test", logging.WARNING, __file__, 10, "Booking %s", ("b-1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_json_includes_context_fields_only(self):
        line = JSONFormatter().format(make_record(booking_id="b-1", unrelated="x"))
        entry = json.loads(line)

        assert entry["message"] == "Booking b-1"
        assert entry["level"] == "WARNING"
        assert entry["booking_id"] == "b-1"
        assert "unrelated" not in entry

    def test_context_formatter_appends_fields(self):
        line = ContextFormatter().format(make_record(user_id="u-1", path="/api/v1/bookings"))
        assert line.endswith("[user_id=u-1 path=/api/v1/bookings]")

    def test_context_formatter_without_context(self):
        assert "[" not in ContextFormatter().format(make_record())


class TestSecurityEvents:
    def test_logged_as_warning_with_event_fields(self, caplog):
        logger = get_logger("homecare.test.security")

        with caplog.at_level(logging.WARNING, logger="homecare.test.security"):
            log_security_event("failed_login", {"reason": "invalid_password", "user_id": "u-1"}, logger)

        record = caplog.records[-1]
        assert record.getMessage() == "SECURITY EVENT: failed_login"
        assert record.security_event is True
        assert record.event_type == "failed_login"
        assert record.user_id == "u-1"
