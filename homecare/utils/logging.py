"""
Logging setup.

Production emits one JSON object per line; other environments get a
readable line with any context fields (user, booking, Stripe event)
appended in brackets. Context travels via ``extra=``.
"""
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

# Context attributes promoted into log output when a caller passes them in extra=
CONTEXT_FIELDS = (
    "user_id",
    "role",
    "path",
    "method",
    "client",
    "event_type",
    "security_event",
    "booking_id",
    "provider_id",
    "stripe_event",
    "reason",
    "email",
)

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "passlib": logging.ERROR,
}

SECURITY_EVENTS = frozenset({
    "failed_login",
    "invalid_webhook_signature",
    "privilege_violation",
    "rate_limit_exceeded",
})


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextFormatter(logging.Formatter):
    """Human-readable lines with context fields appended."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Install a single stdout handler on the root logger. Safe to call again."""
    root = logging.getLogger()
    root.setLevel(log_level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else ContextFormatter())
    root.addHandler(handler)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_security_event(event_type: str, details: Dict[str, Any], logger: logging.Logger) -> None:
    """
    Record a security-relevant event at WARNING.

    ``event_type`` is one of SECURITY_EVENTS. ``details`` may only use
    names from CONTEXT_FIELDS, otherwise they are dropped from the output.
    """
    if event_type not in SECURITY_EVENTS:
        logger.debug(f"Unregistered security event type: {event_type}")
    logger.warning(
        f"SECURITY EVENT: {event_type}",
        extra={"security_event": True, "event_type": event_type, **details}
    )
