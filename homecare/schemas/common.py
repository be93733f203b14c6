"""
Shared schema helpers.
"""
from datetime import datetime, timezone


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; convert aware inputs."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
