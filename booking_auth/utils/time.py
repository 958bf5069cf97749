"""Time helpers.

Every timestamp in the service is a naive datetime in UTC, matching the
``DateTime`` columns the models declare.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_timestamp(value: datetime) -> float:
    """Convert a naive UTC datetime to a POSIX timestamp."""
    return value.replace(tzinfo=timezone.utc).timestamp()


def from_timestamp(value: float) -> datetime:
    """Convert a POSIX timestamp to a naive UTC datetime."""
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
