"""
Time helpers.

MongoDB hands back naive datetimes in UTC, so everything stored or compared
here is naive UTC truncated to whole milliseconds (BSON precision).
"""
import calendar
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_timestamp(value: datetime) -> int:
    """Whole epoch seconds for a naive-UTC or aware datetime."""
    return calendar.timegm(value.utctimetuple())
