"""Clock and timestamp helpers shared by the store and the routers.

All persisted timestamps are timezone-aware UTC. ``utcnow`` is looked up
through this module at call time so tests can pin the clock.
"""
import math
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Tuple

from sqlalchemy.types import String, TypeDecorator

_CANONICAL_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_NAIVE_SQLITE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts ISO-8601 with a zone (``Z`` or ``+HH:MM``) and the naive
    ``YYYY-MM-DD HH:MM:SS`` form SQLite's CURRENT_TIMESTAMP produces, which
    is UTC by definition.
    """
    if not value:
        return None
    if _NAIVE_SQLITE.match(value):
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_CANONICAL_FORMAT)


class UTCDateTime(TypeDecorator):
    """Stores datetimes as fixed-width UTC ISO strings so they sort as text."""

    impl = String(32)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = parse_timestamp(value)
        return format_timestamp(value)

    def process_result_value(self, value, dialect):
        return parse_timestamp(value)


def whole_seconds(start: datetime, end: datetime) -> int:
    return math.floor((end - start).total_seconds())


def local_day_bounds(now: datetime, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Return [local midnight, local midnight + 24h) around ``now``."""
    local_now = now.astimezone(tz)
    start = datetime.combine(local_now.date(), time.min, tzinfo=local_now.tzinfo)
    return start, start + timedelta(hours=24)


def overlap_seconds(
    intervals: Iterable[Tuple[datetime, Optional[datetime]]],
    window_start: datetime,
    window_end: datetime,
    now: datetime,
) -> int:
    """Sum the parts of each interval falling inside the window.

    An open interval (``end`` is None) runs until ``now``.
    """
    total = 0.0
    for start, end in intervals:
        if start is None:
            continue
        seg_start = max(start, window_start)
        seg_end = min(end or now, window_end)
        if seg_end > seg_start:
            total += (seg_end - seg_start).total_seconds()
    return math.floor(total)


def local_today() -> date:
    return utcnow().astimezone().date()
