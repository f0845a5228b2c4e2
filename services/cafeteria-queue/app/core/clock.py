"""
Cafeteria Queue — Time helpers

Timestamps are stored as naive UTC datetimes so that PostgreSQL and SQLite
compare them identically.
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def start_of_local_day(as_of: datetime, tz_name: str) -> datetime:
    """Naive-UTC instant of the local midnight that begins as_of's calendar day."""
    tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
    local = as_of.replace(tzinfo=timezone.utc).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)
