import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings

_SLOT_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def restaurant_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().restaurant_timezone)


def local_today(tz: ZoneInfo | None = None) -> date:
    """Current calendar day in the restaurant's time zone."""
    return datetime.now(tz or restaurant_zone()).date()


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_slot(value: str) -> str:
    """Return the canonical HH:MM form of a time of day.

    Accepts "9:00", "09:00" and "09:00:00". Raises ValueError otherwise.
    """
    match = _SLOT_RE.match(value.strip())
    if match is None:
        raise ValueError(f"invalid time slot: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"invalid time slot: {value!r}")
    return f"{hour:02d}:{minute:02d}"
