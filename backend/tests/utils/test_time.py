from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from tablebook.utils.time import local_today, normalize_slot


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("20:30", "20:30"), ("9:05", "09:05"), ("09:05:00", "09:05"), (" 00:00 ", "00:00"), ("23:59", "23:59")],
)
def test_normalize_slot(raw: str, expected: str) -> None:
    assert normalize_slot(raw) == expected


@pytest.mark.parametrize("raw", ["24:00", "12:60", "noon", "12", "12:5", ""])
def test_normalize_slot_rejects_invalid(raw: str) -> None:
    with pytest.raises(ValueError):
        normalize_slot(raw)


def test_local_today_uses_given_zone() -> None:
    zone = ZoneInfo("Pacific/Kiritimati")
    assert local_today(zone) == datetime.now(zone).date()
    assert isinstance(local_today(), date)
