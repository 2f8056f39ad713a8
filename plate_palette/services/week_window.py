# plate_palette/services/week_window.py
"""
Calendar window helpers.

A tracking week runs Monday 00:00:00 through Sunday 23:59:59 in the user's
local calendar. Windows are always derived, never stored, and are exchanged
with the store as plain ``YYYY-MM-DD`` strings so comparisons against the
``logged_date`` column never pick up a time-of-day or UTC offset.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


@dataclass(frozen=True)
class WeekWindow:
    start_date: date
    end_date: date

    @property
    def week_starting_date(self) -> str:
        return self.start_date.isoformat()

    @property
    def week_ending_date(self) -> str:
        return self.end_date.isoformat()

    def contains(self, day: Union[date, str]) -> bool:
        return self.start_date <= parse_date(day) <= self.end_date

    def days(self) -> List[date]:
        return [self.start_date + timedelta(days=i) for i in range(7)]

    def day_index(self, day: Union[date, str]) -> int:
        """0 for Monday .. 6 for Sunday; ValueError when outside the window."""
        d = parse_date(day)
        if not self.contains(d):
            raise ValueError(f"{d.isoformat()} is outside week {self.week_starting_date}")
        return (d - self.start_date).days

    def as_dict(self) -> dict:
        return {
            "week_starting_date": self.week_starting_date,
            "week_ending_date": self.week_ending_date,
        }


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """Return the ZoneInfo for an IANA name; ValueError for unknown names."""
    if not name or not str(name).strip():
        raise ValueError("timezone name is required")
    try:
        return ZoneInfo(str(name).strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone: {name!r}") from exc


def parse_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValueError(f"invalid calendar date: {value!r}") from exc


def parse_instant(value: Union[datetime, str]) -> datetime:
    """Parse a stored timestamp. Naive values are taken to be UTC."""
    if isinstance(value, datetime):
        instant = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        instant = datetime.fromisoformat(text)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def local_date(instant: Union[datetime, str], tz_name: str) -> date:
    """Calendar date of `instant` as seen in the named zone."""
    return parse_instant(instant).astimezone(resolve_timezone(tz_name)).date()


def week_window(
    reference: Union[date, datetime, str], tz_name: Optional[str] = None
) -> WeekWindow:
    """
    Return the Monday..Sunday window containing `reference`.

    A plain date (or date string) is already a local calendar day and is used
    as-is. A datetime is first converted to its calendar day in `tz_name`
    (naive datetimes are treated as UTC); `tz_name` is required in that case.
    """
    if isinstance(reference, datetime):
        if tz_name is None:
            raise ValueError("tz_name is required when reference is a datetime")
        day = local_date(reference, tz_name)
    else:
        if tz_name is not None:
            resolve_timezone(tz_name)
        day = parse_date(reference)

    # weekday(): Monday == 0 .. Sunday == 6, so Sunday steps back six days
    start = day - timedelta(days=day.weekday())
    return WeekWindow(start_date=start, end_date=start + timedelta(days=6))


def current_week_window(tz_name: str, now: Optional[datetime] = None) -> WeekWindow:
    now = now or datetime.now(timezone.utc)
    return week_window(now, tz_name)
