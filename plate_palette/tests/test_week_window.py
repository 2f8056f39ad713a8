# tests/test_week_window.py
from datetime import date, datetime, timedelta, timezone

import pytest

from plate_palette.services.week_window import (
    current_week_window,
    local_date,
    parse_instant,
    week_window,
)


def test_every_day_maps_to_a_monday_to_sunday_window():
    day = date(2025, 12, 1)
    for _ in range(800):
        w = week_window(day)
        assert w.start_date.weekday() == 0
        assert w.end_date.weekday() == 6
        assert w.end_date - w.start_date == timedelta(days=6)
        assert w.start_date <= day <= w.end_date
        day += timedelta(days=1)


def test_window_is_stable_for_any_day_inside_it():
    w = week_window(date(2026, 10, 14))
    for d in w.days():
        assert week_window(d) == w


def test_sunday_belongs_to_the_week_that_started_six_days_earlier():
    w = week_window(date(2026, 10, 18))
    assert w.week_starting_date == "2026-10-12"
    assert w.week_ending_date == "2026-10-18"


def test_monday_starts_a_new_week():
    w = week_window("2026-10-19")
    assert w.as_dict() == {
        "week_starting_date": "2026-10-19",
        "week_ending_date": "2026-10-25",
    }


def test_windows_cross_month_and_year_boundaries():
    w = week_window(date(2027, 1, 1))  # a Friday
    assert w.week_starting_date == "2026-12-28"
    assert w.week_ending_date == "2027-01-03"


def test_instant_uses_local_calendar_not_utc():
    # 05:00 UTC Monday is still Sunday evening in Los Angeles
    instant = datetime(2026, 10, 19, 5, 0, tzinfo=timezone.utc)
    assert week_window(instant, "America/Los_Angeles").week_starting_date == "2026-10-12"
    assert week_window(instant, "UTC").week_starting_date == "2026-10-19"


def test_instant_east_of_utc_rolls_forward():
    instant = datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc)
    assert local_date(instant, "Europe/Berlin") == date(2026, 10, 19)
    assert week_window(instant, "Europe/Berlin").week_starting_date == "2026-10-19"


def test_datetime_reference_requires_a_zone():
    with pytest.raises(ValueError):
        week_window(datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc))


def test_unknown_zone_is_rejected():
    with pytest.raises(ValueError):
        week_window(date(2026, 10, 14), "Mars/Olympus_Mons")


def test_invalid_date_string_is_rejected():
    with pytest.raises(ValueError):
        week_window("not-a-date")


def test_day_index_and_contains():
    w = week_window(date(2026, 10, 14))
    assert w.day_index("2026-10-12") == 0
    assert w.day_index(date(2026, 10, 18)) == 6
    assert not w.contains("2026-10-19")
    with pytest.raises(ValueError):
        w.day_index("2026-10-19")


def test_parse_instant_accepts_z_suffix_and_naive_values():
    assert parse_instant("2026-10-14T18:00:00Z") == datetime(2026, 10, 14, 18, 0, tzinfo=timezone.utc)
    assert parse_instant("2026-10-14T18:00:00").tzinfo is not None


def test_current_week_window_uses_clock():
    now = datetime(2026, 10, 14, 18, 0, tzinfo=timezone.utc)
    assert current_week_window("America/Los_Angeles", now).week_starting_date == "2026-10-12"
