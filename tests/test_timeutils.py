"""Tests for date and wall-clock helpers."""

from datetime import date, datetime, time

import pytest

from app.core.timeutils import (
    day_of_week,
    duration_minutes,
    format_time,
    minutes_to_time,
    normalize_time,
    parse_date,
    parse_time,
    ranges_overlap,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("09:00", "09:00:00"), ("23:59:59", "23:59:59"), (" 07:05 ", "07:05:00")],
)
def test_normalize_time_accepts_hh_mm_and_hh_mm_ss(raw: str, expected: str) -> None:
    assert normalize_time(raw) == expected


@pytest.mark.parametrize("raw", ["9:00", "24:00", "12:60", "12:00:60", "noon", ""])
def test_normalize_time_rejects_malformed_values(raw: str) -> None:
    with pytest.raises(ValueError):
        normalize_time(raw)


def test_parse_time_round_trips_through_format() -> None:
    assert format_time(parse_time("14:30")) == "14:30:00"
    assert parse_time(time(8, 15, 0, 500)) == time(8, 15)


def test_parse_date_requires_real_calendar_day() -> None:
    assert parse_date("2026-02-28") == date(2026, 2, 28)

    with pytest.raises(ValueError):
        parse_date("2026-02-30")
    with pytest.raises(ValueError):
        parse_date("2026/02/01")
    with pytest.raises(ValueError):
        parse_date(datetime(2026, 2, 1, 9, 0))


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week(date(2026, 10, 18)) == 0  # Sunday
    assert day_of_week(date(2026, 10, 19)) == 1  # Monday
    assert day_of_week(date(2026, 10, 24)) == 6  # Saturday


def test_duration_and_minute_conversion() -> None:
    assert duration_minutes(time(9, 0), time(10, 15)) == 75
    assert minutes_to_time(615) == time(10, 15)

    with pytest.raises(ValueError):
        minutes_to_time(24 * 60)


def test_ranges_overlap_is_half_open() -> None:
    assert ranges_overlap(time(9), time(10), time(9, 30), time(10, 30))
    assert not ranges_overlap(time(9), time(10), time(10), time(11))
    assert not ranges_overlap(time(10), time(11), time(9), time(10))
