"""Tests for schedule arithmetic and report formatting helpers."""

import datetime as dt
import re

import pytest

from tenant_admin.reports.scheduling import (
    compute_next_run,
    format_file_size,
    generate_public_id,
    parse_time_of_day,
)

# 2026-10-19 is a Monday
MONDAY_AFTERNOON = dt.datetime(2026, 10, 19, 15, 0)


# ---------------------------------------------------------------------------
# compute_next_run
# ---------------------------------------------------------------------------


def test_daily_is_tomorrow_with_seconds_dropped():
    assert compute_next_run("daily", "09:30:45", now=MONDAY_AFTERNOON) == dt.datetime(2026, 10, 20, 9, 30)


def test_daily_even_when_time_is_later_today():
    assert compute_next_run("daily", "23:00", now=MONDAY_AFTERNOON) == dt.datetime(2026, 10, 20, 23, 0)


@pytest.mark.parametrize(
    ("day_of_week", "expected_day"),
    [
        (1, 26),  # same weekday moves a full week
        (3, 21),  # Wednesday
        (0, 25),  # Sunday
        (6, 24),  # Saturday
    ],
)
def test_weekly(day_of_week, expected_day):
    result = compute_next_run(
        "weekly", "08:00", {"day_of_week": day_of_week}, now=MONDAY_AFTERNOON
    )
    assert result == dt.datetime(2026, 10, expected_day, 8, 0)


def test_weekly_defaults_to_monday():
    assert compute_next_run("weekly", "08:00", now=MONDAY_AFTERNOON) == dt.datetime(2026, 10, 26, 8, 0)


def test_monthly_later_this_month():
    now = dt.datetime(2026, 1, 15, 8, 0)
    assert compute_next_run("monthly", "09:00", {"day_of_month": 20}, now=now) == dt.datetime(2026, 1, 20, 9, 0)


def test_monthly_same_day_still_ahead():
    now = dt.datetime(2026, 1, 20, 8, 0)
    assert compute_next_run("monthly", "09:00", {"day_of_month": 20}, now=now) == dt.datetime(2026, 1, 20, 9, 0)


def test_monthly_clamps_to_short_month():
    now = dt.datetime(2026, 1, 31, 10, 0)
    assert compute_next_run("monthly", "09:00", {"day_of_month": 31}, now=now) == dt.datetime(2026, 2, 28, 9, 0)


def test_monthly_rolls_over_year():
    now = dt.datetime(2026, 12, 25, 10, 0)
    assert compute_next_run("monthly", "06:15", {"day_of_month": 5}, now=now) == dt.datetime(2027, 1, 5, 6, 15)


def test_monthly_defaults_to_first():
    now = dt.datetime(2026, 4, 2, 0, 0)
    assert compute_next_run("monthly", "00:00", now=now) == dt.datetime(2026, 5, 1, 0, 0)


def test_next_run_is_always_in_future():
    for frequency in ("daily", "weekly", "monthly"):
        assert compute_next_run(frequency, "00:00", now=MONDAY_AFTERNOON) > MONDAY_AFTERNOON


def test_unknown_frequency():
    with pytest.raises(ValueError, match="Unknown frequency"):
        compute_next_run("hourly", "09:00", now=MONDAY_AFTERNOON)


@pytest.mark.parametrize("value", ["9", "25:00", "ab:cd", "1:2:3:4"])
def test_parse_time_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_time_of_day(value)


def test_parse_time_accepts_both_forms():
    assert parse_time_of_day("07:05") == dt.time(7, 5)
    assert parse_time_of_day("07:05:09") == dt.time(7, 5, 9)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (None, "0 Bytes"),
        (0, "0 Bytes"),
        (100, "100 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1048576, "1 MB"),
        (5 * 1024**3 + 1024**3 // 4, "5.25 GB"),
    ],
)
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected


def test_public_id_shape():
    public_id = generate_public_id("rep")
    assert re.fullmatch(r"rep-[0-9a-z]+-[0-9a-z]{6}", public_id)
    assert generate_public_id("rep") != public_id
