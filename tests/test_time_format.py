"""Tests for time_format.py"""

import re
from datetime import datetime, timedelta, timezone

import pytest

from qiita_viewer.core.time_format import (
    INVALID_DATE,
    format_absolute,
    format_relative,
    parse_timestamp,
)

NOW = datetime(2023, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _ago(seconds: int) -> str:
    return (NOW - timedelta(seconds=seconds)).isoformat().replace("+00:00", "Z")


class TestFormatAbsolute:
    """Tests for format_absolute."""

    def test_contains_year_month_day(self):
        result = format_absolute("2023-05-15T10:30:00Z")
        assert "2023年" in result
        assert "5月" in result

    def test_includes_time(self):
        result = format_absolute("2023-05-15T10:30:00Z")
        assert re.search(r"\d{2}:\d{2}$", result)

    def test_uses_local_timezone(self):
        value = "2024-03-20T06:00:00.000Z"
        local = datetime(2024, 3, 20, 6, 0, tzinfo=timezone.utc).astimezone()
        expected = f"{local.year}年{local.month}月{local.day}日 {local.hour:02d}:{local.minute:02d}"
        assert format_absolute(value) == expected

    def test_numeric_offset(self):
        local = datetime(2023, 1, 1, 3, 0, tzinfo=timezone.utc).astimezone()
        assert format_absolute("2023-01-01T12:00:00+09:00") == (
            f"{local.year}年{local.month}月{local.day}日 {local.hour:02d}:{local.minute:02d}"
        )

    def test_naive_timestamp_is_local(self):
        assert format_absolute("2023-12-31T08:05:00") == "2023年12月31日 08:05"

    @pytest.mark.parametrize("value", ["invalid-date-string", "", "2023-13-45", None])
    def test_invalid_input_does_not_raise(self, value):
        assert format_absolute(value) == INVALID_DATE


class TestFormatRelative:
    """Tests for format_relative bucketing."""

    def test_same_instant_is_just_now(self):
        ts = NOW.isoformat()
        assert format_relative(ts, NOW) == "just now"

    def test_59_seconds_is_just_now(self):
        assert format_relative(_ago(59), NOW) == "just now"

    def test_exactly_60_seconds(self):
        assert format_relative(_ago(60), NOW) == "1 minutes ago"

    def test_minutes(self):
        assert format_relative(_ago(30 * 60), NOW) == "30 minutes ago"
        assert format_relative(_ago(59 * 60), NOW) == "59 minutes ago"

    def test_exactly_one_hour(self):
        assert format_relative(_ago(3600), NOW) == "1 hours ago"

    def test_hours(self):
        assert format_relative(_ago(6 * 3600), NOW) == "6 hours ago"
        assert format_relative(_ago(23 * 3600), NOW) == "23 hours ago"

    def test_exactly_one_day(self):
        assert format_relative(_ago(86400), NOW) == "1 days ago"

    def test_days(self):
        assert format_relative(_ago(7 * 86400), NOW) == "7 days ago"
        assert format_relative(_ago(29 * 86400), NOW) == "29 days ago"

    def test_just_under_30_days(self):
        assert format_relative(_ago(2_591_999), NOW).endswith("days ago")

    def test_exactly_30_days_uses_absolute(self):
        ts = _ago(2_592_000)
        assert format_relative(ts, NOW) == format_absolute(ts)

    def test_very_old_dates_use_absolute(self):
        result = format_relative("2020-01-15T00:00:00Z", NOW)
        assert "2020年" in result
        assert "1月" in result

    def test_future_is_just_now(self):
        future = (NOW + timedelta(hours=1)).isoformat()
        assert format_relative(future, NOW) == "just now"

    def test_naive_now_and_timestamp(self):
        now = datetime(2023, 6, 15, 12, 0, 0)
        assert format_relative("2023-06-15T11:59:00", now) == "1 minutes ago"

    def test_defaults_to_current_time(self):
        recent = datetime.now(timezone.utc).isoformat()
        assert format_relative(recent) == "just now"

    def test_invalid_input_does_not_raise(self):
        assert format_relative("invalid-date-string", NOW) == INVALID_DATE


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_returns_aware_datetime(self):
        parsed = parse_timestamp("2023-05-15T10:30:00Z")
        assert parsed is not None
        assert parsed.tzinfo is not None
        assert parsed == datetime(2023, 5, 15, 10, 30, tzinfo=timezone.utc)

    def test_invalid_returns_none(self):
        assert parse_timestamp("nope") is None
