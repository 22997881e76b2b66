"""Tests for work-window construction."""

from datetime import date, datetime, time, timezone

import pytest

from dayplan.core.timestamps import parse_date, parse_timestamp, to_iso
from dayplan.core.windows import (
    InvalidRange,
    WorkdayConfig,
    build_day_windows,
    local_date,
    local_day_bounds,
    normalize_requested_range,
    normalize_timezone_name,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestBuildDayWindows:
    def test_one_window_per_day_inclusive(self):
        result = build_day_windows("2026-02-16", "2026-02-20")
        assert [w.date_local for w in result.windows] == [date(2026, 2, d) for d in range(16, 21)]

    def test_single_day(self):
        result = build_day_windows("2026-02-17", "2026-02-17")
        assert len(result.windows) == 1

    def test_window_is_work_hours_in_utc(self):
        window = build_day_windows("2026-02-17", "2026-02-17").windows[0]
        # EST is UTC-5
        assert window.work_start_utc == utc(2026, 2, 17, 13, 0)
        assert window.work_end_utc == utc(2026, 2, 17, 21, 30)
        assert window.duration_minutes() == 510

    def test_range_bounds_are_local_midnights(self):
        result = build_day_windows("2026-02-16", "2026-02-17")
        assert result.utc_range_start == utc(2026, 2, 16, 5, 0)
        assert result.utc_range_end_exclusive == utc(2026, 2, 18, 5, 0)

    def test_dst_transition_shifts_utc_offset(self):
        # DST starts 2026-03-08 in New York
        result = build_day_windows("2026-03-07", "2026-03-09")
        before, transition, after = result.windows
        assert before.work_start_utc == utc(2026, 3, 7, 13, 0)
        assert transition.work_start_utc == utc(2026, 3, 8, 12, 0)
        assert after.work_start_utc == utc(2026, 3, 9, 12, 0)
        assert after.duration_minutes() == 510

    def test_accepts_date_objects(self):
        result = build_day_windows(date(2026, 2, 16), date(2026, 2, 16))
        assert result.windows[0].date_local == date(2026, 2, 16)

    def test_custom_timezone_and_hours(self):
        config = WorkdayConfig(timezone="Europe/London", work_start=time(9, 0), work_end=time(17, 0))
        window = build_day_windows("2026-02-17", "2026-02-17", config).windows[0]
        assert window.work_start_utc == utc(2026, 2, 17, 9, 0)
        assert window.work_end_utc == utc(2026, 2, 17, 17, 0)

    def test_windows_timezone_name(self):
        config = WorkdayConfig(timezone="Eastern Standard Time")
        window = build_day_windows("2026-02-17", "2026-02-17", config).windows[0]
        assert window.work_start_utc == utc(2026, 2, 17, 13, 0)

    def test_reversed_range_raises(self):
        with pytest.raises(InvalidRange):
            build_day_windows("2026-02-18", "2026-02-17")

    @pytest.mark.parametrize("bad", ["2026-13-01", "not-a-date", "20260217", ""])
    def test_malformed_date_raises(self, bad):
        with pytest.raises(InvalidRange):
            build_day_windows(bad, "2026-02-17")

    def test_invalid_range_is_a_value_error(self):
        assert issubclass(InvalidRange, ValueError)


class TestWorkdayConfig:
    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            WorkdayConfig(work_start=time(17, 0), work_end=time(9, 0))

    def test_focus_window_minutes(self):
        assert WorkdayConfig().focus_window_minutes() == 510


class TestDayWindow:
    def test_carries_configured_timezone(self):
        window = build_day_windows("2026-02-17", "2026-02-17", WorkdayConfig(timezone="Asia/Tokyo")).windows[0]
        assert window.tz_name == "Asia/Tokyo"


class TestNormalizeRequestedRange:
    def test_defaults_to_a_week_from_today(self):
        start, end = normalize_requested_range(None, None, today=date(2026, 2, 17))
        assert start == date(2026, 2, 17)
        assert end == date(2026, 2, 24)

    def test_explicit_range(self):
        start, end = normalize_requested_range("2026-02-01", "2026-02-03", today=date(2026, 2, 17))
        assert (start, end) == (date(2026, 2, 1), date(2026, 2, 3))

    def test_sixty_days_allowed(self):
        start, end = normalize_requested_range("2026-01-01", "2026-03-02")
        assert (end - start).days == 60

    def test_more_than_sixty_days_rejected(self):
        with pytest.raises(InvalidRange, match="60 days"):
            normalize_requested_range("2026-01-01", "2026-03-03")

    def test_reversed_rejected(self):
        with pytest.raises(InvalidRange):
            normalize_requested_range("2026-02-10", "2026-02-09")

    def test_malformed_rejected(self):
        with pytest.raises(InvalidRange):
            normalize_requested_range("2026-02-30", None, today=date(2026, 2, 17))


class TestLocalDates:
    def test_local_date_crosses_midnight(self):
        # 03:00Z is still the previous evening in New York
        assert local_date(utc(2026, 2, 18, 3, 0)) == date(2026, 2, 17)

    def test_local_day_bounds(self):
        start, end = local_day_bounds(date(2026, 2, 17))
        assert start == utc(2026, 2, 17, 5, 0)
        assert end == utc(2026, 2, 18, 5, 0)

    def test_normalize_timezone_name(self):
        assert normalize_timezone_name("Pacific Standard Time") == "America/Los_Angeles"
        assert normalize_timezone_name("Europe/Berlin") == "Europe/Berlin"
        assert normalize_timezone_name("UTC") == "UTC"


class TestTimestamps:
    def test_parse_z_suffix(self):
        assert parse_timestamp("2026-02-17T15:00:00Z") == utc(2026, 2, 17, 15, 0)

    def test_parse_offset_normalises_to_utc(self):
        assert parse_timestamp("2026-02-17T10:00:00-05:00") == utc(2026, 2, 17, 15, 0)

    def test_naive_is_utc(self):
        assert parse_timestamp("2026-02-17T15:00:00") == utc(2026, 2, 17, 15, 0)

    @pytest.mark.parametrize("value", [None, "", "   ", "garbage", 42])
    def test_unparsable_is_none(self, value):
        assert parse_timestamp(value) is None

    def test_parse_date_strict(self):
        assert parse_date("2026-02-17") == date(2026, 2, 17)
        assert parse_date("20260217") is None
        assert parse_date("2026-02-30") is None

    def test_to_iso_milliseconds(self):
        assert to_iso(utc(2026, 2, 17, 15, 0, 0, 123456)) == "2026-02-17T15:00:00.123Z"
