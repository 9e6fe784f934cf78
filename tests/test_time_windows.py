from datetime import datetime, time, timezone

import pytest

from app.core.time_windows import (
    is_within_window,
    local_clock,
    parse_clock,
    start_of_local_day,
    window_contains,
)


class TestParseClock:
    def test_valid_clock(self):
        assert parse_clock("09:30") == time(9, 30)
        assert parse_clock(" 23:59 ") == time(23, 59)

    @pytest.mark.parametrize("value", ["9am", "25:00", "12:60", "12", "", None, "1a:00"])
    def test_invalid_clock_raises(self, value):
        with pytest.raises(ValueError):
            parse_clock(value)


class TestIsWithinWindow:
    def test_daytime_window_is_half_open(self):
        start, end = time(9, 0), time(17, 0)
        assert is_within_window(start, end, time(9, 0))
        assert is_within_window(start, end, time(16, 59))
        assert not is_within_window(start, end, time(17, 0))
        assert not is_within_window(start, end, time(8, 59))

    def test_window_spanning_midnight(self):
        start, end = time(22, 0), time(6, 0)
        assert is_within_window(start, end, time(23, 30))
        assert is_within_window(start, end, time(0, 0))
        assert is_within_window(start, end, time(5, 59))
        assert not is_within_window(start, end, time(6, 0))
        assert not is_within_window(start, end, time(12, 0))

    def test_equal_bounds_cover_whole_day(self):
        assert is_within_window(time(0, 0), time(0, 0), time(13, 37))


class TestLocalClock:
    def test_converts_to_zone(self):
        now = datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc)
        assert local_clock(now, "America/New_York") == time(9, 0)

    def test_naive_datetime_is_utc(self):
        assert local_clock(datetime(2026, 1, 15, 14, 5, 33), "UTC") == time(14, 5)

    def test_unknown_zone_raises(self):
        with pytest.raises(KeyError):
            local_clock(datetime(2026, 1, 15, tzinfo=timezone.utc), "Mars/Olympus_Mons")


class TestWindowContains:
    def test_business_hours_in_tokyo(self):
        # 02:00 UTC is 11:00 in Tokyo
        now = datetime(2026, 5, 4, 2, 0, tzinfo=timezone.utc)
        assert window_contains("09:00", "17:00", now, "Asia/Tokyo")
        assert not window_contains("09:00", "17:00", now, "UTC")

    def test_malformed_window_raises(self):
        with pytest.raises(ValueError):
            window_contains("9", "17:00", datetime.now(timezone.utc), "UTC")


class TestStartOfLocalDay:
    def test_utc_midnight(self):
        now = datetime(2026, 3, 2, 15, 45, tzinfo=timezone.utc)
        assert start_of_local_day(now, "UTC") == datetime(2026, 3, 2, tzinfo=timezone.utc)

    def test_local_date_can_differ_from_utc_date(self):
        # 02:00 UTC is still the previous evening in Los Angeles
        now = datetime(2026, 3, 3, 2, 0, tzinfo=timezone.utc)
        start = start_of_local_day(now, "America/Los_Angeles")
        assert start == datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)

    def test_naive_datetime_is_treated_as_utc(self):
        start = start_of_local_day(datetime(2026, 3, 2, 9, 30), "UTC")
        assert start == datetime(2026, 3, 2, tzinfo=timezone.utc)
