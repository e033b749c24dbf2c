"""Tests for the working-hours calculator."""

from datetime import datetime, timezone

import pytest

from timeboard.registry.working_status import (
    WorkingStatus,
    format_utc_offset,
    is_valid_zone,
    local_time,
    parse_hhmm,
    resolve_zone,
    working_status,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestDefaultWindow:
    def test_new_york_morning_is_working(self):
        # 15:00 UTC in January is 10:00 EST
        assert working_status("America/New_York", None, None, utc(2024, 1, 15, 15, 0)) == WorkingStatus.WORKING

    def test_new_york_evening_is_outside(self):
        # 01:00 UTC next day is 20:00 EST
        assert working_status("America/New_York", None, None, utc(2024, 1, 16, 1, 0)) == WorkingStatus.OUTSIDE

    def test_hour_seventeen_still_counts(self):
        assert working_status("UTC", None, None, utc(2024, 1, 15, 17, 59)) == WorkingStatus.WORKING

    def test_before_nine_is_outside(self):
        assert working_status("UTC", None, None, utc(2024, 1, 15, 8, 59)) == WorkingStatus.OUTSIDE

    def test_default_path_never_unknown(self):
        for hour in range(24):
            status = working_status("Asia/Kolkata", None, None, utc(2024, 6, 1, hour, 30))
            assert status != WorkingStatus.UNKNOWN

    def test_naive_instant_treated_as_utc(self):
        assert working_status("UTC", None, None, datetime(2024, 1, 15, 10, 0)) == WorkingStatus.WORKING

    def test_dst_is_respected(self):
        # 13:30 UTC is 09:30 EDT in July but 08:30 EST in January
        assert working_status("America/New_York", None, None, utc(2024, 7, 1, 13, 30)) == WorkingStatus.WORKING
        assert working_status("America/New_York", None, None, utc(2024, 1, 2, 13, 30)) == WorkingStatus.OUTSIDE


class TestConfiguredWindow:
    def test_overnight_late_evening_is_working(self):
        assert working_status("UTC", "22:00", "06:00", utc(2024, 1, 15, 23, 30)) == WorkingStatus.WORKING

    def test_overnight_early_morning_is_working(self):
        assert working_status("UTC", "22:00", "06:00", utc(2024, 1, 15, 5, 0)) == WorkingStatus.WORKING

    def test_overnight_midday_is_outside(self):
        assert working_status("UTC", "22:00", "06:00", utc(2024, 1, 15, 12, 0)) == WorkingStatus.OUTSIDE

    def test_same_day_window(self):
        assert working_status("Europe/Riga", "08:00", "12:00", utc(2024, 1, 15, 8, 0)) == WorkingStatus.WORKING
        assert working_status("Europe/Riga", "08:00", "12:00", utc(2024, 1, 15, 11, 0)) == WorkingStatus.OUTSIDE

    def test_boundaries_inclusive(self):
        assert working_status("UTC", "09:00", "17:00", utc(2024, 1, 15, 9, 0)) == WorkingStatus.WORKING
        assert working_status("UTC", "09:00", "17:00", utc(2024, 1, 15, 17, 0)) == WorkingStatus.WORKING
        assert working_status("UTC", "09:00", "17:00", utc(2024, 1, 15, 17, 1)) == WorkingStatus.OUTSIDE

    def test_equal_bounds_wrap_whole_day(self):
        assert working_status("UTC", "09:00", "09:00", utc(2024, 1, 15, 3, 0)) == WorkingStatus.WORKING

    def test_half_configured_window_is_unknown(self):
        assert working_status("UTC", "09:00", None, utc(2024, 1, 15, 10, 0)) == WorkingStatus.UNKNOWN

    def test_malformed_window_is_unknown(self):
        assert working_status("UTC", "nine", "17:00", utc(2024, 1, 15, 10, 0)) == WorkingStatus.UNKNOWN
        assert working_status("UTC", "25:00", "17:00", utc(2024, 1, 15, 10, 0)) == WorkingStatus.UNKNOWN

    def test_unresolvable_zone_is_unknown(self):
        assert working_status("Mars/Olympus", None, None, utc(2024, 1, 15, 10, 0)) == WorkingStatus.UNKNOWN

    def test_deterministic(self):
        now = utc(2024, 3, 10, 6, 45)
        results = {working_status("Australia/Sydney", "08:00", "18:00", now) for _ in range(5)}
        assert len(results) == 1


class TestHelpers:
    def test_parse_hhmm(self):
        assert parse_hhmm("09:30").hour == 9
        assert parse_hhmm("9:05").minute == 5
        assert parse_hhmm(None) is None
        assert parse_hhmm("12:60") is None
        assert parse_hhmm("1230") is None

    def test_resolve_zone_rejects_garbage(self):
        with pytest.raises(ValueError):
            resolve_zone("Not/AZone")
        with pytest.raises(ValueError):
            resolve_zone("")
        with pytest.raises(ValueError):
            resolve_zone("../etc/passwd")

    def test_is_valid_zone(self):
        assert is_valid_zone("Asia/Ho_Chi_Minh")
        assert not is_valid_zone("Florida")

    def test_local_time_and_offset(self):
        local = local_time("Asia/Kolkata", utc(2024, 1, 15, 0, 0))
        assert (local.hour, local.minute) == (5, 30)
        assert format_utc_offset(local) == "+05:30"
        assert format_utc_offset(local_time("America/New_York", utc(2024, 1, 15))) == "-05:00"
