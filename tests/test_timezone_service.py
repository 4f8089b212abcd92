"""Tests for wall-clock / instant conversions."""

from datetime import date, datetime

import pytest
import pytz

from models.errors import InvalidTimeFormat, UnknownTimezone
from services.timezone_service import TimezoneService
from tests.conftest import MONDAY_DATE, NEW_YORK, utc


def test_wall_clock_to_instant_in_standard_time():
    instant = TimezoneService.time_of_day_to_instant("09:00", MONDAY_DATE, NEW_YORK)
    assert instant == utc(2026, 11, 16, 14, 0)
    assert instant.tzinfo is pytz.UTC


def test_wall_clock_to_instant_follows_dst_offset():
    # DST starts Sunday 2026-03-08 in the US
    before = TimezoneService.time_of_day_to_instant("09:00", date(2026, 3, 6), NEW_YORK)
    after = TimezoneService.time_of_day_to_instant("09:00", date(2026, 3, 9), NEW_YORK)
    assert before == utc(2026, 3, 6, 14, 0)
    assert after == utc(2026, 3, 9, 13, 0)


def test_half_hour_offset_timezone():
    instant = TimezoneService.time_of_day_to_instant("10:00", MONDAY_DATE, "Asia/Kolkata")
    assert instant == utc(2026, 11, 16, 4, 30)


@pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "12:5", "aa:bb", " 09:00", "09:00\n", ""])
def test_malformed_time_of_day_rejected(value):
    with pytest.raises(InvalidTimeFormat):
        TimezoneService.time_of_day_to_instant(value, MONDAY_DATE, NEW_YORK)


def test_unknown_timezone_rejected():
    with pytest.raises(UnknownTimezone) as exc:
        TimezoneService.time_of_day_to_instant("09:00", MONDAY_DATE, "Mars/Olympus_Mons")
    assert exc.value.code == "unknown_timezone"
    assert exc.value.details["timezone"] == "Mars/Olympus_Mons"


def test_is_valid_timezone():
    assert TimezoneService.is_valid_timezone("Europe/London")
    assert not TimezoneService.is_valid_timezone("Nowhere/City")


def test_ensure_utc_treats_naive_as_utc():
    naive = datetime(2026, 11, 16, 14, 0)
    assert TimezoneService.ensure_utc(naive) == utc(2026, 11, 16, 14, 0)

    local = pytz.timezone(NEW_YORK).localize(datetime(2026, 11, 16, 9, 0))
    assert TimezoneService.ensure_utc(local) == utc(2026, 11, 16, 14, 0)


def test_display_string_and_label():
    instant = utc(2026, 11, 16, 15, 0)
    assert TimezoneService.format_time_label(instant, NEW_YORK) == "10:00 AM"
    assert TimezoneService.format_time_label(utc(2026, 11, 16, 21, 30), NEW_YORK) == "4:30 PM"
    assert TimezoneService.instant_to_display_string(instant, NEW_YORK, "%Y-%m-%d %H:%M") == "2026-11-16 10:00"


def test_intervals_overlap_is_half_open():
    a_start, a_end = utc(2026, 1, 1, 10), utc(2026, 1, 1, 11)
    assert TimezoneService.intervals_overlap(a_start, a_end, utc(2026, 1, 1, 10, 30), utc(2026, 1, 1, 12))
    assert not TimezoneService.intervals_overlap(a_start, a_end, a_end, utc(2026, 1, 1, 12))
    assert not TimezoneService.intervals_overlap(a_start, a_end, utc(2026, 1, 1, 9), a_start)


def test_local_day_bounds():
    start, end = TimezoneService.local_day_bounds(MONDAY_DATE, NEW_YORK)
    assert start == utc(2026, 11, 16, 5, 0)
    assert end == utc(2026, 11, 17, 5, 0)


def test_local_dates_between_stops_at_exclusive_end():
    start, end = TimezoneService.local_day_bounds(MONDAY_DATE, NEW_YORK)
    assert TimezoneService.local_dates_between(start, end, NEW_YORK) == [MONDAY_DATE]

    # the same UTC range spans two dates in Tokyo
    tokyo = TimezoneService.local_dates_between(start, end, "Asia/Tokyo")
    assert tokyo == [date(2026, 11, 16), date(2026, 11, 17)]


def test_timezone_display_name():
    assert TimezoneService.get_timezone_display_name(NEW_YORK) == "Eastern Time (ET)"
    assert TimezoneService.get_timezone_display_name("America/Argentina/Buenos_Aires") == "America/Argentina/Buenos Aires"
