"""Timezone conversions between wall-clock times and absolute instants."""

from datetime import date, datetime, time, timedelta

import pytz

from models.entities import parse_time_of_day
from models.errors import UnknownTimezone

COMMON_TIMEZONES = [
    ("America/New_York", "Eastern Time (ET)"),
    ("America/Chicago", "Central Time (CT)"),
    ("America/Denver", "Mountain Time (MT)"),
    ("America/Los_Angeles", "Pacific Time (PT)"),
    ("America/Phoenix", "Arizona Time (MST)"),
    ("America/Anchorage", "Alaska Time (AKST)"),
    ("Pacific/Honolulu", "Hawaii Time (HST)"),
    ("Europe/London", "London (GMT/BST)"),
    ("Europe/Paris", "Paris (CET/CEST)"),
    ("Europe/Berlin", "Berlin (CET/CEST)"),
    ("Europe/Madrid", "Madrid (CET/CEST)"),
    ("Asia/Tokyo", "Tokyo (JST)"),
    ("Asia/Shanghai", "Shanghai (CST)"),
    ("Asia/Kolkata", "India (IST)"),
    ("Australia/Sydney", "Sydney (AEDT/AEST)"),
    ("UTC", "UTC"),
]

DEFAULT_DISPLAY_PATTERN = "%Y-%m-%d %H:%M:%S %Z"


class TimezoneService:
    """Pure timezone helpers. All returned instants are UTC-aware."""

    @staticmethod
    def get_timezone(name: str) -> pytz.BaseTzInfo:
        try:
            return pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            raise UnknownTimezone(f"Unknown timezone: {name!r}", timezone=name)

    @staticmethod
    def is_valid_timezone(name: str) -> bool:
        try:
            pytz.timezone(name)
        except pytz.UnknownTimeZoneError:
            return False
        return True

    @staticmethod
    def ensure_utc(instant: datetime) -> datetime:
        """Naive datetimes are taken to be UTC already."""
        if instant.tzinfo is None:
            return instant.replace(tzinfo=pytz.UTC)
        return instant.astimezone(pytz.UTC)

    @classmethod
    def time_of_day_to_instant(
        cls,
        time_hhmm: str,
        calendar_date: date,
        timezone: str
    ) -> datetime:
        """
        Interpret ``time_hhmm`` on ``calendar_date`` as wall-clock time in
        ``timezone`` and return the absolute instant.

        Raises:
            InvalidTimeFormat: not strictly HH:MM with hour 0-23, minute 0-59
            UnknownTimezone: the timezone identifier does not resolve
        """
        wall_time = parse_time_of_day(time_hhmm)
        tz = cls.get_timezone(timezone)
        local = tz.localize(datetime.combine(calendar_date, wall_time))
        return local.astimezone(pytz.UTC)

    @classmethod
    def instant_to_display_string(
        cls,
        instant: datetime,
        timezone: str,
        pattern: str = DEFAULT_DISPLAY_PATTERN
    ) -> str:
        tz = cls.get_timezone(timezone)
        return cls.ensure_utc(instant).astimezone(tz).strftime(pattern)

    @classmethod
    def format_time_label(cls, instant: datetime, timezone: str) -> str:
        """Short label such as ``9:00 AM``."""
        return cls.instant_to_display_string(instant, timezone, "%I:%M %p").lstrip("0")

    @staticmethod
    def intervals_overlap(
        start_a: datetime,
        end_a: datetime,
        start_b: datetime,
        end_b: datetime
    ) -> bool:
        """Half-open overlap test; touching endpoints do not overlap."""
        return start_a < end_b and start_b < end_a

    @classmethod
    def to_local_date(cls, instant: datetime, timezone: str) -> date:
        tz = cls.get_timezone(timezone)
        return cls.ensure_utc(instant).astimezone(tz).date()

    @classmethod
    def local_day_bounds(cls, calendar_date: date, timezone: str) -> tuple[datetime, datetime]:
        """Local midnight of ``calendar_date`` and of the next day, as UTC instants."""
        tz = cls.get_timezone(timezone)
        start = tz.localize(datetime.combine(calendar_date, time.min))
        end = tz.localize(datetime.combine(calendar_date + timedelta(days=1), time.min))
        return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)

    @classmethod
    def local_dates_between(
        cls,
        range_start: datetime,
        range_end: datetime,
        timezone: str
    ) -> list[date]:
        """Local calendar dates whose day overlaps ``[range_start, range_end)``."""
        current = cls.to_local_date(range_start, timezone)
        last = cls.to_local_date(range_end, timezone)
        dates = []
        while current <= last:
            day_start, _ = cls.local_day_bounds(current, timezone)
            if day_start >= cls.ensure_utc(range_end):
                break
            dates.append(current)
            current += timedelta(days=1)
        return dates

    @staticmethod
    def get_timezone_display_name(name: str) -> str:
        for value, label in COMMON_TIMEZONES:
            if value == name:
                return label
        return name.replace("_", " ")
