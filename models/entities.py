"""Domain models for the booking service."""

import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Literal, Optional

import pytz

from models.errors import (
    InvalidInvitee,
    InvalidMeetingType,
    InvalidRule,
    InvalidTimeFormat,
    UnknownTimezone,
)

BookingStatus = Literal["confirmed", "cancelled"]
LocationType = Literal["phone", "video", "in_person"]

# 0 = Sunday ... 6 = Saturday
SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY = range(7)
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480
MIN_ADVANCE_NOTICE_HOURS = 1
MAX_ADVANCE_NOTICE_HOURS = 720
MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 255
MAX_PHONE_LENGTH = 20

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def parse_time_of_day(value: str) -> time:
    """Parse a strict zero-padded ``HH:MM`` string."""
    match = TIME_OF_DAY_RE.fullmatch(value) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeFormat(f"Invalid time format: {value!r}", value=value)
    return time(int(match.group(1)), int(match.group(2)))


def day_of_week(value) -> int:
    """Day-of-week index for a date, with Sunday as 0."""
    return (value.weekday() + 1) % 7


def _check_timezone(name: str) -> None:
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise UnknownTimezone(f"Unknown timezone: {name!r}", timezone=name)


@dataclass
class Host:
    """A person whose calendar can be booked."""
    id: int
    username: str
    email: str
    timezone: str = "UTC"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    calendar_connected: bool = False
    calendar_access_token: Optional[str] = None

    def __post_init__(self):
        _check_timezone(self.timezone)

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.username


@dataclass
class WeeklyAvailabilityRule:
    """Recurring weekly window, expressed in the host's wall-clock time."""
    day_of_week: int
    start_time: str
    end_time: str
    active: bool = True

    def __post_init__(self):
        if not isinstance(self.day_of_week, int) or not 0 <= self.day_of_week <= 6:
            raise InvalidRule(
                f"day_of_week must be between 0 and 6, got {self.day_of_week!r}",
                day_of_week=self.day_of_week,
            )
        parse_time_of_day(self.start_time)
        parse_time_of_day(self.end_time)
        if self.start_time >= self.end_time:
            raise InvalidRule(
                f"start_time {self.start_time} must be before end_time {self.end_time}",
                start_time=self.start_time,
                end_time=self.end_time,
            )


@dataclass
class MeetingType:
    """Bookable meeting template and its constraints."""
    id: Optional[int]
    host_id: int
    name: str
    duration_minutes: int
    advance_notice_hours: int = 2
    daily_limit: Optional[int] = None
    active: bool = True
    description: Optional[str] = None
    location_type: LocationType = "video"
    location_details: Optional[str] = None

    def __post_init__(self):
        if not MIN_DURATION_MINUTES <= self.duration_minutes <= MAX_DURATION_MINUTES:
            raise InvalidMeetingType(
                f"duration_minutes must be between {MIN_DURATION_MINUTES} and "
                f"{MAX_DURATION_MINUTES}",
                duration_minutes=self.duration_minutes,
            )
        if not MIN_ADVANCE_NOTICE_HOURS <= self.advance_notice_hours <= MAX_ADVANCE_NOTICE_HOURS:
            raise InvalidMeetingType(
                f"advance_notice_hours must be between {MIN_ADVANCE_NOTICE_HOURS} and "
                f"{MAX_ADVANCE_NOTICE_HOURS}",
                advance_notice_hours=self.advance_notice_hours,
            )
        if self.daily_limit is not None and self.daily_limit < 1:
            raise InvalidMeetingType(
                "daily_limit must be a positive integer",
                daily_limit=self.daily_limit,
            )
        if self.location_type not in ("phone", "video", "in_person"):
            raise InvalidMeetingType(
                f"Unknown location type: {self.location_type!r}",
                location_type=self.location_type,
            )

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)

    @property
    def advance_notice(self) -> timedelta:
        return timedelta(hours=self.advance_notice_hours)


@dataclass(frozen=True)
class BusyInterval:
    """Half-open ``[start, end)`` block of committed time."""
    start: datetime
    end: datetime


@dataclass
class Invitee:
    """Person booking a slot."""
    name: str
    email: str
    phone: Optional[str] = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.email = (self.email or "").strip()
        self.phone = (self.phone or "").strip() or None
        if not self.name:
            raise InvalidInvitee("Invitee name is required", field="name")
        if len(self.name) > MAX_NAME_LENGTH:
            raise InvalidInvitee(
                f"Invitee name must be at most {MAX_NAME_LENGTH} characters",
                field="name",
            )
        if len(self.email) > MAX_EMAIL_LENGTH or not EMAIL_RE.match(self.email):
            raise InvalidInvitee(f"Invalid email address: {self.email!r}", field="email")
        if self.phone and len(self.phone) > MAX_PHONE_LENGTH:
            raise InvalidInvitee(
                f"Phone number must be at most {MAX_PHONE_LENGTH} characters",
                field="phone",
            )


@dataclass
class Booking:
    """A booked meeting.

    ``duration_minutes`` is copied from the meeting type when the booking is
    admitted and never re-derived afterwards.
    """
    meeting_type_id: int
    invitee_name: str
    invitee_email: str
    scheduled_time: datetime
    duration_minutes: int
    invitee_phone: Optional[str] = None
    status: BookingStatus = "confirmed"
    cancellation_reason: Optional[str] = None
    external_event_ref: Optional[str] = None
    id: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(pytz.UTC))

    @property
    def end_time(self) -> datetime:
        return self.scheduled_time + timedelta(minutes=self.duration_minutes)

    @property
    def is_confirmed(self) -> bool:
        return self.status == "confirmed"

    def as_busy_interval(self) -> BusyInterval:
        return BusyInterval(start=self.scheduled_time, end=self.end_time)


@dataclass(frozen=True)
class CandidateSlot:
    """A bookable start time, labelled in the host's timezone."""
    instant: datetime
    display_label: str
    timezone: str
