"""Pytest fixtures for the booking core tests."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

import pytest
import pytz

from models.entities import (
    MONDAY,
    Booking,
    BusyInterval,
    Host,
    MeetingType,
    WeeklyAvailabilityRule,
)
from services.booking_admission import BookingAdmissionController
from services.memory_store import InMemoryStore
from services.notifications import EmailServiceMock
from services.repositories import BusyTimeProvider, ExternalCalendarEventManager
from services.slot_engine import SlotGenerationEngine

logging.basicConfig(level=logging.INFO)

NEW_YORK = "America/New_York"
# Monday, after the November DST change (Eastern = UTC-5)
MONDAY_DATE = date(2026, 11, 16)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=pytz.UTC)


def eastern(day: date, hour: int, minute: int = 0) -> datetime:
    """Wall-clock Eastern time on ``day`` as a UTC instant."""
    local = pytz.timezone(NEW_YORK).localize(datetime(day.year, day.month, day.day, hour, minute))
    return local.astimezone(pytz.UTC)


def local_day_range(day: date, days: int = 1, timezone: str = NEW_YORK):
    tz = pytz.timezone(timezone)
    start = tz.localize(datetime(day.year, day.month, day.day))
    end_day = day + timedelta(days=days)
    end = tz.localize(datetime(end_day.year, end_day.month, end_day.day))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


class FixedClock:
    """Callable clock whose time tests can move."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeBusyTimeProvider(BusyTimeProvider):
    """Returns only blocks intersecting the queried range, like a free/busy API."""

    def __init__(self, intervals=None, error: Optional[Exception] = None):
        self.intervals = list(intervals or [])
        self.error = error
        self.calls = []

    def get_busy_intervals(self, host, start, end):
        self.calls.append((host.id, start, end))
        if self.error:
            raise self.error
        return [i for i in self.intervals if i.start < end and start < i.end]


class RecordingCalendar(ExternalCalendarEventManager):

    def __init__(self, create_error: Optional[Exception] = None, delete_error: Optional[Exception] = None):
        self.create_error = create_error
        self.delete_error = delete_error
        self.created = []
        self.deleted = []

    def create(self, booking, host, meeting_type):
        if self.create_error:
            raise self.create_error
        self.created.append(booking.id)
        return f"evt-{booking.id}"

    def delete(self, host, event_ref):
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(event_ref)


class BrokenMailer(EmailServiceMock):

    def deliver(self, message):
        raise ConnectionError("smtp unreachable")


@pytest.fixture
def clock():
    """Monday 08:00 Eastern."""
    return FixedClock(eastern(MONDAY_DATE, 8))


@pytest.fixture
def host():
    return Host(
        id=1,
        username="sarah",
        email="sarah@example.com",
        timezone=NEW_YORK,
        first_name="Sarah",
        last_name="Johnson",
    )


@pytest.fixture
def store(host):
    """Host with Monday 09:00-17:00 and a 30 minute meeting type (id 1) with 2h notice."""
    store = InMemoryStore()
    store.hosts.add(host)
    store.hosts.add(Host(id=2, username="other", email="other@example.com", timezone="Europe/London"))
    store.availability.replace_rules(host.id, [
        WeeklyAvailabilityRule(day_of_week=MONDAY, start_time="09:00", end_time="17:00"),
    ])
    store.meeting_types.save(MeetingType(
        id=None,
        host_id=host.id,
        name="Intro Call",
        duration_minutes=30,
        advance_notice_hours=2,
    ))
    return store


@pytest.fixture
def meeting_type(store):
    return store.meeting_types.get(1)


@pytest.fixture
def busy_provider():
    return FakeBusyTimeProvider()


@pytest.fixture
def engine(store, busy_provider, clock):
    return SlotGenerationEngine(
        store.hosts,
        store.availability,
        store.meeting_types,
        store.bookings,
        busy_time_provider=busy_provider,
        clock=clock,
    )


@pytest.fixture
def mailer():
    return EmailServiceMock()


@pytest.fixture
def calendar():
    return RecordingCalendar()


@pytest.fixture
def controller(store, mailer, calendar, clock):
    return BookingAdmissionController(
        store.hosts,
        store.meeting_types,
        store.bookings,
        notifier=mailer,
        calendar=calendar,
        clock=clock,
        side_effect_timeout=2.0,
    )


@pytest.fixture
def book(store):
    """Insert a confirmed booking directly into the store."""

    def _book(scheduled_time: datetime, meeting_type_id: int = 1, duration_minutes: int = 30) -> Booking:
        return store.bookings.insert_if_no_conflict(Booking(
            meeting_type_id=meeting_type_id,
            invitee_name="Existing Invitee",
            invitee_email="existing@example.com",
            scheduled_time=scheduled_time,
            duration_minutes=duration_minutes,
        ))

    return _book


def busy(start: datetime, end: datetime) -> BusyInterval:
    return BusyInterval(start=start, end=end)
