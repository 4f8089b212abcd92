"""Synthetic hosts, schedules and meeting types, plus service wiring."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from models.entities import (
    FRIDAY,
    MONDAY,
    THURSDAY,
    TUESDAY,
    WEDNESDAY,
    Host,
    MeetingType,
    WeeklyAvailabilityRule,
)
from services.availability_service import AvailabilityService
from services.booking_admission import BookingAdmissionController
from services.google_calendar import GoogleCalendarClient
from services.memory_store import InMemoryStore
from services.notifications import EmailComposer, EmailServiceMock, ResendEmailDispatcher
from services.reminder_scheduler import ReminderScheduler
from services.repositories import NotificationDispatcher
from services.settings import Settings
from services.side_effects import configure_executor
from services.slot_engine import SlotGenerationEngine, utc_now

logger = logging.getLogger(__name__)

WEEKDAYS = (MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY)


def _generate_hosts() -> list[Host]:
    return [
        Host(
            id=1,
            username="sarah",
            email="sarah.johnson@example.com",
            timezone="America/New_York",
            first_name="Sarah",
            last_name="Johnson",
        ),
        Host(
            id=2,
            username="rajesh",
            email="rajesh.kumar@example.com",
            timezone="Asia/Kolkata",
            first_name="Rajesh",
            last_name="Kumar",
        ),
        Host(
            id=3,
            username="michael",
            email="michael.chen@example.com",
            timezone="America/Los_Angeles",
            first_name="Michael",
            last_name="Chen",
        ),
    ]


def _generate_rules(host: Host) -> list[WeeklyAvailabilityRule]:
    if host.username == "rajesh":
        # split day around lunch
        return [
            rule
            for day in WEEKDAYS
            for rule in (
                WeeklyAvailabilityRule(day_of_week=day, start_time="10:00", end_time="13:00"),
                WeeklyAvailabilityRule(day_of_week=day, start_time="14:00", end_time="18:30"),
            )
        ]
    if host.username == "michael":
        return [
            WeeklyAvailabilityRule(day_of_week=day, start_time="08:30", end_time="12:00")
            for day in (TUESDAY, THURSDAY)
        ]
    return [
        WeeklyAvailabilityRule(day_of_week=day, start_time="09:00", end_time="17:00")
        for day in WEEKDAYS
    ]


def _generate_meeting_types(host: Host) -> list[MeetingType]:
    return [
        MeetingType(
            id=None,
            host_id=host.id,
            name="Intro Call",
            duration_minutes=30,
            advance_notice_hours=2,
            description=f"A quick introduction with {host.display_name}.",
        ),
        MeetingType(
            id=None,
            host_id=host.id,
            name="Deep Dive",
            duration_minutes=90,
            advance_notice_hours=24,
            daily_limit=2,
            location_type="phone",
            location_details="+1 555 0100",
        ),
    ]


def create_demo_store() -> InMemoryStore:
    """Store seeded with demo hosts, weekly rules and meeting types."""
    store = InMemoryStore()
    for host in _generate_hosts():
        store.hosts.add(host)
        store.availability.replace_rules(host.id, _generate_rules(host))
        for meeting_type in _generate_meeting_types(host):
            store.meeting_types.save(meeting_type)
    return store


@dataclass
class Services:
    store: InMemoryStore
    slot_engine: SlotGenerationEngine
    admission: BookingAdmissionController
    availability: AvailabilityService
    reminders: ReminderScheduler
    notifier: NotificationDispatcher


def build_services(
    settings: Settings,
    store: Optional[InMemoryStore] = None,
    clock: Callable[[], datetime] = utc_now
) -> Services:
    """Wire the core around a store; emails go to Resend when an API key is configured."""
    configure_executor(settings.side_effect_workers)
    store = store or create_demo_store()
    composer = EmailComposer(app_base_url=settings.app_base_url)
    if settings.resend_api_key:
        notifier = ResendEmailDispatcher(
            api_key=settings.resend_api_key,
            from_email=settings.from_email,
            composer=composer,
            api_url=settings.resend_api_url,
        )
    else:
        logger.info("RESEND_API_KEY not set, using mock email service")
        notifier = EmailServiceMock(composer)

    calendar = GoogleCalendarClient(
        base_url=settings.google_api_base_url,
        calendar_id=settings.google_calendar_id,
        timeout=settings.side_effect_timeout_seconds,
    )
    return Services(
        store=store,
        slot_engine=SlotGenerationEngine(
            store.hosts,
            store.availability,
            store.meeting_types,
            store.bookings,
            busy_time_provider=calendar,
            clock=clock,
            granularity_minutes=settings.slot_granularity_minutes,
        ),
        admission=BookingAdmissionController(
            store.hosts,
            store.meeting_types,
            store.bookings,
            notifier=notifier,
            calendar=calendar,
            clock=clock,
            side_effect_timeout=settings.side_effect_timeout_seconds,
        ),
        availability=AvailabilityService(store.hosts, store.availability, store.meeting_types),
        reminders=ReminderScheduler(
            store.hosts, store.meeting_types, store.bookings, notifier, clock=clock
        ),
        notifier=notifier,
    )
