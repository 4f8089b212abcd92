"""Reminder emails for upcoming bookings."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from services.repositories import (
    BookingRepository,
    HostRepository,
    MeetingTypeRepository,
    NotificationDispatcher,
)
from services.side_effects import attempt
from services.slot_engine import utc_now
from services.timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """
    Sends reminders for confirmed bookings starting 24-25 hours or 1-2 hours
    from now. Meant to be run by an external scheduler (cron) at least hourly.
    """

    def __init__(
        self,
        hosts: HostRepository,
        meeting_types: MeetingTypeRepository,
        bookings: BookingRepository,
        notifier: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now
    ):
        self.hosts = hosts
        self.meeting_types = meeting_types
        self.bookings = bookings
        self.notifier = notifier
        self.clock = clock

    def send_24_hour_reminders(self) -> int:
        return self._send_window(timedelta(hours=24), timedelta(hours=25), "24hours")

    def send_1_hour_reminders(self) -> int:
        return self._send_window(timedelta(hours=1), timedelta(hours=2), "1hour")

    def send_scheduled_reminders(self) -> int:
        logger.info("Starting scheduled reminder process...")
        sent = self.send_24_hour_reminders() + self.send_1_hour_reminders()
        logger.info(f"Scheduled reminder process completed: {sent} reminder(s) sent")
        return sent

    def _send_window(self, offset_start: timedelta, offset_end: timedelta, reminder_type: str) -> int:
        now = TimezoneService.ensure_utc(self.clock())
        due = self.bookings.list_confirmed_between(now + offset_start, now + offset_end)

        sent = 0
        for booking in due:
            meeting_type = self.meeting_types.get(booking.meeting_type_id)
            host = self.hosts.get(meeting_type.host_id) if meeting_type else None
            if host is None:
                logger.warning(f"Skipping reminder for booking {booking.id}: host not found")
                continue
            outcome = attempt(
                f"{reminder_type} reminder for booking {booking.id}",
                self.notifier.send_reminder, booking, host, meeting_type, reminder_type
            )
            if outcome.ok:
                sent += 1
        return sent
