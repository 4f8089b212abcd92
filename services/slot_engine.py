"""Core slot generation algorithm."""

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import pytz

from models.entities import (
    MAX_DURATION_MINUTES,
    BusyInterval,
    CandidateSlot,
    Host,
    MeetingType,
    day_of_week,
)
from models.errors import HostNotFound, MeetingTypeNotFound, RangeInvalid
from services.repositories import (
    AvailabilityRepository,
    BookingRepository,
    BusyTimeProvider,
    HostRepository,
    MeetingTypeRepository,
)
from services.settings import DEFAULT_SLOT_GRANULARITY_MINUTES
from services.timezone_service import TimezoneService

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class SlotGenerationEngine:
    """
    Produces bookable slots for a host and meeting type over a date range.

    Read-only and safe to call concurrently. The only time-varying inputs are
    ``clock()`` (for the advance-notice floor) and the busy-time snapshot.
    """

    def __init__(
        self,
        hosts: HostRepository,
        availability: AvailabilityRepository,
        meeting_types: MeetingTypeRepository,
        bookings: BookingRepository,
        busy_time_provider: Optional[BusyTimeProvider] = None,
        clock: Callable[[], datetime] = utc_now,
        granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES
    ):
        if granularity_minutes < 1:
            raise ValueError("granularity_minutes must be positive")
        self.hosts = hosts
        self.availability = availability
        self.meeting_types = meeting_types
        self.bookings = bookings
        self.busy_time_provider = busy_time_provider
        self.clock = clock
        self.granularity = timedelta(minutes=granularity_minutes)

    def resolve(self, host_id: int, meeting_type_id: int) -> tuple[Host, MeetingType]:
        host = self.hosts.get(host_id)
        if host is None:
            raise HostNotFound(host_id=host_id)
        meeting_type = self.meeting_types.get(meeting_type_id)
        if meeting_type is None or not meeting_type.active or meeting_type.host_id != host.id:
            raise MeetingTypeNotFound(meeting_type_id=meeting_type_id)
        return host, meeting_type

    def generate_slots(
        self,
        host_id: int,
        meeting_type_id: int,
        range_start: datetime,
        range_end: datetime
    ) -> list[CandidateSlot]:
        """
        Generate available slots in ``[range_start, range_end)``.

        Algorithm:
            1. Validate the range, resolve host and active meeting type
            2. Advance-notice floor = now + advance_notice_hours
            3. Busy intervals = confirmed bookings (frozen durations)
               + external calendar busy times (empty on provider failure)
            4. For each host-local date, for each weekly rule on that weekday,
               step through the window every ``granularity`` minutes and keep
               starts that fit the window, respect the floor and avoid busy time
            5. De-duplicate by instant and sort

        Raises:
            RangeInvalid, HostNotFound, MeetingTypeNotFound
        """
        range_start = TimezoneService.ensure_utc(range_start)
        range_end = TimezoneService.ensure_utc(range_end)
        if range_start >= range_end:
            raise RangeInvalid(
                range_start=range_start.isoformat(),
                range_end=range_end.isoformat(),
            )

        host, meeting_type = self.resolve(host_id, meeting_type_id)
        rules = self.availability.list_active_rules(host.id)
        dates = TimezoneService.local_dates_between(range_start, range_end, host.timezone)
        if not rules or not dates:
            return []

        min_bookable = TimezoneService.ensure_utc(self.clock()) + meeting_type.advance_notice
        duration = meeting_type.duration

        # Widen the booking window to whole local days (daily limit) and back
        # by the longest meeting so bookings starting before the range count.
        fetch_start = min(
            range_start - timedelta(minutes=MAX_DURATION_MINUTES),
            TimezoneService.local_day_bounds(dates[0], host.timezone)[0]
        )
        fetch_end = max(range_end, TimezoneService.local_day_bounds(dates[-1], host.timezone)[1])
        existing = self.bookings.list_confirmed_in_range(host.id, fetch_start, fetch_end)

        busy = [b.as_busy_interval() for b in existing]
        # A slot starting just before range_end runs up to one duration past it.
        busy.extend(self._external_busy(host, range_start, range_end + duration))

        full_days = self._days_at_limit(meeting_type, existing, host.timezone)

        slots: dict[datetime, CandidateSlot] = {}
        for current_date in dates:
            if current_date in full_days:
                continue
            weekday = day_of_week(current_date)
            for rule in rules:
                if rule.day_of_week != weekday:
                    continue
                window_start = TimezoneService.time_of_day_to_instant(
                    rule.start_time, current_date, host.timezone
                )
                window_end = TimezoneService.time_of_day_to_instant(
                    rule.end_time, current_date, host.timezone
                )
                current = window_start
                while current < window_end:
                    slot_end = current + duration
                    if (
                        slot_end <= window_end
                        and current >= min_bookable
                        and range_start <= current < range_end
                        and current not in slots
                        and not self._overlaps_any(current, slot_end, busy)
                    ):
                        slots[current] = CandidateSlot(
                            instant=current,
                            display_label=TimezoneService.format_time_label(current, host.timezone),
                            timezone=host.timezone
                        )
                    current += self.granularity

        return [slots[instant] for instant in sorted(slots)]

    def _external_busy(
        self,
        host: Host,
        range_start: datetime,
        range_end: datetime
    ) -> list[BusyInterval]:
        if self.busy_time_provider is None:
            return []
        try:
            intervals = self.busy_time_provider.get_busy_intervals(host, range_start, range_end)
        except Exception as e:
            logger.warning(f"Busy-time provider failed for host {host.id}, ignoring: {e}")
            return []
        return [
            BusyInterval(
                start=TimezoneService.ensure_utc(i.start),
                end=TimezoneService.ensure_utc(i.end)
            )
            for i in intervals
        ]

    @staticmethod
    def _days_at_limit(meeting_type: MeetingType, existing, timezone: str) -> set[date]:
        if not meeting_type.daily_limit:
            return set()
        per_day = Counter(
            TimezoneService.to_local_date(b.scheduled_time, timezone) for b in existing
        )
        return {d for d, count in per_day.items() if count >= meeting_type.daily_limit}

    @staticmethod
    def _overlaps_any(start: datetime, end: datetime, busy: list[BusyInterval]) -> bool:
        return any(
            TimezoneService.intervals_overlap(start, end, interval.start, interval.end)
            for interval in busy
        )
