"""In-process storage backing every repository interface."""

import itertools
import logging
import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Optional

from models.entities import (
    Booking,
    BookingStatus,
    Host,
    MeetingType,
    WeeklyAvailabilityRule,
)
from models.errors import (
    AlreadyCancelled,
    BookingNotFound,
    ConflictError,
    DailyCapacityExceeded,
    MeetingTypeNotFound,
)
from services.repositories import (
    AvailabilityRepository,
    BookingRepository,
    HostRepository,
    MeetingTypeRepository,
)
from services.timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Thread-safe store for hosts, rules, meeting types and bookings.

    Exposes one repository per concern (``hosts``, ``availability``,
    ``meeting_types``, ``bookings``) over shared state. Every returned entity
    is a copy, so callers cannot mutate stored state.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.host_locks: dict[int, threading.Lock] = defaultdict(threading.Lock)
        self.host_rows: dict[int, Host] = {}
        self.rule_rows: dict[int, list[WeeklyAvailabilityRule]] = {}
        self.meeting_type_rows: dict[int, MeetingType] = {}
        self.booking_rows: dict[int, Booking] = {}
        self.meeting_type_ids = itertools.count(1)
        self.booking_ids = itertools.count(1)

        self.hosts = InMemoryHostRepository(self)
        self.availability = InMemoryAvailabilityRepository(self)
        self.meeting_types = InMemoryMeetingTypeRepository(self)
        self.bookings = InMemoryBookingRepository(self)

    def host_id_for_meeting_type(self, meeting_type_id: int) -> Optional[int]:
        meeting_type = self.meeting_type_rows.get(meeting_type_id)
        return meeting_type.host_id if meeting_type else None

    def lock_for_host(self, host_id: int) -> threading.Lock:
        with self.lock:
            return self.host_locks[host_id]


class InMemoryHostRepository(HostRepository):

    def __init__(self, store: InMemoryStore):
        self.store = store

    def add(self, host: Host) -> Host:
        with self.store.lock:
            self.store.host_rows[host.id] = replace(host)
        return replace(host)

    def get(self, host_id: int) -> Optional[Host]:
        with self.store.lock:
            host = self.store.host_rows.get(host_id)
            return replace(host) if host else None

    def get_by_username(self, username: str) -> Optional[Host]:
        with self.store.lock:
            for host in self.store.host_rows.values():
                if host.username == username:
                    return replace(host)
        return None

    def list_all(self) -> list[Host]:
        with self.store.lock:
            return [replace(h) for h in self.store.host_rows.values()]


class InMemoryAvailabilityRepository(AvailabilityRepository):

    def __init__(self, store: InMemoryStore):
        self.store = store

    def list_rules(self, host_id: int) -> list[WeeklyAvailabilityRule]:
        with self.store.lock:
            return [replace(r) for r in self.store.rule_rows.get(host_id, [])]

    def list_active_rules(self, host_id: int) -> list[WeeklyAvailabilityRule]:
        return [r for r in self.list_rules(host_id) if r.active]

    def replace_rules(self, host_id: int, rules: list[WeeklyAvailabilityRule]) -> None:
        with self.store.lock:
            self.store.rule_rows[host_id] = [replace(r) for r in rules]


class InMemoryMeetingTypeRepository(MeetingTypeRepository):

    def __init__(self, store: InMemoryStore):
        self.store = store

    def get(self, meeting_type_id: int) -> Optional[MeetingType]:
        with self.store.lock:
            meeting_type = self.store.meeting_type_rows.get(meeting_type_id)
            return replace(meeting_type) if meeting_type else None

    def list_for_host(self, host_id: int) -> list[MeetingType]:
        with self.store.lock:
            return [
                replace(mt) for mt in self.store.meeting_type_rows.values()
                if mt.host_id == host_id
            ]

    def save(self, meeting_type: MeetingType) -> MeetingType:
        with self.store.lock:
            if meeting_type.id is None:
                meeting_type = replace(meeting_type, id=next(self.store.meeting_type_ids))
            self.store.meeting_type_rows[meeting_type.id] = replace(meeting_type)
            return replace(meeting_type)

    def delete(self, meeting_type_id: int) -> None:
        with self.store.lock:
            if meeting_type_id not in self.store.meeting_type_rows:
                raise MeetingTypeNotFound(meeting_type_id=meeting_type_id)
            del self.store.meeting_type_rows[meeting_type_id]
            doomed = [
                b.id for b in self.store.booking_rows.values()
                if b.meeting_type_id == meeting_type_id
            ]
            for booking_id in doomed:
                del self.store.booking_rows[booking_id]
        logger.info(f"Deleted meeting type {meeting_type_id} and {len(doomed)} booking(s)")


class InMemoryBookingRepository(BookingRepository):
    """
    Booking storage with a per-host critical section.

    ``insert_if_no_conflict`` re-checks full-interval overlap against the
    host's confirmed bookings while holding the host lock, so two concurrent
    inserts for overlapping intervals cannot both succeed. The daily count,
    when requested, is taken under the same lock.
    """

    def __init__(self, store: InMemoryStore):
        self.store = store

    def _confirmed_for_host(self, host_id: int) -> list[Booking]:
        return [
            b for b in self.store.booking_rows.values()
            if b.is_confirmed and self.store.host_id_for_meeting_type(b.meeting_type_id) == host_id
        ]

    def get(self, booking_id: int) -> Optional[Booking]:
        with self.store.lock:
            booking = self.store.booking_rows.get(booking_id)
            return replace(booking) if booking else None

    def list_for_host(self, host_id: int) -> list[Booking]:
        with self.store.lock:
            return sorted(
                (replace(b) for b in self.store.booking_rows.values()
                 if self.store.host_id_for_meeting_type(b.meeting_type_id) == host_id),
                key=lambda b: b.scheduled_time
            )

    def list_confirmed_in_range(
        self,
        host_id: int,
        start: datetime,
        end: datetime
    ) -> list[Booking]:
        with self.store.lock:
            return sorted(
                (replace(b) for b in self._confirmed_for_host(host_id)
                 if start <= b.scheduled_time < end),
                key=lambda b: b.scheduled_time
            )

    def list_confirmed_between(self, start: datetime, end: datetime) -> list[Booking]:
        with self.store.lock:
            return sorted(
                (replace(b) for b in self.store.booking_rows.values()
                 if b.is_confirmed and start <= b.scheduled_time <= end),
                key=lambda b: b.scheduled_time
            )

    def insert_if_no_conflict(
        self,
        booking: Booking,
        daily_limit: Optional[int] = None,
        day_bounds: Optional[tuple[datetime, datetime]] = None
    ) -> Booking:
        with self.store.lock:
            host_id = self.store.host_id_for_meeting_type(booking.meeting_type_id)
        if host_id is None:
            raise MeetingTypeNotFound(meeting_type_id=booking.meeting_type_id)

        with self.store.lock_for_host(host_id):
            with self.store.lock:
                confirmed = self._confirmed_for_host(host_id)
                if daily_limit and day_bounds:
                    day_start, day_end = day_bounds
                    booked = sum(1 for b in confirmed if day_start <= b.scheduled_time < day_end)
                    if booked >= daily_limit:
                        raise DailyCapacityExceeded(daily_limit=daily_limit, booked=booked)
                for existing in confirmed:
                    if TimezoneService.intervals_overlap(
                        booking.scheduled_time, booking.end_time,
                        existing.scheduled_time, existing.end_time
                    ):
                        raise ConflictError(
                            booking_id=existing.id,
                            scheduled_time=existing.scheduled_time.isoformat(),
                        )
                stored = replace(booking, id=next(self.store.booking_ids), status="confirmed")
                self.store.booking_rows[stored.id] = stored
                return replace(stored)

    def update_status(
        self,
        booking_id: int,
        status: BookingStatus,
        reason: Optional[str] = None
    ) -> Booking:
        with self.store.lock:
            booking = self.store.booking_rows.get(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id=booking_id)
            if booking.status == "cancelled":
                raise AlreadyCancelled(booking_id=booking_id)
            updated = replace(booking, status=status, cancellation_reason=reason)
            self.store.booking_rows[booking_id] = updated
            return replace(updated)

    def attach_external_event_ref(self, booking_id: int, ref: str) -> Booking:
        with self.store.lock:
            booking = self.store.booking_rows.get(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id=booking_id)
            updated = replace(booking, external_event_ref=ref)
            self.store.booking_rows[booking_id] = updated
            return replace(updated)
