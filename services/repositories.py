"""Interfaces for the collaborators the scheduling core reads from and writes to."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from models.entities import (
    Booking,
    BookingStatus,
    BusyInterval,
    Host,
    MeetingType,
    WeeklyAvailabilityRule,
)


class HostRepository(ABC):

    @abstractmethod
    def get(self, host_id: int) -> Optional[Host]:
        ...

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[Host]:
        ...


class AvailabilityRepository(ABC):

    @abstractmethod
    def list_active_rules(self, host_id: int) -> list[WeeklyAvailabilityRule]:
        ...

    @abstractmethod
    def replace_rules(self, host_id: int, rules: list[WeeklyAvailabilityRule]) -> None:
        """Swap the host's full rule set."""
        ...


class MeetingTypeRepository(ABC):

    @abstractmethod
    def get(self, meeting_type_id: int) -> Optional[MeetingType]:
        ...

    @abstractmethod
    def list_for_host(self, host_id: int) -> list[MeetingType]:
        ...

    @abstractmethod
    def save(self, meeting_type: MeetingType) -> MeetingType:
        ...

    @abstractmethod
    def delete(self, meeting_type_id: int) -> None:
        """Delete the meeting type and hard-delete its bookings."""
        ...


class BookingRepository(ABC):

    @abstractmethod
    def get(self, booking_id: int) -> Optional[Booking]:
        ...

    @abstractmethod
    def list_confirmed_in_range(
        self,
        host_id: int,
        start: datetime,
        end: datetime
    ) -> list[Booking]:
        """Confirmed bookings of the host with ``start <= scheduled_time < end``."""
        ...

    @abstractmethod
    def list_confirmed_between(self, start: datetime, end: datetime) -> list[Booking]:
        """Confirmed bookings of every host with ``start <= scheduled_time <= end``."""
        ...

    @abstractmethod
    def insert_if_no_conflict(
        self,
        booking: Booking,
        daily_limit: Optional[int] = None,
        day_bounds: Optional[tuple[datetime, datetime]] = None
    ) -> Booking:
        """
        Atomically insert a confirmed booking.

        With ``daily_limit`` and ``day_bounds`` set, the host's confirmed
        bookings starting inside ``day_bounds`` are counted in the same
        critical section as the overlap check.

        Raises:
            ConflictError: another confirmed booking of the same host overlaps
                ``[scheduled_time, scheduled_time + duration)``
            DailyCapacityExceeded: the host already has ``daily_limit``
                confirmed bookings inside ``day_bounds``
        """
        ...

    @abstractmethod
    def update_status(
        self,
        booking_id: int,
        status: BookingStatus,
        reason: Optional[str] = None
    ) -> Booking:
        """
        Raises:
            BookingNotFound: no such booking
            AlreadyCancelled: the booking was already cancelled
        """
        ...

    @abstractmethod
    def attach_external_event_ref(self, booking_id: int, ref: str) -> Booking:
        ...


class BusyTimeProvider(ABC):
    """Busy blocks from the host's external calendar."""

    @abstractmethod
    def get_busy_intervals(
        self,
        host: Host,
        start: datetime,
        end: datetime
    ) -> list[BusyInterval]:
        ...


class ExternalCalendarEventManager(ABC):

    @abstractmethod
    def create(self, booking: Booking, host: Host, meeting_type: MeetingType) -> Optional[str]:
        """Create a calendar event and return its reference."""
        ...

    @abstractmethod
    def delete(self, host: Host, event_ref: str) -> None:
        ...


class NotificationDispatcher(ABC):

    @abstractmethod
    def send_booking_confirmed(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType
    ) -> None:
        ...

    @abstractmethod
    def send_cancelled(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType,
        reason: Optional[str] = None
    ) -> None:
        ...

    @abstractmethod
    def send_reminder(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType,
        reminder_type: str
    ) -> None:
        ...
