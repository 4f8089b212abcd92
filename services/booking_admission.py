"""Write-time validation and commit of bookings."""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from models.entities import MAX_DURATION_MINUTES, Booking, Host, Invitee, MeetingType
from models.errors import (
    AdvanceNoticeViolation,
    BookingNotFound,
    ConflictError,
    DailyCapacityExceeded,
    DailyLimitReached,
    HostNotFound,
    InvalidInvitee,
    MeetingTypeNotFound,
    SlotUnavailable,
)
from services.repositories import (
    BookingRepository,
    ExternalCalendarEventManager,
    HostRepository,
    MeetingTypeRepository,
    NotificationDispatcher,
)
from services.side_effects import attempt
from services.slot_engine import utc_now
from services.timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class BookingAdmissionController:
    """
    Admits and cancels bookings.

    Every gate runs before anything is written; the conflict and daily-limit
    checks are repeated atomically by ``BookingRepository.insert_if_no_conflict``.
    Calendar and notification calls happen after the commit and never fail the operation.
    """

    def __init__(
        self,
        hosts: HostRepository,
        meeting_types: MeetingTypeRepository,
        bookings: BookingRepository,
        notifier: Optional[NotificationDispatcher] = None,
        calendar: Optional[ExternalCalendarEventManager] = None,
        clock: Callable[[], datetime] = utc_now,
        side_effect_timeout: Optional[float] = 10.0
    ):
        self.hosts = hosts
        self.meeting_types = meeting_types
        self.bookings = bookings
        self.notifier = notifier
        self.calendar = calendar
        self.clock = clock
        self.side_effect_timeout = side_effect_timeout

    def _resolve(self, meeting_type_id: int) -> tuple[MeetingType, Host]:
        meeting_type = self.meeting_types.get(meeting_type_id)
        if meeting_type is None or not meeting_type.active:
            raise MeetingTypeNotFound(meeting_type_id=meeting_type_id)
        host = self.hosts.get(meeting_type.host_id)
        if host is None:
            raise HostNotFound(host_id=meeting_type.host_id)
        return meeting_type, host

    def admit_booking(
        self,
        meeting_type_id: int,
        invitee: Invitee,
        scheduled_time: datetime
    ) -> Booking:
        """
        Validate and commit a booking.

        Raises:
            MeetingTypeNotFound, HostNotFound, InvalidInvitee,
            AdvanceNoticeViolation, DailyLimitReached, SlotUnavailable
        """
        meeting_type, host = self._resolve(meeting_type_id)
        if not isinstance(invitee, Invitee):
            try:
                invitee = Invitee(**invitee)
            except TypeError as e:
                raise InvalidInvitee(f"Malformed invitee {invitee!r}: {e}") from e
        scheduled_time = TimezoneService.ensure_utc(scheduled_time)

        min_bookable = TimezoneService.ensure_utc(self.clock()) + meeting_type.advance_notice
        if scheduled_time < min_bookable:
            raise AdvanceNoticeViolation(
                f"Bookings require at least {meeting_type.advance_notice_hours} hour(s) notice",
                advance_notice_hours=meeting_type.advance_notice_hours,
                earliest=min_bookable.isoformat(),
            )

        local_date = TimezoneService.to_local_date(scheduled_time, host.timezone)
        day_bounds = TimezoneService.local_day_bounds(local_date, host.timezone)
        if meeting_type.daily_limit:
            day_start, day_end = day_bounds
            booked = [
                b for b in self.bookings.list_confirmed_in_range(host.id, day_start, day_end)
                if b.scheduled_time < day_end
            ]
            if len(booked) >= meeting_type.daily_limit:
                raise self._daily_limit_reached(host, meeting_type, local_date)

        candidate = Booking(
            meeting_type_id=meeting_type.id,
            invitee_name=invitee.name,
            invitee_email=invitee.email,
            invitee_phone=invitee.phone,
            scheduled_time=scheduled_time,
            duration_minutes=meeting_type.duration_minutes,
        )
        self._check_conflicts(host, candidate)

        try:
            booking = self.bookings.insert_if_no_conflict(
                candidate,
                daily_limit=meeting_type.daily_limit,
                day_bounds=day_bounds
            )
        except ConflictError as e:
            logger.info(f"Concurrent booking won slot {scheduled_time.isoformat()} for host {host.id}")
            raise SlotUnavailable(scheduled_time=scheduled_time.isoformat()) from e
        except DailyCapacityExceeded as e:
            logger.info(f"Concurrent booking filled {local_date.isoformat()} for host {host.id}")
            raise self._daily_limit_reached(host, meeting_type, local_date) from e

        logger.info(
            f"Booking {booking.id} confirmed: {meeting_type.name} with {host.username} "
            f"at {scheduled_time.isoformat()}"
        )
        return self._after_commit(booking, host, meeting_type)

    @staticmethod
    def _daily_limit_reached(host: Host, meeting_type: MeetingType, local_date: date) -> DailyLimitReached:
        return DailyLimitReached(
            f"{host.display_name} accepts at most {meeting_type.daily_limit} "
            f"booking(s) on {local_date.isoformat()}",
            daily_limit=meeting_type.daily_limit,
            date=local_date.isoformat(),
        )

    def _check_conflicts(self, host: Host, candidate: Booking) -> None:
        # An overlapping booking starts less than one maximum-length meeting
        # before the candidate.
        nearby = self.bookings.list_confirmed_in_range(
            host.id,
            candidate.scheduled_time - timedelta(minutes=MAX_DURATION_MINUTES),
            candidate.end_time
        )
        for existing in nearby:
            if TimezoneService.intervals_overlap(
                candidate.scheduled_time, candidate.end_time,
                existing.scheduled_time, existing.end_time
            ):
                raise SlotUnavailable(scheduled_time=candidate.scheduled_time.isoformat())

    def _after_commit(self, booking: Booking, host: Host, meeting_type: MeetingType) -> Booking:
        if self.calendar is not None:
            outcome = attempt(
                f"Calendar event for booking {booking.id}",
                self.calendar.create, booking, host, meeting_type,
                timeout=self.side_effect_timeout
            )
            if outcome.ok and outcome.value:
                attached = attempt(
                    f"Attach calendar event to booking {booking.id}",
                    self.bookings.attach_external_event_ref, booking.id, outcome.value
                )
                if attached.ok:
                    booking = attached.value

        if self.notifier is not None:
            attempt(
                f"Confirmation for booking {booking.id}",
                self.notifier.send_booking_confirmed, booking, host, meeting_type,
                timeout=self.side_effect_timeout
            )
        return booking

    def cancel_booking(
        self,
        booking_id: int,
        host_id: int,
        reason: Optional[str] = None
    ) -> Booking:
        """
        Cancel a confirmed booking owned by ``host_id``.

        Raises:
            BookingNotFound: absent, or owned by another host
            AlreadyCancelled: the booking was already cancelled
        """
        booking = self.bookings.get(booking_id)
        meeting_type = self.meeting_types.get(booking.meeting_type_id) if booking else None
        if booking is None or meeting_type is None or meeting_type.host_id != host_id:
            raise BookingNotFound(booking_id=booking_id)
        host = self.hosts.get(host_id)
        if host is None:
            raise BookingNotFound(booking_id=booking_id)

        reason = (reason or "").strip() or None
        cancelled = self.bookings.update_status(booking_id, "cancelled", reason)
        logger.info(f"Booking {booking_id} cancelled by host {host_id}")

        if self.calendar is not None and cancelled.external_event_ref:
            attempt(
                f"Delete calendar event for booking {booking_id}",
                self.calendar.delete, host, cancelled.external_event_ref,
                timeout=self.side_effect_timeout
            )
        if self.notifier is not None:
            attempt(
                f"Cancellation notice for booking {booking_id}",
                self.notifier.send_cancelled, cancelled, host, meeting_type, reason,
                timeout=self.side_effect_timeout
            )
        return cancelled
