"""Error taxonomy for availability and booking operations."""

from typing import Any


class SchedulingError(Exception):
    """Base class for every failure surfaced by the scheduling core."""

    code = "scheduling_error"
    default_message = "Scheduling operation failed"

    def __init__(self, message: str = None, **details: Any):
        self.details = details
        super().__init__(message or self.default_message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self), "details": self.details}


# Validation errors: caller-correctable, never retried.

class ValidationError(SchedulingError):
    code = "validation_error"
    default_message = "Invalid input"


class InvalidTimeFormat(ValidationError):
    code = "invalid_time_format"
    default_message = "Time must be in HH:MM format"


class UnknownTimezone(ValidationError):
    code = "unknown_timezone"
    default_message = "Unknown timezone"


class RangeInvalid(ValidationError):
    code = "range_invalid"
    default_message = "Range start must be before range end"


class InvalidInvitee(ValidationError):
    code = "invalid_invitee"
    default_message = "Invalid invitee details"


class InvalidRule(ValidationError):
    code = "invalid_rule"
    default_message = "Invalid weekly availability rule"


class InvalidMeetingType(ValidationError):
    code = "invalid_meeting_type"
    default_message = "Invalid meeting type constraints"


# Not-found errors.

class NotFoundError(SchedulingError):
    code = "not_found"
    default_message = "Not found"


class HostNotFound(NotFoundError):
    code = "host_not_found"
    default_message = "Host not found"


class MeetingTypeNotFound(NotFoundError):
    code = "meeting_type_not_found"
    default_message = "Meeting type not found"


class BookingNotFound(NotFoundError):
    code = "booking_not_found"
    default_message = "Booking not found"


# Business-rule violations: the caller re-queries slots or shows a message.

class BusinessRuleViolation(SchedulingError):
    code = "business_rule_violation"
    default_message = "Booking rule violated"


class AdvanceNoticeViolation(BusinessRuleViolation):
    code = "advance_notice_violation"
    default_message = "Booking does not meet the required advance notice"


class DailyLimitReached(BusinessRuleViolation):
    code = "daily_limit_reached"
    default_message = "Daily booking limit reached"


class SlotUnavailable(BusinessRuleViolation):
    code = "slot_unavailable"
    default_message = "Selected time slot is no longer available"


class AlreadyCancelled(BusinessRuleViolation):
    code = "already_cancelled"
    default_message = "Booking is already cancelled"


class ConflictError(SchedulingError):
    """Raised by a booking repository when an atomic insert hits an overlap.

    Never leaves the core: the admission controller turns it into
    ``SlotUnavailable``.
    """

    code = "conflict"
    default_message = "Booking conflicts with an existing booking"


class DailyCapacityExceeded(SchedulingError):
    """Raised by a booking repository when an atomic insert would exceed the
    host's daily limit. The admission controller turns it into
    ``DailyLimitReached``.
    """

    code = "daily_capacity_exceeded"
    default_message = "Host has no remaining bookings for that day"
