"""Structured text for slot lists, confirmations and rejections."""

from collections import OrderedDict
from typing import Dict, List

from models.entities import Booking, CandidateSlot, Host, MeetingType
from models.errors import SchedulingError
from services.notifications import EmailComposer
from services.timezone_service import TimezoneService

REJECTION_HINTS = {
    "slot_unavailable": "That time was just taken. Please pick another slot.",
    "advance_notice_violation": "This meeting needs more notice. Please choose a later time.",
    "daily_limit_reached": "This day is fully booked. Please choose another day.",
    "already_cancelled": "This booking was already cancelled.",
    "invalid_invitee": "Please check your name and email address.",
    "meeting_type_not_found": "This meeting type is not available.",
    "host_not_found": "This host does not exist.",
}

# Reasons where the caller should fetch slots again.
REFRESH_CODES = {"slot_unavailable", "daily_limit_reached"}


class ResponseFormatter:
    """Formats core results consistently for the booking page."""

    @staticmethod
    def format_section(title: str, content: List[str], icon: str = "📋") -> str:
        """Format a section with title and content."""
        lines = [f"**{icon} {title}**", ""]
        lines.extend(content)
        return "\n".join(lines)

    @staticmethod
    def group_slots_by_day(slots: List[CandidateSlot]) -> Dict[str, List[CandidateSlot]]:
        """Group slots under a local-date heading such as ``Monday, November 16``."""
        grouped: Dict[str, List[CandidateSlot]] = OrderedDict()
        for slot in slots:
            heading = TimezoneService.instant_to_display_string(
                slot.instant, slot.timezone, "%A, %B %d"
            )
            grouped.setdefault(heading, []).append(slot)
        return grouped

    @staticmethod
    def format_slot_list(slots: List[CandidateSlot], meeting_type: MeetingType) -> str:
        if not slots:
            return ResponseFormatter.format_error(
                "No Available Times",
                "No open slots in this range. Try a later date."
            )
        timezone = slots[0].timezone
        lines = [
            f"**🗓️ {meeting_type.name}** ({EmailComposer.format_duration(meeting_type.duration_minutes)})",
            f"Times shown in {TimezoneService.get_timezone_display_name(timezone)}",
            "",
        ]
        for heading, day_slots in ResponseFormatter.group_slots_by_day(slots).items():
            lines.append(f"**{heading}**")
            lines.append("   " + " · ".join(s.display_label for s in day_slots))
            lines.append("")
        return "\n".join(lines).rstrip()

    @staticmethod
    def format_booking_confirmation(booking: Booking, host: Host, meeting_type: MeetingType) -> str:
        when = EmailComposer.format_date_time(booking.scheduled_time, host.timezone)
        content = [
            f"**Meeting:** {meeting_type.name}",
            f"**With:** {host.display_name}",
            f"**When:** {when}",
            f"**Duration:** {EmailComposer.format_duration(booking.duration_minutes)}",
            f"**Location:** {EmailComposer.location_text(meeting_type)}",
            f"**Booking ID:** {booking.id}",
            "",
            f"A confirmation email is on its way to {booking.invitee_email}.",
        ]
        return ResponseFormatter.format_section("Meeting Booked", content, icon="✅")

    @staticmethod
    def format_error(title: str, message: str) -> str:
        """Format an error message."""
        return f"**❌ {title}**\n\n{message}"

    @staticmethod
    def format_rejection(error: SchedulingError) -> str:
        hint = REJECTION_HINTS.get(error.code, str(error))
        message = hint if hint == str(error) else f"{error}\n\n{hint}"
        return ResponseFormatter.format_error("Booking Not Possible", message)

    @staticmethod
    def should_refresh_slots(error: SchedulingError) -> bool:
        return error.code in REFRESH_CODES
