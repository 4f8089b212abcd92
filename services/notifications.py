"""Booking emails: composition and dispatch."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx
import pytz

from models.entities import Booking, Host, MeetingType
from services.repositories import NotificationDispatcher

logger = logging.getLogger(__name__)

REMINDER_LABELS = {
    "24hours": "tomorrow",
    "1hour": "in 1 hour",
}


@dataclass
class EmailMessage:
    to: str
    subject: str
    body: str
    kind: str
    booking_id: Optional[int] = None
    sent_at: datetime = field(default_factory=lambda: datetime.now(pytz.UTC))


class EmailComposer:
    """Builds the subject and body of every booking email."""

    def __init__(self, app_base_url: str = "http://localhost:8501"):
        self.app_base_url = app_base_url.rstrip("/")

    @staticmethod
    def format_date_time(instant: datetime, timezone: str) -> str:
        local = instant.astimezone(pytz.timezone(timezone))
        return local.strftime("%A, %B %d, %Y at %I:%M %p %Z")

    @staticmethod
    def format_duration(minutes: int) -> str:
        hours, remaining = divmod(minutes, 60)
        if hours == 0:
            return f"{remaining} minutes"
        hour_text = f"{hours} hour{'s' if hours > 1 else ''}"
        if remaining == 0:
            return hour_text
        return f"{hour_text} and {remaining} minutes"

    @staticmethod
    def location_text(meeting_type: MeetingType) -> str:
        details = meeting_type.location_details
        if meeting_type.location_type == "video":
            return "Video call (Google Meet link will be provided)"
        if meeting_type.location_type == "phone":
            return f"Phone call at {details}" if details else "Phone call"
        if meeting_type.location_type == "in_person":
            return details or "In person"
        return "Location to be determined"

    def _details(self, booking: Booking, meeting_type: MeetingType, timezone: str) -> str:
        return "\n".join([
            f"{meeting_type.name}",
            f"When: {self.format_date_time(booking.scheduled_time, timezone)}",
            f"Duration: {self.format_duration(booking.duration_minutes)}",
            f"Location: {self.location_text(meeting_type)}",
        ])

    def booking_confirmed(self, booking: Booking, host: Host, meeting_type: MeetingType) -> list[EmailMessage]:
        details = self._details(booking, meeting_type, host.timezone)
        to_invitee = EmailMessage(
            to=booking.invitee_email,
            subject=f"Meeting Confirmed: {meeting_type.name}",
            body=(
                f"Hi {booking.invitee_name},\n\n"
                f"Your meeting with {host.display_name} has been confirmed.\n\n"
                f"{details}\n"
                f"With: {host.display_name} ({host.email})\n\n"
                f"Need to make changes? Reply to this email or visit "
                f"{self.app_base_url}/{host.username}"
            ),
            kind="confirmation",
            booking_id=booking.id,
        )
        phone_line = f"Phone: {booking.invitee_phone}\n" if booking.invitee_phone else ""
        to_host = EmailMessage(
            to=host.email,
            subject=f"New Booking: {meeting_type.name} with {booking.invitee_name}",
            body=(
                f"Hi {host.display_name},\n\n"
                f"You have a new booking.\n\n"
                f"{details}\n"
                f"Invitee: {booking.invitee_name} ({booking.invitee_email})\n"
                f"{phone_line}"
            ),
            kind="host_notification",
            booking_id=booking.id,
        )
        return [to_invitee, to_host]

    def booking_cancelled(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType,
        reason: Optional[str] = None
    ) -> list[EmailMessage]:
        details = self._details(booking, meeting_type, host.timezone)
        reason_line = f"Reason: {reason}\n" if reason else ""
        messages = []
        for to, name in ((booking.invitee_email, booking.invitee_name), (host.email, host.display_name)):
            messages.append(EmailMessage(
                to=to,
                subject=f"Meeting Cancelled: {meeting_type.name}",
                body=(
                    f"Hi {name},\n\n"
                    f"The following meeting has been cancelled.\n\n"
                    f"{details}\n"
                    f"{reason_line}"
                ),
                kind="cancellation",
                booking_id=booking.id,
            ))
        return messages

    def reminder(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType,
        reminder_type: str
    ) -> list[EmailMessage]:
        when = REMINDER_LABELS.get(reminder_type, "soon")
        details = self._details(booking, meeting_type, host.timezone)
        messages = []
        for to, name, other in (
            (booking.invitee_email, booking.invitee_name, host.display_name),
            (host.email, host.display_name, booking.invitee_name),
        ):
            messages.append(EmailMessage(
                to=to,
                subject=f"Reminder: {meeting_type.name} {when}",
                body=f"Hi {name},\n\nYour meeting with {other} starts {when}.\n\n{details}\n",
                kind=f"reminder_{reminder_type}",
                booking_id=booking.id,
            ))
        return messages


class _ComposingDispatcher(NotificationDispatcher):
    """Turns dispatcher calls into composed messages handed to ``deliver``."""

    def __init__(self, composer: Optional[EmailComposer] = None):
        self.composer = composer or EmailComposer()

    def deliver(self, message: EmailMessage) -> None:
        raise NotImplementedError

    def send_booking_confirmed(self, booking: Booking, host: Host, meeting_type: MeetingType) -> None:
        for message in self.composer.booking_confirmed(booking, host, meeting_type):
            self.deliver(message)

    def send_cancelled(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType,
        reason: Optional[str] = None
    ) -> None:
        for message in self.composer.booking_cancelled(booking, host, meeting_type, reason):
            self.deliver(message)

    def send_reminder(
        self,
        booking: Booking,
        host: Host,
        meeting_type: MeetingType,
        reminder_type: str
    ) -> None:
        for message in self.composer.reminder(booking, host, meeting_type, reminder_type):
            self.deliver(message)


class EmailServiceMock(_ComposingDispatcher):
    """Mock email service that logs emails instead of sending them."""

    def __init__(self, composer: Optional[EmailComposer] = None):
        super().__init__(composer)
        self._lock = threading.Lock()
        self.sent_emails: list[EmailMessage] = []

    def deliver(self, message: EmailMessage) -> None:
        logger.info(f"[mock email] to={message.to} subject={message.subject!r}")
        with self._lock:
            self.sent_emails.append(message)

    def get_sent_emails(self) -> list[EmailMessage]:
        """Get all sent emails."""
        with self._lock:
            return self.sent_emails.copy()

    def clear_emails(self):
        """Clear email log (for testing/reset)."""
        with self._lock:
            self.sent_emails = []


class ResendEmailDispatcher(_ComposingDispatcher):
    """Delivers emails through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        composer: Optional[EmailComposer] = None,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        if not api_key:
            raise ValueError("A Resend API key is required")
        super().__init__(composer)
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    def deliver(self, message: EmailMessage) -> None:
        payload = {
            "from": self.from_email,
            "to": [message.to],
            "subject": message.subject,
            "text": message.body,
        }
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            response = client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"}
            )
            response.raise_for_status()
        logger.info(f"Sent {message.kind} email for booking {message.booking_id} to {message.to}")
