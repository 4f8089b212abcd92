"""Tests for email composition and dispatch."""

import json

import httpx
import pytest

from models.entities import Booking, MeetingType
from services.notifications import EmailComposer, EmailServiceMock, ResendEmailDispatcher
from tests.conftest import MONDAY_DATE, eastern


@pytest.fixture
def booking():
    return Booking(
        id=7,
        meeting_type_id=1,
        invitee_name="Alex Rivera",
        invitee_email="alex@example.com",
        invitee_phone="+1 555 0100",
        scheduled_time=eastern(MONDAY_DATE, 10),
        duration_minutes=90,
    )


@pytest.mark.parametrize("minutes,expected", [
    (30, "30 minutes"),
    (60, "1 hour"),
    (90, "1 hour and 30 minutes"),
    (120, "2 hours"),
])
def test_format_duration(minutes, expected):
    assert EmailComposer.format_duration(minutes) == expected


def test_format_date_time_uses_host_timezone():
    text = EmailComposer.format_date_time(eastern(MONDAY_DATE, 10), "America/New_York")
    assert text == "Monday, November 16, 2026 at 10:00 AM EST"


def test_location_text():
    def mt(**kwargs):
        return MeetingType(id=1, host_id=1, name="Call", duration_minutes=30, **kwargs)

    assert "Google Meet" in EmailComposer.location_text(mt(location_type="video"))
    assert EmailComposer.location_text(mt(location_type="phone", location_details="555-0100")) == "Phone call at 555-0100"
    assert EmailComposer.location_text(mt(location_type="in_person", location_details="Room 4")) == "Room 4"


def test_confirmation_goes_to_invitee_and_host(booking, host, meeting_type):
    invitee_msg, host_msg = EmailComposer("http://book.example.com/").booking_confirmed(booking, host, meeting_type)

    assert invitee_msg.to == "alex@example.com"
    assert invitee_msg.subject == "Meeting Confirmed: Intro Call"
    assert "Duration: 1 hour and 30 minutes" in invitee_msg.body
    assert "http://book.example.com/sarah" in invitee_msg.body
    assert host_msg.to == "sarah@example.com"
    assert host_msg.kind == "host_notification"
    assert "Phone: +1 555 0100" in host_msg.body
    assert {invitee_msg.booking_id, host_msg.booking_id} == {7}


def test_reminder_wording(booking, host, meeting_type):
    messages = EmailComposer().reminder(booking, host, meeting_type, "1hour")
    assert [m.kind for m in messages] == ["reminder_1hour", "reminder_1hour"]
    assert messages[0].subject == "Reminder: Intro Call in 1 hour"
    assert "Sarah Johnson" in messages[0].body
    assert "Alex Rivera" in messages[1].body


def test_mock_service_records_and_clears(booking, host, meeting_type):
    mailer = EmailServiceMock()
    mailer.send_cancelled(booking, host, meeting_type, "Double booked")
    sent = mailer.get_sent_emails()
    assert [m.kind for m in sent] == ["cancellation", "cancellation"]
    assert all("Reason: Double booked" in m.body for m in sent)

    mailer.clear_emails()
    assert mailer.get_sent_emails() == []


def test_resend_dispatcher_posts_each_message(booking, host, meeting_type):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": "msg"})

    dispatcher = ResendEmailDispatcher(
        api_key="re_test",
        from_email="bookings@example.com",
        transport=httpx.MockTransport(handler),
    )
    dispatcher.send_booking_confirmed(booking, host, meeting_type)

    assert len(requests) == 2
    assert requests[0].headers["Authorization"] == "Bearer re_test"
    payload = json.loads(requests[0].content)
    assert payload["from"] == "bookings@example.com"
    assert payload["to"] == ["alex@example.com"]
    assert payload["subject"] == "Meeting Confirmed: Intro Call"


def test_resend_dispatcher_raises_on_api_error(booking, host, meeting_type):
    dispatcher = ResendEmailDispatcher(
        api_key="re_test",
        from_email="bookings@example.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"})),
    )
    with pytest.raises(httpx.HTTPStatusError):
        dispatcher.send_reminder(booking, host, meeting_type, "24hours")


def test_resend_dispatcher_requires_key():
    with pytest.raises(ValueError):
        ResendEmailDispatcher(api_key="", from_email="bookings@example.com")
