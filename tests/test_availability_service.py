"""Tests for host-side availability and meeting type management."""

import pytest

from models.entities import MONDAY, TUESDAY, WeeklyAvailabilityRule
from models.errors import (
    HostNotFound,
    InvalidMeetingType,
    InvalidRule,
    InvalidTimeFormat,
    MeetingTypeNotFound,
)
from services.availability_service import AvailabilityService
from tests.conftest import MONDAY_DATE, eastern, local_day_range


@pytest.fixture
def service(store):
    return AvailabilityService(store.hosts, store.availability, store.meeting_types)


def test_replace_weekly_rules_accepts_dicts(service):
    rules = service.replace_weekly_rules(1, [
        {"day_of_week": TUESDAY, "start_time": "08:00", "end_time": "12:00"},
        WeeklyAvailabilityRule(day_of_week=MONDAY, start_time="13:00", end_time="15:00"),
    ])
    assert len(rules) == 2
    assert {(r.day_of_week, r.start_time) for r in service.list_weekly_rules(1)} == {
        (TUESDAY, "08:00"), (MONDAY, "13:00")
    }


@pytest.mark.parametrize("bad_rule,error", [
    ({"day_of_week": 9, "start_time": "08:00", "end_time": "12:00"}, InvalidRule),
    ({"day_of_week": MONDAY, "start_time": "12:00", "end_time": "08:00"}, InvalidRule),
    ({"day_of_week": MONDAY, "start_time": "8:00", "end_time": "12:00"}, InvalidTimeFormat),
    ({"day": MONDAY, "start_time": "08:00", "end_time": "12:00"}, InvalidRule),
])
def test_invalid_rule_leaves_previous_rules(service, bad_rule, error):
    with pytest.raises(error):
        service.replace_weekly_rules(1, [
            {"day_of_week": TUESDAY, "start_time": "08:00", "end_time": "12:00"},
            bad_rule,
        ])
    assert [(r.day_of_week, r.start_time, r.end_time) for r in service.list_weekly_rules(1)] == [
        (MONDAY, "09:00", "17:00")
    ]


def test_list_weekly_rules_hides_inactive(service):
    service.replace_weekly_rules(1, [
        {"day_of_week": MONDAY, "start_time": "09:00", "end_time": "12:00", "active": False},
    ])
    assert service.list_weekly_rules(1) == []


def test_unknown_host(service):
    with pytest.raises(HostNotFound):
        service.replace_weekly_rules(99, [])
    with pytest.raises(HostNotFound):
        service.create_meeting_type(99, name="Call", duration_minutes=30)


def test_create_and_update_meeting_type(service):
    created = service.create_meeting_type(1, name="Consult", duration_minutes=45, daily_limit=3)
    assert created.id == 2
    assert created.host_id == 1

    updated = service.update_meeting_type(1, created.id, duration_minutes=60, name="Long Consult")
    assert (updated.duration_minutes, updated.name) == (60, "Long Consult")
    assert service.get_meeting_type(1, created.id).duration_minutes == 60


def test_meeting_type_constraints_validated(service):
    with pytest.raises(InvalidMeetingType):
        service.create_meeting_type(1, name="Tiny", duration_minutes=5)
    with pytest.raises(InvalidMeetingType):
        service.update_meeting_type(1, 1, advance_notice_hours=0)
    with pytest.raises(InvalidMeetingType):
        service.update_meeting_type(1, 1, host_id=2)
    with pytest.raises(InvalidMeetingType):
        service.create_meeting_type(1, name="Call", duration_minutes=30, colour="blue")


def test_meeting_types_are_scoped_to_host(service):
    with pytest.raises(MeetingTypeNotFound):
        service.update_meeting_type(2, 1, name="Stolen")
    assert service.get_meeting_type(2, 1) is None
    assert service.list_meeting_types(2) == []


def test_deactivated_type_is_not_bookable(service, engine):
    service.deactivate_meeting_type(1, 1)
    assert service.list_meeting_types(1, active_only=True) == []
    assert [mt.id for mt in service.list_meeting_types(1)] == [1]

    start, end = local_day_range(MONDAY_DATE)
    with pytest.raises(MeetingTypeNotFound):
        engine.generate_slots(1, 1, start, end)


def test_delete_meeting_type_removes_bookings(service, store, book):
    booking = book(eastern(MONDAY_DATE, 10))
    service.delete_meeting_type(1, 1)
    assert store.bookings.get(booking.id) is None
    with pytest.raises(MeetingTypeNotFound):
        service.delete_meeting_type(1, 1)
