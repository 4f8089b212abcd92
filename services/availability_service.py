"""Host-side configuration: weekly availability and meeting types."""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Union

from models.entities import MeetingType, WeeklyAvailabilityRule
from models.errors import HostNotFound, InvalidMeetingType, InvalidRule, MeetingTypeNotFound
from services.repositories import (
    AvailabilityRepository,
    HostRepository,
    MeetingTypeRepository,
)

logger = logging.getLogger(__name__)

RuleInput = Union[WeeklyAvailabilityRule, Dict[str, Any]]

# Fields a host may change after creation; id and host_id are fixed.
MUTABLE_MEETING_TYPE_FIELDS = {
    "name",
    "duration_minutes",
    "advance_notice_hours",
    "daily_limit",
    "active",
    "description",
    "location_type",
    "location_details",
}


class AvailabilityService:
    """Manages a host's weekly rules and meeting types."""

    def __init__(
        self,
        hosts: HostRepository,
        availability: AvailabilityRepository,
        meeting_types: MeetingTypeRepository
    ):
        self.hosts = hosts
        self.availability = availability
        self.meeting_types = meeting_types

    def _require_host(self, host_id: int) -> None:
        if self.hosts.get(host_id) is None:
            raise HostNotFound(host_id=host_id)

    def replace_weekly_rules(self, host_id: int, rules: List[RuleInput]) -> List[WeeklyAvailabilityRule]:
        """
        Replace the host's full rule set. Every rule is validated before
        anything is stored; dict input uses the dataclass field names.
        """
        self._require_host(host_id)
        parsed = []
        for rule in rules:
            if isinstance(rule, WeeklyAvailabilityRule):
                parsed.append(rule)
                continue
            try:
                parsed.append(WeeklyAvailabilityRule(**rule))
            except TypeError as e:
                raise InvalidRule(f"Malformed rule {rule!r}: {e}") from e
        self.availability.replace_rules(host_id, parsed)
        logger.info(f"Replaced weekly availability for host {host_id}: {len(parsed)} rule(s)")
        return parsed

    def list_weekly_rules(self, host_id: int) -> List[WeeklyAvailabilityRule]:
        self._require_host(host_id)
        return self.availability.list_active_rules(host_id)

    def create_meeting_type(self, host_id: int, **fields: Any) -> MeetingType:
        self._require_host(host_id)
        unknown = set(fields) - MUTABLE_MEETING_TYPE_FIELDS
        if unknown:
            raise InvalidMeetingType(f"Unknown fields: {sorted(unknown)}")
        meeting_type = MeetingType(id=None, host_id=host_id, **fields)
        return self.meeting_types.save(meeting_type)

    def _owned(self, host_id: int, meeting_type_id: int) -> MeetingType:
        meeting_type = self.meeting_types.get(meeting_type_id)
        if meeting_type is None or meeting_type.host_id != host_id:
            raise MeetingTypeNotFound(meeting_type_id=meeting_type_id)
        return meeting_type

    def update_meeting_type(self, host_id: int, meeting_type_id: int, **changes: Any) -> MeetingType:
        unknown = set(changes) - MUTABLE_MEETING_TYPE_FIELDS
        if unknown:
            raise InvalidMeetingType(f"Fields cannot be changed: {sorted(unknown)}")
        meeting_type = self._owned(host_id, meeting_type_id)
        return self.meeting_types.save(replace(meeting_type, **changes))

    def deactivate_meeting_type(self, host_id: int, meeting_type_id: int) -> MeetingType:
        return self.update_meeting_type(host_id, meeting_type_id, active=False)

    def delete_meeting_type(self, host_id: int, meeting_type_id: int) -> None:
        """Delete the meeting type together with all of its bookings."""
        self._owned(host_id, meeting_type_id)
        self.meeting_types.delete(meeting_type_id)

    def list_meeting_types(self, host_id: int, active_only: bool = False) -> List[MeetingType]:
        self._require_host(host_id)
        types = self.meeting_types.list_for_host(host_id)
        if active_only:
            types = [mt for mt in types if mt.active]
        return sorted(types, key=lambda mt: mt.id)

    def get_meeting_type(self, host_id: int, meeting_type_id: int) -> Optional[MeetingType]:
        try:
            return self._owned(host_id, meeting_type_id)
        except MeetingTypeNotFound:
            return None
