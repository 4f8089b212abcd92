"""Google Calendar REST client: busy-time feed and booking events."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx

from models.entities import Booking, BusyInterval, Host, MeetingType
from services.repositories import BusyTimeProvider, ExternalCalendarEventManager
from services.timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class CalendarApiError(Exception):
    """Raised when an event cannot be created or deleted."""


def _parse_rfc3339(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return TimezoneService.ensure_utc(datetime.fromisoformat(value))


class GoogleCalendarClient(BusyTimeProvider, ExternalCalendarEventManager):
    """
    Client for the Google Calendar v3 API, authorised with each host's stored
    OAuth access token. Token issuance and refresh happen elsewhere.

    Hosts without a connected calendar have no busy time and get no events.
    """

    def __init__(
        self,
        base_url: str = "https://www.googleapis.com/calendar/v3",
        calendar_id: str = "primary",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.calendar_id = calendar_id
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _get_headers(host: Host) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {host.calendar_access_token}"
        }

    @staticmethod
    def _is_connected(host: Host) -> bool:
        return bool(host.calendar_connected and host.calendar_access_token)

    def get_busy_intervals(
        self,
        host: Host,
        start: datetime,
        end: datetime
    ) -> List[BusyInterval]:
        """
        Query free/busy for the host's calendar.

        Returns an empty list when the calendar is not connected or the API
        call fails.
        """
        if not self._is_connected(host):
            return []

        payload = {
            "timeMin": TimezoneService.ensure_utc(start).isoformat(),
            "timeMax": TimezoneService.ensure_utc(end).isoformat(),
            "items": [{"id": self.calendar_id}]
        }

        try:
            with self._client() as client:
                response = client.post(
                    f"{self.base_url}/freeBusy",
                    json=payload,
                    headers=self._get_headers(host)
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error fetching busy times for host {host.id}: {e}")
            return []
        except ValueError:
            logger.warning(f"Invalid JSON in free/busy response for host {host.id}")
            return []

        busy = result.get("calendars", {}).get(self.calendar_id, {}).get("busy", [])
        intervals = []
        for block in busy:
            try:
                intervals.append(BusyInterval(
                    start=_parse_rfc3339(block["start"]),
                    end=_parse_rfc3339(block["end"])
                ))
            except (KeyError, ValueError):
                logger.warning(f"Skipping malformed busy block for host {host.id}: {block}")
        return intervals

    def build_event(self, booking: Booking, host: Host, meeting_type: MeetingType) -> Dict[str, Any]:
        start = booking.scheduled_time
        end = start + timedelta(minutes=booking.duration_minutes)
        description = meeting_type.description or ""
        if booking.invitee_phone:
            description = f"{description}\nInvitee phone: {booking.invitee_phone}".strip()

        event: Dict[str, Any] = {
            "summary": f"{meeting_type.name} with {booking.invitee_name}",
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": host.timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": host.timezone},
            "attendees": [
                {"email": booking.invitee_email, "displayName": booking.invitee_name}
            ],
        }
        if meeting_type.location_type == "video":
            event["conferenceData"] = {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"}
                }
            }
        elif meeting_type.location_details:
            event["location"] = meeting_type.location_details
        return event

    def create(self, booking: Booking, host: Host, meeting_type: MeetingType) -> Optional[str]:
        if not self._is_connected(host):
            return None

        event = self.build_event(booking, host, meeting_type)
        params = {"conferenceDataVersion": 1} if "conferenceData" in event else None
        try:
            with self._client() as client:
                response = client.post(
                    f"{self.base_url}/calendars/{self.calendar_id}/events",
                    json=event,
                    params=params,
                    headers=self._get_headers(host)
                )
                response.raise_for_status()
                return response.json().get("id")
        except (httpx.HTTPError, ValueError) as e:
            raise CalendarApiError(f"Failed to create calendar event: {e}") from e

    def delete(self, host: Host, event_ref: str) -> None:
        if not self._is_connected(host):
            return
        try:
            with self._client() as client:
                response = client.delete(
                    f"{self.base_url}/calendars/{self.calendar_id}/events/{event_ref}",
                    headers=self._get_headers(host)
                )
                if response.status_code == 410:
                    # already gone
                    return
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise CalendarApiError(f"Failed to delete calendar event {event_ref}: {e}") from e
