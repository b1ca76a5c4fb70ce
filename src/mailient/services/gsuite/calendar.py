"""Google Calendar gateway: event creation, free/busy and upcoming events.

All Google API calls are blocking, so they are wrapped in asyncio.to_thread()
to keep the event loop free. Every API failure is translated into a
ProviderError so the orchestrator sees one error type per gateway.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from src.mailient.core.errors import ProviderError
from src.mailient.services.gsuite.auth import GoogleOAuthManager
from src.mailient.services.gsuite.models import (
    BusyInterval,
    CalendarEventSummary,
    CreatedEvent,
)

logger = structlog.get_logger(__name__)

PROVIDER_NAME = "google"


class GoogleCalendarService:
    """Calendar API v3 wrapper bound to one user's token pair.

    Args:
        auth_manager: GoogleOAuthManager that builds the API client.
        access_token: The user's OAuth access token.
        refresh_token: Optional refresh token for transparent renewal.
        calendar_id: Calendar to operate on (default: the user's primary).
    """

    def __init__(
        self,
        auth_manager: GoogleOAuthManager,
        access_token: str,
        refresh_token: str | None = None,
        calendar_id: str = "primary",
    ) -> None:
        self._auth_manager = auth_manager
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._calendar_id = calendar_id
        self._resource: Any = None

    def _service(self) -> Any:
        if self._resource is None:
            self._resource = self._auth_manager.get_calendar_service(
                self._access_token, self._refresh_token
            )
        return self._resource

    async def _execute(self, operation: str, call: Callable[[], dict]) -> dict:
        """Run a blocking API call in a worker thread, mapping failures."""
        try:
            return await asyncio.to_thread(call)
        except HttpError as exc:
            status_code = exc.resp.status if exc.resp is not None else None
            reason = getattr(exc, "reason", None) or str(exc)
            logger.warning(
                "calendar.api_error",
                operation=operation,
                status_code=status_code,
                reason=reason,
            )
            raise ProviderError(PROVIDER_NAME, reason, status_code) from exc
        except RefreshError as exc:
            logger.warning("calendar.token_refresh_failed", operation=operation)
            raise ProviderError(
                PROVIDER_NAME, f"Access token expired and could not be refreshed: {exc}", 401
            ) from exc
        except (TransportError, OSError) as exc:
            logger.warning("calendar.transport_error", operation=operation, error=str(exc))
            raise ProviderError(PROVIDER_NAME, f"Calendar API unreachable: {exc}") from exc

    async def create_event(
        self,
        body: dict[str, Any],
        with_conference: bool = False,
    ) -> CreatedEvent:
        """Insert an event into the calendar.

        Args:
            body: Calendar event resource.
            with_conference: When True, the insert is sent with
                conferenceDataVersion=1 so a conferenceData.createRequest in
                the body produces a Meet link atomically with the event.

        Returns:
            CreatedEvent with id, join link (if any) and the raw resource.
        """
        service = self._service()
        params: dict[str, Any] = {"calendarId": self._calendar_id, "body": body}
        if with_conference:
            params["conferenceDataVersion"] = 1

        def _insert() -> dict:
            return service.events().insert(**params).execute()

        logger.info(
            "calendar.creating_event",
            summary=body.get("summary"),
            with_conference=with_conference,
            attendee_count=len(body.get("attendees", [])),
        )
        data = await self._execute("create_event", _insert)

        return CreatedEvent(
            id=str(data.get("id", "")),
            join_link=self.get_join_link(data),
            html_link=data.get("htmlLink"),
            raw=data,
        )

    async def query_free_busy(
        self,
        time_min: datetime,
        time_max: datetime,
    ) -> list[BusyInterval]:
        """Return busy intervals on the calendar within the window."""
        service = self._service()
        body = {
            "timeMin": _rfc3339(time_min),
            "timeMax": _rfc3339(time_max),
            "items": [{"id": self._calendar_id}],
        }

        def _query() -> dict:
            return service.freebusy().query(body=body).execute()

        data = await self._execute("query_free_busy", _query)
        calendars = data.get("calendars", {})
        busy = calendars.get(self._calendar_id, {}).get("busy", [])

        return [BusyInterval(start=slot["start"], end=slot["end"]) for slot in busy]

    async def list_upcoming_events(
        self,
        max_results: int = 5,
        time_min: datetime | None = None,
    ) -> list[CalendarEventSummary]:
        """List the next events on the calendar, soonest first."""
        service = self._service()
        start = time_min or datetime.now(timezone.utc)

        def _list() -> dict:
            return (
                service.events()
                .list(
                    calendarId=self._calendar_id,
                    timeMin=_rfc3339(start),
                    maxResults=max_results,
                    singleEvents=True,
                    orderBy="startTime",
                )
                .execute()
            )

        data = await self._execute("list_upcoming_events", _list)

        events = []
        for item in data.get("items", []):
            item_start = item.get("start", {})
            item_end = item.get("end", {})
            events.append(
                CalendarEventSummary(
                    id=str(item.get("id", "")),
                    summary=item.get("summary", ""),
                    description=item.get("description"),
                    start=item_start.get("dateTime") or item_start.get("date", ""),
                    end=item_end.get("dateTime") or item_end.get("date", ""),
                    join_link=self.get_join_link(item),
                    html_link=item.get("htmlLink"),
                )
            )
        return events

    @staticmethod
    def get_meet_url(event: dict) -> str | None:
        """Extract the Google Meet URL from conferenceData entry points."""
        conference = event.get("conferenceData", {})
        entry_points = conference.get("entryPoints", [])
        for ep in entry_points:
            if ep.get("entryPointType") == "video":
                return ep.get("uri")
        return None

    @staticmethod
    def get_join_link(event: dict) -> str | None:
        """Meet video entry point, falling back to the legacy hangoutLink."""
        return GoogleCalendarService.get_meet_url(event) or event.get("hangoutLink")


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
