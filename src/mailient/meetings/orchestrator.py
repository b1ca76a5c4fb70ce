"""Meeting orchestrator: one schedule_meeting() over Google Meet and Zoom.

Flow:
1. Validate the request (no remote call is made for bad input)
2. Resolve the provider (request override, else configured default)
3. Google: one calendar insert with a Meet conference create-request
   Zoom:   create the Zoom meeting, then a plain calendar event that carries
           the join link in location and description
4. Return a MeetingResult with the same shape for both providers

The Zoom path is two sequential writes. If the calendar write fails after the
Zoom meeting exists, the meeting is deleted again unless rollback is disabled.
"""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import structlog

from src.mailient.core.errors import ProviderError, ValidationError
from src.mailient.core.monitoring import meetings_scheduled_total
from src.mailient.meetings.schemas import MeetingProvider, MeetingRequest, MeetingResult
from src.mailient.services.gsuite.calendar import GoogleCalendarService
from src.mailient.services.zoom import ZoomClient, ZoomMeeting

logger = structlog.get_logger(__name__)

ZoomClientFactory = Callable[[], Awaitable["ZoomClient | None"]]

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _new_request_id() -> str:
    """Conference create-request id, unique per scheduling call."""
    return f"meet-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def build_zoom_description(description: str, meeting: ZoomMeeting) -> str:
    """Calendar description with the Zoom join details appended."""
    return (
        f"{description}\n\n"
        f"Join Zoom Meeting: {meeting.join_url}\n"
        f"Meeting ID: {meeting.meeting_id}\n"
        f"Password: {meeting.passcode or 'N/A'}"
    )


class MeetingOrchestrator:
    """Schedules meetings on the selected conferencing provider.

    Args:
        calendar: Calendar gateway bound to the organizer's tokens.
        zoom: Zoom gateway, or None when Zoom is not connected.
        zoom_factory: Async callable producing the Zoom gateway on first use
            (e.g. a server-to-server token exchange). Only awaited on the Zoom
            path, after validation. Ignored when ``zoom`` is given.
        default_provider: Provider used when the request names none.
        timezone_name: Time zone written into event bodies.
        rollback_zoom_on_failure: Delete the Zoom meeting when the calendar
            insert that should accompany it fails.
    """

    def __init__(
        self,
        calendar: GoogleCalendarService,
        zoom: ZoomClient | None = None,
        zoom_factory: ZoomClientFactory | None = None,
        default_provider: MeetingProvider = MeetingProvider.GOOGLE,
        timezone_name: str = "UTC",
        rollback_zoom_on_failure: bool = True,
    ) -> None:
        self._calendar = calendar
        self._zoom = zoom
        self._zoom_factory = zoom_factory
        self._default_provider = MeetingProvider(default_provider)
        self._timezone = timezone_name
        self._rollback_zoom = rollback_zoom_on_failure

    async def schedule_meeting(self, request: MeetingRequest) -> MeetingResult:
        """Create the meeting and its calendar event.

        Raises:
            ValidationError: end <= start or a malformed attendee address.
            ProviderError: A gateway rejected the request or was unreachable.
        """
        start, end = self._validate(request)
        provider = request.provider or self._default_provider

        logger.info(
            "meeting.scheduling",
            provider=provider.value,
            title=request.title,
            attendee_count=len(request.attendees),
        )

        try:
            if provider == MeetingProvider.ZOOM:
                result = await self._schedule_zoom(request, start, end)
            elif provider == MeetingProvider.GOOGLE:
                result = await self._schedule_google(request, start, end)
            else:
                raise ValidationError(f"Unsupported meeting provider: {provider}")
        except ProviderError as exc:
            meetings_scheduled_total.labels(provider=provider.value, status="error").inc()
            logger.error(
                "meeting.schedule_failed",
                provider=provider.value,
                error=exc.message,
                status_code=exc.status_code,
            )
            raise

        meetings_scheduled_total.labels(provider=provider.value, status="success").inc()
        logger.info(
            "meeting.scheduled",
            provider=provider.value,
            meeting_id=result.meeting_id,
            calendar_event_id=result.calendar_event_id,
        )
        return result

    # ── Validation ──────────────────────────────────────────────────────────

    def _validate(self, request: MeetingRequest) -> tuple[datetime, datetime]:
        start = _as_utc(request.start)
        end = _as_utc(request.end)
        if end <= start:
            raise ValidationError("Meeting end time must be after its start time")

        for email in request.attendees:
            if not _EMAIL_PATTERN.match(email or ""):
                raise ValidationError(f"Invalid attendee email address: {email!r}")

        return start, end

    # ── Providers ───────────────────────────────────────────────────────────

    def _event_body(
        self,
        request: MeetingRequest,
        start: datetime,
        end: datetime,
        description: str,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "summary": request.title,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": self._timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self._timezone},
        }
        if request.attendees:
            body["attendees"] = [{"email": email} for email in request.attendees]
        return body

    async def _schedule_google(
        self,
        request: MeetingRequest,
        start: datetime,
        end: datetime,
    ) -> MeetingResult:
        body = self._event_body(request, start, end, request.description)
        body["conferenceData"] = {
            "createRequest": {
                "requestId": _new_request_id(),
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
            }
        }

        event = await self._calendar.create_event(body, with_conference=True)
        join_link = event.join_link or event.html_link
        if not join_link:
            raise ProviderError("google", "Calendar event was created without a join link")

        return MeetingResult(
            provider=MeetingProvider.GOOGLE,
            meeting_id=event.id,
            calendar_event_id=event.id,
            join_link=join_link,
            html_link=event.html_link,
            calendar_event=event.raw,
        )

    async def _zoom_client(self) -> ZoomClient:
        """The Zoom gateway, connecting through the factory on first use."""
        if self._zoom is None and self._zoom_factory is not None:
            self._zoom = await self._zoom_factory()
        if self._zoom is None:
            raise ProviderError("zoom", "Zoom is not connected for this account")
        return self._zoom

    async def _schedule_zoom(
        self,
        request: MeetingRequest,
        start: datetime,
        end: datetime,
    ) -> MeetingResult:
        zoom = await self._zoom_client()

        meeting = await zoom.create_meeting(
            topic=request.title,
            agenda=request.description,
            start_time=start,
            duration=end - start,
            timezone_name=self._timezone,
        )

        body = self._event_body(
            request, start, end, build_zoom_description(request.description, meeting)
        )
        body["location"] = meeting.join_url

        try:
            event = await self._calendar.create_event(body, with_conference=False)
        except ProviderError:
            if self._rollback_zoom:
                await self._rollback(zoom, meeting)
            else:
                logger.warning("meeting.zoom_meeting_orphaned", meeting_id=meeting.meeting_id)
            raise

        return MeetingResult(
            provider=MeetingProvider.ZOOM,
            meeting_id=meeting.meeting_id,
            calendar_event_id=event.id,
            join_link=meeting.join_url,
            access_code=meeting.passcode,
            html_link=event.html_link,
            calendar_event=event.raw,
        )

    async def _rollback(self, zoom: ZoomClient, meeting: ZoomMeeting) -> None:
        """Delete a Zoom meeting whose calendar event could not be written."""
        try:
            await zoom.delete_meeting(meeting.meeting_id)
        except ProviderError as exc:
            logger.error(
                "meeting.zoom_rollback_failed",
                meeting_id=meeting.meeting_id,
                error=exc.message,
            )
            return
        logger.info("meeting.zoom_rolled_back", meeting_id=meeting.meeting_id)
