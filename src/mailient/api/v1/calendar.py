"""REST endpoints for meeting scheduling and calendar access.

Flow exposed to the product UI:
1. POST /recommend     -- suggest title/description/duration from an email
2. POST /schedule      -- create the meeting on Google Meet or Zoom
3. POST /notification  -- draft the invitation email body

Calendar reads (/availability, /events) use the same caller tokens.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from src.mailient.api.deps import (
    get_calendar_service,
    get_meeting_orchestrator,
    get_scheduling_assistant,
)
from src.mailient.core.errors import ProviderError
from src.mailient.meetings.assistant import SchedulingAssistant
from src.mailient.meetings.orchestrator import MeetingOrchestrator
from src.mailient.meetings.schemas import (
    MeetingRecommendation,
    MeetingRequest,
    NotificationParams,
)
from src.mailient.schemas.calendar import (
    AvailabilityRequest,
    AvailabilityResponse,
    NotificationResponse,
    RecommendRequest,
    ScheduleMeetingRequest,
    ScheduleMeetingResponse,
    UpcomingEventsResponse,
)
from src.mailient.services.gsuite import GoogleCalendarService

router = APIRouter(prefix="/api/v1/calendar", tags=["calendar"])


def _display_time(start: datetime) -> str:
    suffix = start.tzname() or "UTC"
    return f"{start:%A, %B %d, %Y at %H:%M} {suffix}"


@router.post("/schedule", response_model=ScheduleMeetingResponse)
async def schedule_meeting(
    body: ScheduleMeetingRequest,
    orchestrator: MeetingOrchestrator = Depends(get_meeting_orchestrator),
    assistant: SchedulingAssistant = Depends(get_scheduling_assistant),
):
    """Schedule a meeting and optionally draft the invitation.

    Returns 502 with error "could_not_schedule" when a provider rejects the
    request. Bad time ranges or attendee addresses return 400.
    """
    request = MeetingRequest(
        title=body.summary,
        description=body.description,
        start=body.start_time,
        end=body.end_time,
        attendees=tuple(body.attendees),
        provider=body.provider,
    )

    try:
        result = await orchestrator.schedule_meeting(request)
    except ProviderError as exc:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "error": "could_not_schedule",
                "provider": exc.provider,
                "detail": exc.message,
            },
        )

    notification = None
    if body.notify_attendees and body.attendees:
        notification = await assistant.generate_notification(
            NotificationParams(
                sender_name=body.sender_name or "Me",
                recipient_email=", ".join(body.attendees),
                meeting_title=body.summary,
                meeting_time=_display_time(body.start_time),
                meeting_link=result.join_link,
                email_context=body.email_context,
            )
        )

    return ScheduleMeetingResponse(meeting=result, notification=notification)


@router.post("/recommend", response_model=MeetingRecommendation)
async def recommend_meeting(
    body: RecommendRequest,
    assistant: SchedulingAssistant = Depends(get_scheduling_assistant),
):
    """Suggest meeting details from an email. Never fails on AI errors."""
    return await assistant.recommend_meeting_details(body.email_text)


@router.post("/notification", response_model=NotificationResponse)
async def draft_notification(
    body: NotificationParams,
    assistant: SchedulingAssistant = Depends(get_scheduling_assistant),
):
    """Draft an invitation email body. Falls back to a plain template."""
    text = await assistant.generate_notification(body)
    return NotificationResponse(text=text)


@router.post("/availability", response_model=AvailabilityResponse)
async def check_availability(
    body: AvailabilityRequest,
    calendar: GoogleCalendarService = Depends(get_calendar_service),
):
    """Busy intervals on the caller's primary calendar."""
    busy = await calendar.query_free_busy(body.time_min, body.time_max)
    return AvailabilityResponse(busy=busy)


@router.get("/events", response_model=UpcomingEventsResponse)
async def list_upcoming_events(
    max_results: int = Query(default=5, ge=1, le=50),
    calendar: GoogleCalendarService = Depends(get_calendar_service),
):
    """Next events on the caller's primary calendar, soonest first."""
    events = await calendar.list_upcoming_events(max_results=max_results)
    return UpcomingEventsResponse(events=events)
