"""Pydantic schemas for calendar and scheduling API endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.mailient.meetings.schemas import MeetingProvider, MeetingResult
from src.mailient.services.gsuite.models import BusyInterval, CalendarEventSummary


class ScheduleMeetingRequest(BaseModel):
    """Request schema for scheduling a meeting."""

    summary: str = Field(..., min_length=1, description="Meeting title")
    description: str = Field(default="", description="Meeting description / agenda")
    start_time: datetime = Field(..., description="Start time (naive values are UTC)")
    end_time: datetime = Field(..., description="End time (naive values are UTC)")
    attendees: list[str] = Field(default_factory=list, description="Attendee email addresses")
    provider: MeetingProvider | None = Field(
        default=None, description="'google' or 'zoom'; server default when omitted"
    )
    notify_attendees: bool = Field(
        default=False, description="Also draft an invitation email body"
    )
    sender_name: str | None = Field(default=None, description="Sign-off name for the draft")
    email_context: str | None = Field(
        default=None, description="Previous email text to reference in the draft"
    )


class ScheduleMeetingResponse(BaseModel):
    """Response schema for a scheduled meeting."""

    meeting: MeetingResult
    notification: str | None = Field(default=None, description="Drafted invitation body")


class RecommendRequest(BaseModel):
    email_text: str = Field(..., min_length=1, description="Email thread to analyze")


class AvailabilityRequest(BaseModel):
    time_min: datetime
    time_max: datetime


class AvailabilityResponse(BaseModel):
    busy: list[BusyInterval] = Field(default_factory=list)


class UpcomingEventsResponse(BaseModel):
    events: list[CalendarEventSummary] = Field(default_factory=list)


class NotificationResponse(BaseModel):
    text: str = Field(..., description="Invitation email body")
