"""Pydantic schemas for meeting scheduling and AI scheduling assistance.

Defines the orchestrator's input (MeetingRequest) and output (MeetingResult),
the meeting recommendation returned from email analysis, and the parameters
for drafting an attendee notification.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MeetingProvider(str, enum.Enum):
    """Conferencing provider that issues the join link."""

    GOOGLE = "google"
    ZOOM = "zoom"


class MeetingRequest(BaseModel):
    """A request to schedule one meeting.

    Time-range and attendee checks are done by MeetingOrchestrator so they
    surface as the domain ValidationError rather than at construction.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    start: datetime
    end: datetime
    attendees: tuple[str, ...] = ()
    provider: MeetingProvider | None = None


class MeetingResult(BaseModel):
    """Unified result of scheduling on either provider."""

    provider: MeetingProvider
    meeting_id: str
    calendar_event_id: str
    join_link: str
    access_code: str | None = None
    html_link: str | None = None
    calendar_event: dict[str, Any] = Field(default_factory=dict)


class MeetingRecommendation(BaseModel):
    """Meeting parameters suggested from an email thread."""

    suggested_title: str
    suggested_description: str
    suggested_duration: int = Field(..., description="Duration in minutes")


DEFAULT_RECOMMENDATION = MeetingRecommendation(
    suggested_title="Follow-up Call",
    suggested_description="Discussing the recent email exchange.",
    suggested_duration=30,
)


class NotificationParams(BaseModel):
    """Inputs for drafting a meeting invitation email body."""

    sender_name: str
    recipient_email: str
    meeting_title: str
    meeting_time: str
    meeting_link: str
    email_context: str | None = None
