"""Pydantic schemas for Google Calendar gateway results."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CreatedEvent(BaseModel):
    """Result from inserting a calendar event."""

    id: str
    join_link: str | None = None
    html_link: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class BusyInterval(BaseModel):
    """A busy slot from a free/busy query."""

    start: datetime
    end: datetime


class CalendarEventSummary(BaseModel):
    """Condensed view of an upcoming calendar event."""

    id: str
    summary: str = ""
    description: str | None = None
    start: str
    end: str
    join_link: str | None = None
    html_link: str | None = None
