"""Google Workspace integration for the Calendar gateway.

Provides async-wrapped Calendar API access using the caller's OAuth
access/refresh token pair.
"""

from src.mailient.services.gsuite.auth import GoogleOAuthManager
from src.mailient.services.gsuite.calendar import GoogleCalendarService
from src.mailient.services.gsuite.models import (
    BusyInterval,
    CalendarEventSummary,
    CreatedEvent,
)

__all__ = [
    "BusyInterval",
    "CalendarEventSummary",
    "CreatedEvent",
    "GoogleCalendarService",
    "GoogleOAuthManager",
]
