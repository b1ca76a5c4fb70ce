"""FastAPI dependency injection for caller tokens and scheduling services.

The caller authenticates users elsewhere and forwards their provider tokens:
- Authorization: Bearer <Google access token> (required for calendar routes)
- X-Google-Refresh-Token: optional, enables transparent token refresh
- X-Zoom-Access-Token: optional user-level Zoom token; without it a
  server-to-server token is fetched when Zoom account credentials are set
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from src.mailient.config import get_settings
from src.mailient.meetings.assistant import SchedulingAssistant
from src.mailient.meetings.orchestrator import MeetingOrchestrator, ZoomClientFactory
from src.mailient.meetings.schemas import MeetingProvider
from src.mailient.services.gsuite import GoogleCalendarService, GoogleOAuthManager
from src.mailient.services.llm import CompletionService, get_completion_service
from src.mailient.services.zoom import ZoomClient


@dataclass(frozen=True)
class GoogleTokens:
    access_token: str
    refresh_token: str | None = None


async def get_google_tokens(
    authorization: str | None = Header(default=None),
    x_google_refresh_token: str | None = Header(default=None),
) -> GoogleTokens:
    """Extract the caller's Google token pair.

    Raises:
        HTTPException(401): If no Bearer access token is provided.
    """
    if not authorization or not authorization.startswith("Bearer ") or not authorization[7:].strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google access token required (Authorization: Bearer <token>)",
        )
    return GoogleTokens(
        access_token=authorization[7:].strip(),
        refresh_token=x_google_refresh_token or None,
    )


@lru_cache
def get_oauth_manager() -> GoogleOAuthManager:
    """Process-wide OAuth manager (shared OAuth client configuration)."""
    settings = get_settings()
    return GoogleOAuthManager(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        token_uri=settings.GOOGLE_TOKEN_URI,
    )


async def get_calendar_service(
    tokens: GoogleTokens = Depends(get_google_tokens),
) -> GoogleCalendarService:
    """Calendar gateway bound to the caller's tokens."""
    return GoogleCalendarService(
        auth_manager=get_oauth_manager(),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


async def get_zoom_client_factory(
    x_zoom_access_token: str | None = Header(default=None),
) -> ZoomClientFactory:
    """Deferred Zoom connection for the orchestrator.

    Nothing is contacted here. The returned callable is awaited only on the
    Zoom path, so Google requests and invalid input never trigger the
    server-to-server token exchange. It yields None when Zoom is not connected.
    """

    async def _connect() -> ZoomClient | None:
        if x_zoom_access_token:
            return ZoomClient(x_zoom_access_token)

        settings = get_settings()
        if not settings.zoom_account_configured():
            return None

        return await ZoomClient.from_account_credentials(
            account_id=settings.ZOOM_ACCOUNT_ID,
            client_id=settings.ZOOM_CLIENT_ID,
            client_secret=settings.ZOOM_CLIENT_SECRET,
        )

    return _connect


async def get_meeting_orchestrator(
    calendar: GoogleCalendarService = Depends(get_calendar_service),
    zoom_factory: ZoomClientFactory = Depends(get_zoom_client_factory),
) -> MeetingOrchestrator:
    """Orchestrator configured from settings."""
    settings = get_settings()
    return MeetingOrchestrator(
        calendar=calendar,
        zoom_factory=zoom_factory,
        default_provider=MeetingProvider(settings.DEFAULT_MEETING_PROVIDER.lower()),
        timezone_name=settings.MEETING_TIMEZONE,
        rollback_zoom_on_failure=settings.ZOOM_ROLLBACK_ON_CALENDAR_FAILURE,
    )


async def get_scheduling_assistant(
    llm: CompletionService = Depends(get_completion_service),
) -> SchedulingAssistant:
    return SchedulingAssistant(llm)
