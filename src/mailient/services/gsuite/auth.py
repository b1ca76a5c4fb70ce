"""Google OAuth manager for caller-supplied user tokens.

The product signs users in elsewhere; this service only receives the user's
access/refresh token pair and turns it into Calendar API clients. Nothing
token-specific is kept on the manager: every call builds a fresh client, and
the per-request GoogleCalendarService holds on to it for its own lifetime.
"""

from __future__ import annotations

from typing import Any

import structlog
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

logger = structlog.get_logger(__name__)

# Calendar API scopes: create events and read free/busy
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/calendar.readonly",
]


class GoogleOAuthManager:
    """Builds user credentials and Calendar API v3 service instances.

    Args:
        client_id: OAuth client id, needed to refresh expired access tokens.
        client_secret: OAuth client secret.
        token_uri: Google token endpoint.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_uri: str = "https://oauth2.googleapis.com/token",
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_uri = token_uri

    def build_credentials(
        self,
        access_token: str,
        refresh_token: str | None = None,
    ) -> Credentials:
        """Create OAuth2 user credentials from a token pair.

        Without a refresh token the credentials stop working once the access
        token expires; the Calendar API then answers 401, which surfaces as a
        ProviderError.
        """
        return Credentials(
            token=access_token,
            refresh_token=refresh_token or None,
            token_uri=self._token_uri,
            client_id=self._client_id or None,
            client_secret=self._client_secret or None,
            scopes=CALENDAR_SCOPES,
        )

    def get_calendar_service(
        self,
        access_token: str,
        refresh_token: str | None = None,
    ) -> Any:
        """Build a Calendar API v3 service for the token pair.

        Returns:
            Calendar API Resource object.
        """
        logger.debug("building_calendar_service", has_refresh_token=bool(refresh_token))
        credentials = self.build_credentials(access_token, refresh_token)
        return build("calendar", "v3", credentials=credentials, cache_discovery=False)
