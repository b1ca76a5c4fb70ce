"""Async HTTP client wrapper for the Zoom REST API.

Covers what scheduling needs: create a scheduled meeting, delete it again
(compensating action when the calendar write fails), fetch the user profile,
and exchange server-to-server OAuth credentials for an access token.

Meeting creation is not idempotent, so it is only retried when the
connection could not be established at all (the request never left the
client). Reads and deletes also retry on timeouts. Everything else is
translated into a ProviderError.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.mailient.core.errors import ProviderError

logger = structlog.get_logger(__name__)

PROVIDER_NAME = "zoom"

ZOOM_API_BASE = "https://api.zoom.us/v2"
ZOOM_OAUTH_URL = "https://zoom.us/oauth/token"

# Scheduled meeting (as opposed to instant or recurring)
SCHEDULED_MEETING_TYPE = 2

_zoom_retry_connect = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(httpx.ConnectError),
    reraise=True,
)

_zoom_retry_safe = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    reraise=True,
)


class ZoomMeeting(BaseModel):
    """A created Zoom meeting."""

    meeting_id: str
    join_url: str
    start_url: str | None = None
    passcode: str | None = None
    topic: str = ""
    duration_minutes: int = 0
    raw: dict[str, Any] = Field(default_factory=dict)


def _error_detail(response: httpx.Response) -> str:
    """Zoom returns {"code": ..., "message": ...}; fall back to raw text."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"Zoom API error: {response.status_code}"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"Zoom API error: {response.status_code}"


async def _call(operation: str, send: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
    try:
        return await send()
    except httpx.HTTPStatusError as exc:
        detail = _error_detail(exc.response)
        logger.warning(
            "zoom.api_error",
            operation=operation,
            status_code=exc.response.status_code,
            detail=detail,
        )
        raise ProviderError(PROVIDER_NAME, detail, exc.response.status_code) from exc
    except httpx.HTTPError as exc:
        logger.warning("zoom.transport_error", operation=operation, error=str(exc))
        raise ProviderError(PROVIDER_NAME, f"Zoom API unreachable: {exc}") from exc


def _json_body(operation: str, response: httpx.Response) -> dict[str, Any]:
    """Decoded JSON object of a successful response.

    Raises:
        ProviderError: The body is not JSON or not a JSON object.
    """
    try:
        data = response.json()
    except ValueError as exc:
        logger.warning("zoom.malformed_response", operation=operation, reason="not_json")
        raise ProviderError(
            PROVIDER_NAME, "Unexpected Zoom response: body is not JSON", response.status_code
        ) from exc
    if not isinstance(data, dict):
        logger.warning(
            "zoom.malformed_response", operation=operation, reason=type(data).__name__
        )
        raise ProviderError(
            PROVIDER_NAME, "Unexpected Zoom response: expected a JSON object", response.status_code
        )
    return data


class ZoomClient:
    """Async client for the Zoom REST API.

    Args:
        access_token: OAuth access token (user or server-to-server).
        base_url: API base URL, overridable for tests.
    """

    # Timeouts per operation type
    TIMEOUT_MUTATE = 30.0
    TIMEOUT_READ = 10.0

    def __init__(self, access_token: str, base_url: str = ZOOM_API_BASE) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    def _client(self, timeout: float) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(headers=self._headers, timeout=timeout)

    @classmethod
    async def from_account_credentials(
        cls,
        account_id: str,
        client_id: str,
        client_secret: str,
    ) -> ZoomClient:
        """Build a client from a server-to-server OAuth app.

        POST /oauth/token?grant_type=account_credentials with HTTP basic auth.
        """

        @_zoom_retry_safe
        async def _fetch() -> httpx.Response:
            async with httpx.AsyncClient(timeout=cls.TIMEOUT_READ) as client:
                response = await client.post(
                    ZOOM_OAUTH_URL,
                    params={"grant_type": "account_credentials", "account_id": account_id},
                    auth=(client_id, client_secret),
                )
                response.raise_for_status()
                return response

        response = await _call("fetch_token", _fetch)
        token = _json_body("fetch_token", response).get("access_token")
        if not token:
            raise ProviderError(PROVIDER_NAME, "Token response did not include an access_token")
        logger.info("zoom.token_fetched", account_id=account_id)
        return cls(token)

    async def create_meeting(
        self,
        topic: str,
        agenda: str,
        start_time: datetime,
        duration: timedelta,
        timezone_name: str = "UTC",
    ) -> ZoomMeeting:
        """Create a scheduled meeting for the authenticated user.

        POST /users/me/meetings. The duration is rounded up to whole minutes.

        Returns:
            ZoomMeeting with id, join URL and passcode.
        """
        duration_minutes = max(1, math.ceil(duration.total_seconds() / 60))
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=timezone.utc)
        payload = {
            "topic": topic or "Meeting",
            "type": SCHEDULED_MEETING_TYPE,
            "start_time": start_time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": duration_minutes,
            "timezone": timezone_name,
            "agenda": agenda or "",
            "settings": {
                "host_video": True,
                "participant_video": True,
                "join_before_host": False,
                "mute_upon_entry": False,
                "waiting_room": False,
                "audio": "both",
                "auto_recording": "none",
            },
        }

        @_zoom_retry_connect
        async def _post() -> httpx.Response:
            async with self._client(self.TIMEOUT_MUTATE) as client:
                response = await client.post(f"{self._base_url}/users/me/meetings", json=payload)
                response.raise_for_status()
                return response

        response = await _call("create_meeting", _post)
        data = _json_body("create_meeting", response)
        if not data.get("id") or not data.get("join_url"):
            raise ProviderError(
                PROVIDER_NAME,
                "Unexpected Zoom response: meeting id or join_url missing",
                response.status_code,
            )
        meeting = ZoomMeeting(
            meeting_id=str(data["id"]),
            join_url=str(data["join_url"]),
            start_url=data.get("start_url"),
            passcode=data.get("password") or None,
            topic=data.get("topic", topic),
            duration_minutes=data.get("duration", duration_minutes),
            raw=data,
        )
        logger.info(
            "zoom.meeting_created",
            meeting_id=meeting.meeting_id,
            duration_minutes=meeting.duration_minutes,
        )
        return meeting

    async def delete_meeting(self, meeting_id: str) -> None:
        """Delete a meeting. DELETE /meetings/{meeting_id}."""

        @_zoom_retry_safe
        async def _delete() -> httpx.Response:
            async with self._client(self.TIMEOUT_MUTATE) as client:
                response = await client.delete(f"{self._base_url}/meetings/{meeting_id}")
                response.raise_for_status()
                return response

        await _call("delete_meeting", _delete)
        logger.info("zoom.meeting_deleted", meeting_id=meeting_id)

    async def get_user_profile(self) -> dict:
        """Get the authenticated user's profile. GET /users/me."""

        @_zoom_retry_safe
        async def _get() -> httpx.Response:
            async with self._client(self.TIMEOUT_READ) as client:
                response = await client.get(f"{self._base_url}/users/me")
                response.raise_for_status()
                return response

        response = await _call("get_user_profile", _get)
        return _json_body("get_user_profile", response)
