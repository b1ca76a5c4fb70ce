"""Tests for MeetingOrchestrator.

Both gateways are mocked. Validates the Google Meet and Zoom paths, the
unified MeetingResult, input validation without remote calls and the Zoom
compensating delete.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.mailient.core.errors import ProviderError, ValidationError
from src.mailient.meetings.orchestrator import MeetingOrchestrator
from src.mailient.meetings.schemas import MeetingProvider, MeetingRequest
from src.mailient.services.gsuite.models import CreatedEvent
from src.mailient.services.zoom import ZoomMeeting

START = datetime(2026, 3, 3, 15, 0, tzinfo=timezone.utc)
END = START + timedelta(minutes=30)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def calendar():
    mock = MagicMock()
    mock.create_event = AsyncMock(
        return_value=CreatedEvent(
            id="evt_123",
            join_link="https://meet.google.com/abc-defg-hij",
            html_link="https://calendar.google.com/event?eid=evt_123",
            raw={"id": "evt_123", "status": "confirmed"},
        )
    )
    return mock


@pytest.fixture
def zoom():
    mock = MagicMock()
    mock.create_meeting = AsyncMock(
        return_value=ZoomMeeting(
            meeting_id="85012345678",
            join_url="https://zoom.us/j/85012345678?pwd=abc",
            passcode="abc123",
        )
    )
    mock.delete_meeting = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def orchestrator(calendar, zoom):
    return MeetingOrchestrator(calendar=calendar, zoom=zoom)


def _request(**overrides) -> MeetingRequest:
    values = {
        "title": "Q3 Planning",
        "description": "Plan the quarter",
        "start": START,
        "end": END,
        "attendees": ("sam@example.com",),
    }
    values.update(overrides)
    return MeetingRequest(**values)


# ── Google Meet Path ─────────────────────────────────────────────────────────


class TestGooglePath:
    @pytest.mark.asyncio
    async def test_creates_event_with_conference_request(self, orchestrator, calendar, zoom):
        result = await orchestrator.schedule_meeting(_request(provider=MeetingProvider.GOOGLE))

        assert result.provider == MeetingProvider.GOOGLE
        assert result.join_link == "https://meet.google.com/abc-defg-hij"
        assert result.meeting_id == "evt_123"
        assert result.calendar_event_id == "evt_123"
        assert result.access_code is None

        body = calendar.create_event.call_args.args[0]
        assert calendar.create_event.call_args.kwargs["with_conference"] is True
        create_request = body["conferenceData"]["createRequest"]
        assert create_request["conferenceSolutionKey"] == {"type": "hangoutsMeet"}
        assert create_request["requestId"].startswith("meet-")
        assert body["attendees"] == [{"email": "sam@example.com"}]
        assert body["start"] == {"dateTime": START.isoformat(), "timeZone": "UTC"}
        zoom.create_meeting.assert_not_called()

    @pytest.mark.asyncio
    async def test_request_ids_are_unique(self, orchestrator, calendar):
        await orchestrator.schedule_meeting(_request())
        await orchestrator.schedule_meeting(_request())

        ids = [
            c.args[0]["conferenceData"]["createRequest"]["requestId"]
            for c in calendar.create_event.call_args_list
        ]
        assert len(set(ids)) == 2

    @pytest.mark.asyncio
    async def test_join_link_falls_back_to_event_page(self, orchestrator, calendar):
        calendar.create_event.return_value = CreatedEvent(
            id="evt_9", join_link=None, html_link="https://calendar.google.com/event?eid=evt_9"
        )

        result = await orchestrator.schedule_meeting(_request())

        assert result.join_link == "https://calendar.google.com/event?eid=evt_9"

    @pytest.mark.asyncio
    async def test_default_provider_is_used(self, calendar, zoom):
        orchestrator = MeetingOrchestrator(
            calendar=calendar, zoom=zoom, default_provider=MeetingProvider.ZOOM
        )
        calendar.create_event.return_value = CreatedEvent(id="evt_z")

        result = await orchestrator.schedule_meeting(_request())

        assert result.provider == MeetingProvider.ZOOM
        zoom.create_meeting.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, orchestrator, calendar):
        calendar.create_event.side_effect = ProviderError("google", "Forbidden", 403)

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.schedule_meeting(_request())

        assert exc_info.value.status_code == 403


# ── Zoom Path ────────────────────────────────────────────────────────────────


class TestZoomPath:
    @pytest.mark.asyncio
    async def test_creates_meeting_then_plain_event(self, orchestrator, calendar, zoom):
        calendar.create_event.return_value = CreatedEvent(
            id="evt_456", html_link="https://calendar.google.com/event?eid=evt_456"
        )

        result = await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert result.provider == MeetingProvider.ZOOM
        assert result.meeting_id == "85012345678"
        assert result.calendar_event_id == "evt_456"
        assert result.join_link == "https://zoom.us/j/85012345678?pwd=abc"
        assert result.access_code == "abc123"
        assert result.html_link == "https://calendar.google.com/event?eid=evt_456"

        zoom_kwargs = zoom.create_meeting.call_args.kwargs
        assert zoom_kwargs["topic"] == "Q3 Planning"
        assert zoom_kwargs["duration"] == timedelta(minutes=30)

        body = calendar.create_event.call_args.args[0]
        assert calendar.create_event.call_args.kwargs["with_conference"] is False
        assert "conferenceData" not in body
        assert body["location"] == result.join_link
        assert body["description"] == (
            "Plan the quarter\n\n"
            "Join Zoom Meeting: https://zoom.us/j/85012345678?pwd=abc\n"
            "Meeting ID: 85012345678\n"
            "Password: abc123"
        )
        assert body["attendees"] == [{"email": "sam@example.com"}]

    @pytest.mark.asyncio
    async def test_missing_passcode_is_na(self, orchestrator, calendar, zoom):
        zoom.create_meeting.return_value = ZoomMeeting(
            meeting_id="1", join_url="https://zoom.us/j/1"
        )
        calendar.create_event.return_value = CreatedEvent(id="evt_1")

        result = await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert result.access_code is None
        assert calendar.create_event.call_args.args[0]["description"].endswith("Password: N/A")

    @pytest.mark.asyncio
    async def test_zoom_failure_skips_calendar(self, orchestrator, calendar, zoom):
        zoom.create_meeting.side_effect = ProviderError("zoom", "Invalid token", 401)

        with pytest.raises(ProviderError):
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        calendar.create_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_calendar_failure_rolls_back_zoom_meeting(self, orchestrator, calendar, zoom):
        calendar.create_event.side_effect = ProviderError("google", "Backend error", 500)

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert exc_info.value.provider == "google"
        zoom.delete_meeting.assert_awaited_once_with("85012345678")

    @pytest.mark.asyncio
    async def test_failed_rollback_still_raises_calendar_error(
        self, orchestrator, calendar, zoom
    ):
        calendar.create_event.side_effect = ProviderError("google", "Backend error", 500)
        zoom.delete_meeting.side_effect = ProviderError("zoom", "Not found", 404)

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert exc_info.value.provider == "google"

    @pytest.mark.asyncio
    async def test_rollback_can_be_disabled(self, calendar, zoom):
        orchestrator = MeetingOrchestrator(
            calendar=calendar, zoom=zoom, rollback_zoom_on_failure=False
        )
        calendar.create_event.side_effect = ProviderError("google", "Backend error", 500)

        with pytest.raises(ProviderError):
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        zoom.delete_meeting.assert_not_called()

    @pytest.mark.asyncio
    async def test_zoom_not_connected(self, calendar):
        orchestrator = MeetingOrchestrator(calendar=calendar, zoom=None)

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert exc_info.value.provider == "zoom"
        calendar.create_event.assert_not_called()


# ── Deferred Zoom Connection ─────────────────────────────────────────────────


class TestZoomFactory:
    """The Zoom gateway is only connected once a Zoom meeting is actually due."""

    @pytest.mark.asyncio
    async def test_google_path_never_connects(self, calendar, zoom):
        factory = AsyncMock(return_value=zoom)
        orchestrator = MeetingOrchestrator(calendar=calendar, zoom_factory=factory)

        await orchestrator.schedule_meeting(_request(provider=MeetingProvider.GOOGLE))

        factory.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", [MeetingProvider.GOOGLE, MeetingProvider.ZOOM])
    async def test_invalid_request_never_connects(self, calendar, zoom, provider):
        factory = AsyncMock(return_value=zoom)
        orchestrator = MeetingOrchestrator(calendar=calendar, zoom_factory=factory)

        with pytest.raises(ValidationError):
            await orchestrator.schedule_meeting(_request(end=START, provider=provider))

        factory.assert_not_awaited()
        calendar.create_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_zoom_path_connects_once(self, calendar, zoom):
        factory = AsyncMock(return_value=zoom)
        orchestrator = MeetingOrchestrator(calendar=calendar, zoom_factory=factory)

        await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))
        await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        factory.assert_awaited_once()
        assert zoom.create_meeting.await_count == 2

    @pytest.mark.asyncio
    async def test_factory_without_zoom_is_not_connected(self, calendar):
        orchestrator = MeetingOrchestrator(
            calendar=calendar, zoom_factory=AsyncMock(return_value=None)
        )

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert exc_info.value.provider == "zoom"
        calendar.create_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_connection_failure_is_provider_error(self, calendar):
        factory = AsyncMock(side_effect=ProviderError("zoom", "invalid_client", 401))
        orchestrator = MeetingOrchestrator(calendar=calendar, zoom_factory=factory)

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.schedule_meeting(_request(provider=MeetingProvider.ZOOM))

        assert exc_info.value.status_code == 401
        calendar.create_event.assert_not_called()


# ── Validation ───────────────────────────────────────────────────────────────


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("end", [START, START - timedelta(minutes=1)])
    @pytest.mark.parametrize("provider", [MeetingProvider.GOOGLE, MeetingProvider.ZOOM])
    async def test_end_not_after_start(self, orchestrator, calendar, zoom, end, provider):
        with pytest.raises(ValidationError):
            await orchestrator.schedule_meeting(_request(end=end, provider=provider))

        calendar.create_event.assert_not_called()
        zoom.create_meeting.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "two words@example.com", ""])
    async def test_malformed_attendee(self, orchestrator, calendar, zoom, email):
        with pytest.raises(ValidationError):
            await orchestrator.schedule_meeting(_request(attendees=(email,)))

        calendar.create_event.assert_not_called()
        zoom.create_meeting.assert_not_called()

    @pytest.mark.asyncio
    async def test_naive_datetimes_are_utc(self, orchestrator, calendar):
        await orchestrator.schedule_meeting(
            _request(start=datetime(2026, 3, 3, 15, 0), end=datetime(2026, 3, 3, 15, 30))
        )

        body = calendar.create_event.call_args.args[0]
        assert body["start"]["dateTime"] == "2026-03-03T15:00:00+00:00"

    def test_request_is_immutable(self):
        request = _request()
        with pytest.raises(PydanticValidationError):
            request.title = "Changed"
