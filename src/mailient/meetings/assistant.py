"""AI scheduling assistant: meeting suggestions and invitation drafts.

Both operations always return a usable value. When the model chain is
exhausted, or its answer cannot be used, they fall back to deterministic
content built only from their inputs, so the scheduling flow never blocks
on AI availability.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError as PydanticValidationError

from src.mailient.meetings.prompts import (
    NOTIFICATION_INSTRUCTION,
    RECOMMEND_INSTRUCTION,
    build_notification_context,
    build_recommend_content,
    render_notification_fallback,
)
from src.mailient.meetings.schemas import (
    DEFAULT_RECOMMENDATION,
    MeetingRecommendation,
    NotificationParams,
)
from src.mailient.services.llm import CompletionService

logger = structlog.get_logger(__name__)


class SchedulingAssistant:
    """Scheduling helpers layered on the resilient completion service.

    Args:
        completion_service: CompletionService walking the model chain.
    """

    def __init__(self, completion_service: CompletionService) -> None:
        self._llm = completion_service

    async def recommend_meeting_details(self, email_text: str) -> MeetingRecommendation:
        """Suggest title, objective and duration for a follow-up call."""
        default = DEFAULT_RECOMMENDATION.model_dump()
        data = await self._llm.extract_json(
            RECOMMEND_INSTRUCTION,
            build_recommend_content(email_text),
            default=default,
        )

        try:
            recommendation = MeetingRecommendation.model_validate(data)
        except PydanticValidationError:
            logger.warning("assistant.recommendation_invalid_shape", payload_type=type(data).__name__)
            return DEFAULT_RECOMMENDATION.model_copy()

        logger.info(
            "assistant.recommendation_ready",
            suggested_duration=recommendation.suggested_duration,
        )
        return recommendation

    async def generate_notification(self, params: NotificationParams) -> str:
        """Draft a short invitation email body for an attendee."""
        return await self._llm.draft_text(
            NOTIFICATION_INSTRUCTION.format(sender_name=params.sender_name),
            build_notification_context(params),
            fallback=render_notification_fallback(params),
        )
