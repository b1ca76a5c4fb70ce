"""Prompt templates and fallback text for the scheduling assistant."""

from __future__ import annotations

from src.mailient.meetings.schemas import NotificationParams

# Only this much of the previous email is quoted back to the model
EMAIL_CONTEXT_LIMIT = 500

RECOMMEND_INSTRUCTION = """\
Analyze this email and recommend meeting details for a follow-up call.

Respond with a JSON object of exactly this shape:
{
  "suggested_title": "1-5 words summary",
  "suggested_description": "A brief objective for the call",
  "suggested_duration": 15, 30, or 60 (minutes)
}"""

NOTIFICATION_INSTRUCTION = """\
Write a short, friendly, and professional meeting invitation email.

RULES:
- Be warm but professional
- Keep it under 100 words
- Reference the context naturally if provided
- Include the meeting link
- End with a friendly sign-off using {sender_name}

RETURN ONLY THE EMAIL BODY TEXT, NO SUBJECT LINE."""


def build_recommend_content(email_text: str) -> str:
    return f"EMAIL CONTENT:\n{email_text}"


def build_notification_context(params: NotificationParams) -> str:
    lines = [
        f"SENDER: {params.sender_name}",
        f"RECIPIENT: {params.recipient_email}",
        f"MEETING: {params.meeting_title}",
        f"TIME: {params.meeting_time}",
        f"LINK: {params.meeting_link}",
    ]
    if params.email_context:
        lines.append(
            f"CONTEXT FROM PREVIOUS EMAIL: {params.email_context[:EMAIL_CONTEXT_LIMIT]}"
        )
    return "\n".join(lines)


def render_notification_fallback(params: NotificationParams) -> str:
    """Plain invitation used when no model is available."""
    return (
        "Hi there,\n"
        "\n"
        f'I\'ve scheduled a call for us: "{params.meeting_title}"\n'
        "\n"
        f"When: {params.meeting_time}\n"
        f"Join here: {params.meeting_link}\n"
        "\n"
        "Looking forward to connecting!\n"
        "\n"
        "Best,\n"
        f"{params.sender_name}"
    )
