"""Pydantic schemas for LLM API endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from src.mailient.services.llm import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE


class LLMMessage(BaseModel):
    """A single message in a conversation."""

    role: Literal["system", "user", "assistant"] = Field(
        ..., description="Message role"
    )
    content: str = Field(..., description="Message content")


class LLMCompletionRequest(BaseModel):
    """Request schema for LLM completion."""

    messages: list[LLMMessage] = Field(
        ..., min_length=1, description="Conversation messages"
    )
    max_tokens: int = Field(
        default=DEFAULT_MAX_TOKENS, ge=1, le=16384, description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=DEFAULT_TEMPERATURE, ge=0, le=2, description="Sampling temperature"
    )


class LLMCompletionResponse(BaseModel):
    """Response schema for LLM completion."""

    content: str = Field(..., description="Generated content")
    model: str = Field(..., description="Model that generated the response")
