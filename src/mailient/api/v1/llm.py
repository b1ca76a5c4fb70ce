"""LLM completion API endpoint.

Exposes the raw model chain: candidates are tried in configured order and
the first success is returned. 502 when every candidate failed.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from src.mailient.schemas.llm import LLMCompletionRequest, LLMCompletionResponse
from src.mailient.services.llm import (
    AllModelsFailedError,
    CompletionFailure,
    CompletionOptions,
    CompletionService,
    get_completion_service,
)

router = APIRouter(prefix="/api/v1/llm", tags=["llm"])


@router.post("/completion", response_model=LLMCompletionResponse)
async def completion(
    body: LLMCompletionRequest,
    llm: CompletionService = Depends(get_completion_service),
):
    """Execute a completion through the fallback chain."""
    messages = [{"role": m.role, "content": m.content} for m in body.messages]

    outcome = await llm.run_chain(
        messages,
        CompletionOptions(temperature=body.temperature, max_tokens=body.max_tokens),
    )
    if isinstance(outcome, CompletionFailure):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(AllModelsFailedError(outcome.last_error, outcome.attempts)),
        )

    return LLMCompletionResponse(content=outcome.text, model=outcome.model)
