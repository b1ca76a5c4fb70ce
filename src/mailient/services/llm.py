"""Resilient completion service over an ordered chain of hosted models.

Provides:
- CompletionService.complete(): tries each ModelCandidate in declared order,
  one attempt per candidate, first success wins
- CompletionService.run_chain(): the same walk, returned as a
  CompletionOutcome (success XOR failure) instead of raising
- extract_json() / draft_text(): derived operations that never fail to the
  caller and substitute a deterministic default instead

Fallback is the backoff strategy: there is no retry of the same candidate
and no sleeping between candidates. A 429 from a candidate is a soft
failure and only becomes the terminal error when it came from the last
candidate in the chain.
"""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Union

import httpx
import structlog

from src.mailient.config import get_settings
from src.mailient.core.monitoring import track_llm_attempt

logger = structlog.get_logger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1000

_CODE_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_CODE_FENCE = re.compile(r"```\s*")


# ── Errors ───────────────────────────────────────────────────────────────────


class ModelRequestError(Exception):
    """A candidate answered with a non-success HTTP status."""

    def __init__(self, model: str, status_code: int, detail: str) -> None:
        self.model = model
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Model '{model}' failed with HTTP {status_code}: {detail}")


class ModelRateLimitedError(ModelRequestError):
    """A candidate answered 429."""


class AllModelsFailedError(Exception):
    """Every candidate in the chain failed.

    Attributes:
        last_error: The error recorded last (rate limits are skipped unless
            they came from the final candidate). None only for an empty chain.
        attempts: Model ids in the order they were tried.
    """

    def __init__(self, last_error: Exception | None, attempts: Sequence[str] = ()) -> None:
        self.last_error = last_error
        self.attempts = tuple(attempts)
        if last_error is None:
            message = "All AI models failed"
        else:
            message = f"All AI models failed; last error: {last_error}"
        super().__init__(message)


# ── Value Types ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ModelCandidate:
    """A hosted model id and its rank in the preference list."""

    model_id: str
    position: int


@dataclass(frozen=True)
class CompletionOptions:
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS


@dataclass(frozen=True)
class CompletionSuccess:
    text: str
    model: str


@dataclass(frozen=True)
class CompletionFailure:
    last_error: Exception | None
    attempts: tuple[str, ...] = field(default_factory=tuple)


CompletionOutcome = Union[CompletionSuccess, CompletionFailure]


def build_candidates(model_ids: Sequence[str]) -> tuple[ModelCandidate, ...]:
    """Turn configured model ids into an immutable ranked chain."""
    return tuple(
        ModelCandidate(model_id=model_id, position=index)
        for index, model_id in enumerate(model_ids)
    )


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers models like to wrap JSON in."""
    return _CODE_FENCE.sub("", _CODE_FENCE_OPEN.sub("", text)).strip()


def _extract_content(data: Any) -> str:
    """choices[0].message.content, or "" when any level is missing."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


# ── Completion Service ───────────────────────────────────────────────────────


class CompletionService:
    """Walks a ranked model chain against an OpenAI-compatible endpoint.

    Args:
        api_key: Bearer token for the endpoint.
        candidates: Ranked, immutable chain (see build_candidates()).
        base_url: Endpoint base; requests go to {base_url}/chat/completions.
        timeout: Per-attempt HTTP timeout in seconds.
        referer: Sent as HTTP-Referer for provider attribution.
        title: Sent as X-Title for provider attribution.
    """

    def __init__(
        self,
        api_key: str,
        candidates: Sequence[ModelCandidate],
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 30.0,
        referer: str = "",
        title: str = "",
    ) -> None:
        self._candidates = tuple(candidates)
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._timeout = timeout
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        if referer:
            self._headers["HTTP-Referer"] = referer
        if title:
            self._headers["X-Title"] = title

        if not api_key:
            logger.warning("llm.no_api_key_configured")

    @property
    def candidates(self) -> tuple[ModelCandidate, ...]:
        return self._candidates

    async def run_chain(
        self,
        messages: list[dict],
        options: CompletionOptions | None = None,
    ) -> CompletionOutcome:
        """Try each candidate once, in order, until one returns text."""
        opts = options or CompletionOptions()
        last_error: Exception | None = None
        attempts: list[str] = []
        final_position = len(self._candidates) - 1

        async with httpx.AsyncClient(headers=self._headers, timeout=self._timeout) as client:
            for index, candidate in enumerate(self._candidates):
                model = candidate.model_id
                attempts.append(model)
                logger.info("llm.candidate_attempt", model=model, position=candidate.position)

                try:
                    async with track_llm_attempt(model) as tracker:
                        response = await client.post(
                            self._url,
                            json={
                                "model": model,
                                "messages": messages,
                                "temperature": opts.temperature,
                                "max_tokens": opts.max_tokens,
                            },
                        )

                        if response.status_code == 429:
                            tracker["status"] = "rate_limited"
                        elif not response.is_success:
                            tracker["status"] = "error"
                        else:
                            text = _extract_content(response.json())
                except (httpx.HTTPError, ValueError) as exc:
                    # Transport failure or undecodable body
                    logger.warning(
                        "llm.candidate_exception",
                        model=model,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    last_error = exc
                    continue

                if tracker["status"] == "rate_limited":
                    logger.warning("llm.candidate_rate_limited", model=model)
                    if index == final_position:
                        last_error = ModelRateLimitedError(model, 429, response.text)
                    continue

                if tracker["status"] == "error":
                    logger.warning(
                        "llm.candidate_failed",
                        model=model,
                        status_code=response.status_code,
                        detail=response.text[:200],
                    )
                    last_error = ModelRequestError(model, response.status_code, response.text)
                    continue

                logger.info("llm.candidate_succeeded", model=model, text_length=len(text))
                return CompletionSuccess(text=text, model=model)

        logger.error(
            "llm.chain_exhausted",
            attempts=attempts,
            last_error=str(last_error) if last_error else None,
        )
        return CompletionFailure(last_error=last_error, attempts=tuple(attempts))

    async def complete(
        self,
        messages: list[dict],
        options: CompletionOptions | None = None,
    ) -> str:
        """Return text from the first candidate that succeeds.

        Raises:
            AllModelsFailedError: Every candidate failed; chained to the
                last recorded error.
        """
        outcome = await self.run_chain(messages, options)
        if isinstance(outcome, CompletionFailure):
            raise AllModelsFailedError(outcome.last_error, outcome.attempts) from outcome.last_error
        return outcome.text

    async def extract_json(
        self,
        instruction: str,
        content: str,
        default: Any,
        options: CompletionOptions | None = None,
    ) -> Any:
        """Ask for a strict-JSON answer and parse it.

        Never raises: chain exhaustion or unparsable output returns a copy
        of ``default``.
        """
        prompt = f"{instruction}\n\n{content}\n\nRETURN JSON ONLY. No prose, no markdown."
        try:
            response = await self.complete([{"role": "user", "content": prompt}], options)
        except AllModelsFailedError as exc:
            logger.warning("llm.extract_json_fallback", reason="chain_exhausted", error=str(exc))
            return copy.deepcopy(default)

        try:
            return json.loads(strip_code_fences(response))
        except ValueError:
            logger.warning(
                "llm.extract_json_fallback",
                reason="invalid_json",
                response_preview=response[:100],
            )
            return copy.deepcopy(default)

    async def draft_text(
        self,
        instruction: str,
        context: str,
        fallback: str,
        options: CompletionOptions | None = None,
    ) -> str:
        """Ask for a free-text body. Returns ``fallback`` if the chain fails."""
        prompt = f"{instruction}\n\n{context}"
        try:
            response = await self.complete([{"role": "user", "content": prompt}], options)
        except AllModelsFailedError as exc:
            logger.warning("llm.draft_text_fallback", error=str(exc))
            return fallback
        return response.strip()


# ── Singleton ─────────────────────────────────────────────────────────────────

_completion_service: CompletionService | None = None


def get_completion_service() -> CompletionService:
    """Get or create the completion service singleton from settings."""
    global _completion_service
    if _completion_service is None:
        settings = get_settings()
        _completion_service = CompletionService(
            api_key=settings.get_openrouter_api_key(),
            candidates=build_candidates(settings.SCHEDULING_MODELS),
            base_url=settings.OPENROUTER_BASE_URL,
            timeout=settings.LLM_TIMEOUT,
            referer=settings.APP_URL,
            title=settings.APP_TITLE,
        )
    return _completion_service
