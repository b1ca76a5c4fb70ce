"""Shared test fixtures.

Provides:
- FastAPI test app (lifespan is not run; no network or credentials needed)
- Async HTTP client bound to the app via ASGITransport
- A ranked three-candidate model chain and a CompletionService over it
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.mailient.main import create_app
from src.mailient.services.llm import CompletionService, build_candidates

TEST_MODELS = ("model-a", "model-b", "model-c")


@pytest.fixture
def app():
    """Create a fresh FastAPI app per test so dependency overrides don't leak."""
    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def candidates():
    return build_candidates(TEST_MODELS)


@pytest.fixture
def completion_service(candidates):
    """CompletionService over three fake models; HTTP is patched per test."""
    return CompletionService(
        api_key="test-key",
        candidates=candidates,
        base_url="https://llm.test/api/v1",
        referer="https://mailient.test",
        title="Mailient Test",
    )
