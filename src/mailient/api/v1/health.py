"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks. The
service is stateless, so readiness only reports which upstream credentials
are configured.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.mailient.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check.

    No external dependencies are checked -- just that the server is running.
    """
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


def _check_configuration() -> dict:
    """Report configured upstreams. Returns check results dict."""
    settings = get_settings()
    return {
        "llm": "ok" if settings.get_openrouter_api_key() else "no_keys",
        "llm_models": len(settings.SCHEDULING_MODELS),
        "google_oauth_client": "ok" if settings.GOOGLE_CLIENT_ID else "not_configured",
        "zoom_account": "ok" if settings.zoom_account_configured() else "not_configured",
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check: at least one model must be configured.

    Missing API keys or OAuth clients degrade features (AI output falls back
    to defaults, tokens cannot be refreshed) but do not block traffic.
    """
    checks = _check_configuration()
    ready = checks["llm_models"] > 0

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "degraded",
            "checks": checks,
        },
    )
