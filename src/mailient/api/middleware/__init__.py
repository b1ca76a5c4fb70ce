"""API middleware package."""

from src.mailient.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
