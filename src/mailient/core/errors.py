"""Domain errors raised by the scheduling core.

ValidationError is raised before any remote call is made. ProviderError wraps
every rejection or transport failure from the Google Calendar and Zoom
gateways so callers only need to handle one type per failure class.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for scheduling failures."""


class ValidationError(SchedulingError, ValueError):
    """Caller input is malformed (bad time range, bad attendee address)."""


class ProviderError(SchedulingError):
    """A remote gateway rejected the request or could not be reached.

    Args:
        provider: Gateway name ("google" or "zoom").
        message: Human-readable failure detail.
        status_code: HTTP status returned by the gateway, if any.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.status_code = status_code
        detail = f"{provider} provider error: {message}"
        if status_code is not None:
            detail += f" (HTTP {status_code})"
        super().__init__(detail)
