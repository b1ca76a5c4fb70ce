"""structlog setup shared by the API process and scripts.

Context bound with ``structlog.contextvars`` (the request id, for example)
is merged into every event logged while handling that request, including
events from the orchestrator and provider clients.
"""

from __future__ import annotations

import logging

import structlog


def configure_structlog(level: str = "INFO", json_logs: bool = False) -> None:
    """Route structlog through stdlib logging at ``level``.

    Args:
        level: Root log level name, e.g. "INFO" or "debug".
        json_logs: Render JSON lines instead of colored console output.
    """
    logging.basicConfig(format="%(message)s", level=level.upper())

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
