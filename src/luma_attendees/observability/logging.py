"""Structured logging with per-run context using structlog and contextvars."""

import logging
import os
import sys
from contextvars import ContextVar

import structlog

# Context variables for the current run
current_run_id: ContextVar[str | None] = ContextVar("current_run_id", default=None)
current_event_url: ContextVar[str | None] = ContextVar("current_event_url", default=None)

# Dependencies that log far too much at INFO for an interactive tool
NOISY_LOGGERS = (
    "browser_use",
    "cdp_use",
    "bubus",
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
    "websockets",
)

_configured = False


def quiet_dependency_logging() -> None:
    """Cap dependency loggers at WARNING. Call before importing browser_use."""
    os.environ.setdefault("BROWSER_USE_LOGGING_LEVEL", "warning")
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def setup_structured_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog over stdlib logging with per-run context.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        fmt: "console" for human-readable output, "json" for one JSON object per line
    """
    global _configured
    if _configured:
        return

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # Inject run context
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr so prompts on stdout stay readable
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )
    quiet_dependency_logging()

    _configured = True


def bind_run_context(run_id: str, target_url: str) -> None:
    """Bind run context for all subsequent logs in this async context."""
    current_run_id.set(run_id)
    structlog.contextvars.bind_contextvars(run_id=run_id, target_url=target_url)


def bind_event_context(event_url: str) -> None:
    """Bind the event currently being captured."""
    current_event_url.set(event_url)
    structlog.contextvars.bind_contextvars(event_url=event_url)


def clear_run_context() -> None:
    """Clear run context after the run completes."""
    current_run_id.set(None)
    current_event_url.set(None)
    structlog.contextvars.clear_contextvars()


def get_run_logger(name: str = "luma_attendees") -> structlog.stdlib.BoundLogger:
    """Get a structlog logger carrying the run context."""
    return structlog.get_logger(name)


def get_current_run_id() -> str | None:
    """Get the current run ID from context."""
    return current_run_id.get()
