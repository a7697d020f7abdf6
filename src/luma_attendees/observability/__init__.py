"""Observability module for structured run logging."""

from .logging import (
    bind_event_context,
    bind_run_context,
    clear_run_context,
    get_current_run_id,
    get_run_logger,
    quiet_dependency_logging,
    setup_structured_logging,
)

__all__ = [
    "bind_event_context",
    "bind_run_context",
    "clear_run_context",
    "get_current_run_id",
    "get_run_logger",
    "quiet_dependency_logging",
    "setup_structured_logging",
]
