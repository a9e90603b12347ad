"""Logging utilities for monitoring and debugging."""

from quotedesk.core.logging.config import LogConfig
from quotedesk.core.logging.logger import (
    StructuredLogger,
    configure_logging,
    current_trace_id,
    get_logger,
    log_context,
    logger,
)

__all__ = [
    "LogConfig",
    "StructuredLogger",
    "current_trace_id",
    "get_logger",
    "configure_logging",
    "log_context",
    "logger",
]
