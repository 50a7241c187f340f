"""Observability helpers."""

from copilot_logger.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_log_write,
    record_detection,
    record_session_import,
    record_notification,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_log_write",
    "record_detection",
    "record_session_import",
    "record_notification",
]
