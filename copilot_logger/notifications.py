"""User-facing notifications and warn-once advisories.

The host editor surfaces (popups, output channel) are represented by a
``NotificationSink``. ``HostNotificationSink`` keeps a bounded history of
what was surfaced so the HTTP layer can serve it, and mirrors every
notification to the process log.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Protocol

from copilot_logger import config
from copilot_logger.date_utils import utc_now_iso
from copilot_logger.models import Notification, Severity
from copilot_logger.observability import record_notification

logger = logging.getLogger("copilot_logger.notifications")

_LEVEL_BY_SEVERITY = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class NotificationSink(Protocol):
    def notify(self, severity: Severity, message: str) -> None: ...


class HostNotificationSink:
    """Records notifications for the host UI and optionally echoes them to the log."""

    def __init__(
        self,
        max_history: int | None = None,
        log_to_console: bool | None = None,
        show_popups: bool | None = None,
    ):
        size = max_history if max_history is not None else config.NOTIFICATION_HISTORY_MAX
        self._history: deque[Notification] = deque(maxlen=max(1, size))
        self._lock = threading.Lock()
        self.log_to_console = config.LOG_TO_CONSOLE if log_to_console is None else log_to_console
        self.show_popups = config.SHOW_POPUPS if show_popups is None else show_popups

    def notify(self, severity: Severity, message: str) -> None:
        notification = Notification(
            timestamp=utc_now_iso(),
            severity=severity,
            message=message,
            popup=self.show_popups,
        )
        with self._lock:
            self._history.append(notification)
        if self.log_to_console:
            logger.log(_LEVEL_BY_SEVERITY.get(severity, logging.INFO), message)
        record_notification(severity)

    def info(self, message: str) -> None:
        self.notify("info", message)

    def warning(self, message: str) -> None:
        self.notify("warning", message)

    def error(self, message: str) -> None:
        self.notify("error", message)

    def recent(self, limit: int = 50) -> list[Notification]:
        with self._lock:
            items = list(self._history)
        if limit <= 0:
            return []
        return items[-limit:]


class AdvisoryGate:
    """Surfaces each failure class at most once for the lifetime of the gate."""

    def __init__(self, sink: NotificationSink):
        self._sink = sink
        self._warned: set[str] = set()
        self._lock = threading.Lock()

    def advise(self, failure_class: str, message: str, severity: Severity = "warning") -> bool:
        with self._lock:
            if failure_class in self._warned:
                return False
            self._warned.add(failure_class)
        self._sink.notify(severity, message)
        return True

    def has_warned(self, failure_class: str) -> bool:
        return failure_class in self._warned

    @property
    def warned(self) -> frozenset[str]:
        return frozenset(self._warned)
