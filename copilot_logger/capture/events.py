"""Edit-event subscription primitives.

The detector depends only on the ``EditEventSource`` capability; the host
(HTTP push, workspace file watcher) publishes into an ``EditEventHub``.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from copilot_logger.models import EditEvent

logger = logging.getLogger("copilot_logger.events")

EditHandler = Callable[[EditEvent], None]


class Disposable(Protocol):
    def dispose(self) -> None: ...


class EditEventSource(Protocol):
    def on_change(self, handler: EditHandler) -> Disposable: ...


class Subscription:
    """Handle returned by ``on_change``; disposing it twice is harmless."""

    def __init__(self, hub: "EditEventHub", handler: EditHandler):
        self._hub = hub
        self._handler: EditHandler | None = handler

    @property
    def disposed(self) -> bool:
        return self._handler is None

    def dispose(self) -> None:
        handler, self._handler = self._handler, None
        if handler is not None:
            self._hub._remove(handler)


class EditEventHub:
    def __init__(self):
        self._handlers: list[EditHandler] = []
        self._lock = threading.Lock()

    def on_change(self, handler: EditHandler) -> Subscription:
        with self._lock:
            self._handlers.append(handler)
        return Subscription(self, handler)

    def _remove(self, handler: EditHandler) -> None:
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def publish(self, event: EditEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Edit event handler failed for %s", event.documentUri)
