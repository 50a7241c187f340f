"""Trailing-debounce aggregation of detected snippets into one notification."""
from __future__ import annotations

import enum
import logging
from collections import deque

from copilot_logger import config
from copilot_logger.capture.scheduling import Scheduler, TimerHandle
from copilot_logger.notifications import NotificationSink

logger = logging.getLogger("copilot_logger.aggregator")


class AggregatorState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"


class NotificationAggregator:
    """Coalesces bursts of snippets.

    ``IDLE --enqueue--> PENDING`` starts the timer; every further enqueue while
    ``PENDING`` restarts it. When the timer fires, all queued snippets are
    emitted as one newline-joined notification and the state returns to
    ``IDLE``. The queue keeps at most ``max_queue`` snippets, dropping the
    oldest.
    """

    def __init__(
        self,
        sink: NotificationSink,
        scheduler: Scheduler,
        delay_ms: int | None = None,
        max_queue: int | None = None,
    ):
        self._sink = sink
        self._scheduler = scheduler
        self.delay_ms = config.DEBOUNCE_MS if delay_ms is None else delay_ms
        size = config.NOTIFICATION_QUEUE_MAX if max_queue is None else max_queue
        self._queue: deque[str] = deque(maxlen=max(1, size))
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._disposed = False

    @property
    def state(self) -> AggregatorState:
        return AggregatorState.PENDING if self._timer is not None else AggregatorState.IDLE

    @property
    def pending(self) -> list[str]:
        return list(self._queue)

    def enqueue(self, snippet: str) -> None:
        if self._disposed:
            return
        self._queue.append(snippet)
        self._cancel_timer()
        self._generation += 1
        generation = self._generation
        self._timer = self._scheduler.call_later(
            self.delay_ms / 1000.0, lambda: self._fire(generation)
        )

    def _fire(self, generation: int) -> None:
        # A timer that outlived a reset or teardown is stale.
        if self._disposed or generation != self._generation:
            return
        self._timer = None
        snippets = list(self._queue)
        self._queue.clear()
        if not snippets:
            return
        self._sink.notify("info", "\n".join(snippets))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def dispose(self) -> None:
        self._disposed = True
        self._cancel_timer()
        self._queue.clear()
        logger.debug("Notification aggregator disposed")
