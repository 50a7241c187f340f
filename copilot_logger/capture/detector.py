"""Watch the live edit stream for assistant-related changes."""
from __future__ import annotations

import logging
import re
from typing import Callable

from copilot_logger import config
from copilot_logger.capture.aggregator import NotificationAggregator
from copilot_logger.capture.events import Disposable, EditEventSource
from copilot_logger.log_writer import LogWriter
from copilot_logger.models import EditEvent
from copilot_logger.observability import record_detection

logger = logging.getLogger("copilot_logger.detector")

_WHITESPACE_RE = re.compile(r"\s+")

LOG_PREFIX = "Detected Copilot interaction: "


def make_snippet(text: str, max_chars: int) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()[:max_chars]


class LiveInteractionDetector:
    """Logs every matching edit immediately and feeds the aggregator."""

    def __init__(
        self,
        writer: LogWriter,
        aggregator: NotificationAggregator,
        keyword: str | None = None,
        snippet_max_chars: int | None = None,
        is_active_document: Callable[[str], bool] | None = None,
    ):
        self.writer = writer
        self.aggregator = aggregator
        self.keyword = keyword or config.DETECTION_KEYWORD
        self.snippet_max_chars = (
            config.SNIPPET_MAX_CHARS if snippet_max_chars is None else snippet_max_chars
        )
        self._pattern = re.compile(re.escape(self.keyword), re.IGNORECASE)
        self._is_active_document = is_active_document
        self._subscription: Disposable | None = None

    @property
    def active(self) -> bool:
        return self._subscription is not None

    def activate(self, source: EditEventSource) -> None:
        if self._subscription is not None:
            logger.warning("Interaction detector already subscribed")
            return
        self._subscription = source.on_change(self.handle_event)
        logger.info("Interaction detector listening for '%s'", self.keyword)

    def handle_event(self, event: EditEvent) -> str | None:
        """Returns the snippet that was logged, or None when the event is ignored."""
        if self._is_active_document is not None and not self._is_active_document(event.documentUri):
            return None
        delta = event.delta_text()
        if not delta:
            return None
        if not self._pattern.search(delta):
            return None

        snippet = make_snippet(delta, self.snippet_max_chars)
        self.writer.append(f"{LOG_PREFIX}{snippet}")
        self.aggregator.enqueue(snippet)
        record_detection()
        return snippet

    def dispose(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.dispose()
        self.aggregator.dispose()
