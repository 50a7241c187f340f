"""Wires the capture-and-ingest components together for one activation."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from copilot_logger import config
from copilot_logger.capture.aggregator import NotificationAggregator
from copilot_logger.capture.detector import LiveInteractionDetector
from copilot_logger.capture.events import EditEventHub
from copilot_logger.capture.file_watcher import WorkspaceEditWatcher
from copilot_logger.capture.scheduling import AsyncioScheduler, Scheduler
from copilot_logger.log_writer import LogWriter, WriteStrategy
from copilot_logger.models import ScanReport
from copilot_logger.notifications import HostNotificationSink
from copilot_logger.scanner import SessionStoreScanner

logger = logging.getLogger("copilot_logger")

ACTIVATION_MESSAGE = "Copilot Logger activated."


@dataclass
class Runtime:
    sink: HostNotificationSink
    writer: LogWriter
    hub: EditEventHub
    aggregator: NotificationAggregator
    detector: LiveInteractionDetector
    scanner: SessionStoreScanner
    watcher: Optional[WorkspaceEditWatcher] = None
    # Set on shutdown; a running session import stops between files.
    import_stop: threading.Event = field(default_factory=threading.Event)

    def activate(self) -> None:
        """Subscribe the detector and record the activation in the log."""
        self.detector.activate(self.hub)
        self.writer.append(ACTIVATION_MESSAGE)
        self.sink.info(ACTIVATION_MESSAGE)

    async def start_watcher(self) -> None:
        if self.watcher is not None:
            await self.watcher.start()

    def import_sessions(self) -> ScanReport:
        """Run a session import that stops between files once shutdown begins."""
        return self.scanner.scan_and_log(self.import_stop)

    async def shutdown(self) -> None:
        self.import_stop.set()
        if self.watcher is not None:
            await self.watcher.stop()
        self.detector.dispose()


def build_runtime(
    log_file_path: Path | None = None,
    storage_root: Path | None = None,
    workspace_dir: Path | None = None,
    scheduler: Scheduler | None = None,
    sink: HostNotificationSink | None = None,
    strategy: WriteStrategy = WriteStrategy.APPEND,
) -> Runtime:
    workspace_dir = workspace_dir if workspace_dir is not None else config.WORKSPACE_DIR
    if log_file_path is None:
        log_file_path = config.LOG_FILE_PATH
    sink = sink or HostNotificationSink()
    writer = LogWriter(log_file_path, sink, strategy=strategy)
    hub = EditEventHub()
    aggregator = NotificationAggregator(sink, scheduler or AsyncioScheduler())
    detector = LiveInteractionDetector(writer, aggregator)
    scanner = SessionStoreScanner(writer, sink, storage_root=storage_root)
    watcher = None
    if workspace_dir is not None:
        watcher = WorkspaceEditWatcher(hub, workspace_dir, ignore_paths=(writer.log_file_path,))
    logger.info("Copilot Logger writing to %s", writer.log_file_path)
    return Runtime(
        sink=sink,
        writer=writer,
        hub=hub,
        aggregator=aggregator,
        detector=detector,
        scanner=scanner,
        watcher=watcher,
    )
