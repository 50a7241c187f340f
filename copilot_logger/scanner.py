"""Import persisted chat sessions from the editor's workspace storage.

Layout: ``<config dir>/Code/User/workspaceStorage/<workspace id>/chatSessions/*``.
The scan is read-only against the store and isolates failures per file: one
unreadable session is advised and skipped, the rest are still imported.
Running it twice appends every session twice; it is an import, not a sync.
"""
from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Iterator, Mapping

from copilot_logger import config
from copilot_logger.log_writer import LogWriter
from copilot_logger.models import NormalizedSession, ScanReport
from copilot_logger.notifications import AdvisoryGate, NotificationSink
from copilot_logger.observability import record_session_import, start_span
from copilot_logger.parsers.sessions import normalize_session

logger = logging.getLogger("copilot_logger.scanner")

STORAGE_UNCONFIGURED = "storage_unconfigured"
STORAGE_MISSING = "storage_missing"
STORAGE_LIST_FAILED = "storage_list_failed"
SESSION_READ_FAILED = "session_read_failed"
SESSION_NORMALIZE_FAILED = "session_normalize_failed"

CHAT_SESSIONS_DIR = "chatSessions"

Normalizer = Callable[[bytes, str, str], NormalizedSession]


def resolve_storage_root(
    env: Mapping[str, str] | None = None,
    override: Path | None = None,
) -> Path | None:
    """Locate ``workspaceStorage`` from the platform configuration directory.

    Returns None when no configuration location is known (the feature does
    not apply on this host).
    """
    if override is not None:
        return override
    env = os.environ if env is None else env
    base = (env.get("APPDATA") or env.get("XDG_CONFIG_HOME") or "").strip()
    if not base:
        return None
    return Path(base) / "Code" / "User" / "workspaceStorage"


def _listdir(path: Path) -> list[str]:
    # Directory listing order is kept as-is.
    return os.listdir(path)


class SessionStoreScanner:
    def __init__(
        self,
        writer: LogWriter,
        sink: NotificationSink,
        storage_root: Path | None = None,
        normalizer: Normalizer = normalize_session,
        resolve_root: Callable[[], Path | None] | None = None,
    ):
        self.writer = writer
        self.advisories = AdvisoryGate(sink)
        self._storage_root = storage_root
        self._normalizer = normalizer
        self._resolve_root = resolve_root or (
            lambda: resolve_storage_root(override=config.STORAGE_ROOT_OVERRIDE)
        )
        self._last_report = ScanReport()

    @property
    def storage_root(self) -> Path | None:
        if self._storage_root is not None:
            return self._storage_root
        return self._resolve_root()

    @property
    def last_report(self) -> ScanReport:
        return self._last_report

    def iter_sessions(
        self,
        report: ScanReport | None = None,
        stop_event: threading.Event | None = None,
    ) -> Iterator[NormalizedSession]:
        """Yield one NormalizedSession per readable session file, in listing order.

        When ``stop_event`` is set the walk ends before the next file is read.
        """
        report = report if report is not None else ScanReport()
        root = self.storage_root
        if root is None:
            report.skipped = True
            report.reason = "unconfigured"
            self.advisories.advise(
                STORAGE_UNCONFIGURED,
                "APPDATA/XDG_CONFIG_HOME not set; skipping chat session scan.",
            )
            return
        report.storageRoot = str(root)
        if not root.is_dir():
            report.skipped = True
            report.reason = "missing"
            self.advisories.advise(
                STORAGE_MISSING,
                f"workspaceStorage not found at {root}. Chat scanning will be skipped.",
            )
            return

        try:
            workspace_ids = _listdir(root)
        except OSError as exc:
            report.skipped = True
            report.reason = "unreadable"
            logger.warning("Error scanning workspaceStorage %s: %s", root, exc)
            self.advisories.advise(STORAGE_LIST_FAILED, f"Error scanning workspaceStorage: {exc}")
            return

        for workspace_id in workspace_ids:
            chat_dir = root / workspace_id / CHAT_SESSIONS_DIR
            if not chat_dir.is_dir():
                continue
            report.workspaces += 1
            try:
                chat_files = _listdir(chat_dir)
            except OSError as exc:
                logger.warning("Could not list %s: %s", chat_dir, exc)
                self.advisories.advise(STORAGE_LIST_FAILED, f"Error scanning workspaceStorage: {exc}")
                continue
            for chat_file in chat_files:
                if stop_event is not None and stop_event.is_set():
                    report.reason = "cancelled"
                    logger.info("Chat session scan stopped before %s", chat_dir / chat_file)
                    return
                path = chat_dir / chat_file
                if path.is_dir():
                    continue
                session = self._load(path, workspace_id)
                if session is None:
                    report.filesFailed += 1
                    record_session_import("failed")
                    continue
                yield session

    def _load(self, path: Path, workspace_id: str) -> NormalizedSession | None:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            logger.warning("Failed to read chat session %s: %s", path, exc)
            self.advisories.advise(
                SESSION_READ_FAILED,
                f"Failed to read chat session {path}: {exc}",
            )
            return None
        try:
            session = self._normalizer(raw, workspace_id, str(path))
        except Exception as exc:
            logger.exception("Failed to normalize chat session %s", path)
            self.advisories.advise(
                SESSION_NORMALIZE_FAILED,
                f"Failed to parse chat session {path}: {exc}",
            )
            return None
        if not session.structured:
            logger.debug("Chat session %s is not structured; imported as freeform text", path)
        return session

    def scan(self) -> list[NormalizedSession]:
        report = ScanReport()
        sessions = list(self.iter_sessions(report))
        self._last_report = report
        return sessions

    def scan_and_log(self, stop_event: threading.Event | None = None) -> ScanReport:
        """Stream every session straight into the log writer without buffering the set.

        Safe to run in a worker thread; setting ``stop_event`` ends the import
        between files, so nothing is written after the caller has stopped it.
        """
        report = ScanReport()
        started = time.monotonic()
        with start_span("copilot_logger.scan", {"storage_root": str(self.storage_root or "")}):
            for session in self.iter_sessions(report, stop_event):
                if stop_event is not None and stop_event.is_set():
                    report.reason = "cancelled"
                    break
                if self.writer.append(session.render()):
                    report.sessionsLogged += 1
                    record_session_import("logged")
                else:
                    report.filesFailed += 1
                    record_session_import("dropped")
        logger.info(
            "Chat session import finished: %s logged, %s failed, %s workspaces (%.0f ms)",
            report.sessionsLogged,
            report.filesFailed,
            report.workspaces,
            (time.monotonic() - started) * 1000,
        )
        self._last_report = report
        return report
