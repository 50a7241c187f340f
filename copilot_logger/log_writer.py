"""Durable, best-effort writer for the activity log artifact.

Every component funnels its output through ``LogWriter.append``. Entries are
rendered as ``[<timestamp>] <body>\\n\\n`` and written with a single append
so concurrent writers (live detection and a running session import) never
interleave inside one entry.
"""
from __future__ import annotations

import enum
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from copilot_logger.date_utils import format_timestamp, utc_now_iso
from copilot_logger.models import LogEntry, LogResourcesStatus
from copilot_logger.notifications import AdvisoryGate, NotificationSink
from copilot_logger.observability import record_log_write

logger = logging.getLogger("copilot_logger.writer")

MISSING_DIRECTORY = "missing_directory"
MISSING_FILE = "missing_file"
WRITE_FAILED = "write_failed"


class WriteStrategy(str, enum.Enum):
    APPEND = "append"
    PREPEND = "prepend"


class LogWriter:
    """Owns the log file; every write goes through ``append``.

    ``APPEND`` (the default) adds each entry at the end of the file with one
    ``O_APPEND`` write. ``PREPEND`` keeps the newest entry at the top by
    rewriting the file, so it serialises all writes through a writer-owned
    lock and swaps the file in with ``os.replace``.
    """

    def __init__(
        self,
        log_file_path: Path,
        sink: NotificationSink,
        strategy: WriteStrategy = WriteStrategy.APPEND,
        clock: Callable[[], datetime] | None = None,
    ):
        self.log_file_path = Path(log_file_path)
        self.strategy = WriteStrategy(strategy)
        self.advisories = AdvisoryGate(sink)
        self._clock = clock
        self._prepend_lock = threading.Lock()

    @property
    def log_dir(self) -> Path:
        return self.log_file_path.parent

    def _timestamp(self) -> str:
        if self._clock is None:
            return utc_now_iso()
        return format_timestamp(self._clock())

    def append(self, content: str) -> bool:
        """Append one entry. Returns False when the entry was dropped; never raises."""
        entry = LogEntry(timestamp=self._timestamp(), body=content)
        if not self._ensure_directory():
            record_log_write("dropped")
            return False
        try:
            if self.strategy is WriteStrategy.PREPEND:
                self._prepend(entry.render())
            else:
                self._append(entry.render())
        except OSError as exc:
            logger.error("Failed to write to log file %s: %s", self.log_file_path, exc)
            self.advisories.advise(
                WRITE_FAILED,
                f"Failed to write to log file: {self.log_file_path}. Error: {exc}",
                severity="error",
            )
            record_log_write("failed")
            return False
        record_log_write("written")
        return True

    def _ensure_directory(self) -> bool:
        if self.log_dir.is_dir():
            return True
        self.advisories.advise(
            MISSING_DIRECTORY,
            f"Log directory does not exist: {self.log_dir}. Attempting to create it.",
        )
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Could not create log directory %s: %s", self.log_dir, exc)
            self.advisories.advise(
                WRITE_FAILED,
                f"Failed to create log directory: {self.log_dir}. Error: {exc}",
                severity="error",
            )
            return False
        logger.info("Created log directory %s", self.log_dir)
        return True

    def _append(self, text: str) -> None:
        data = text.encode("utf-8", errors="replace")
        fd = os.open(self.log_file_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
        try:
            written = os.write(fd, data)
            if written != len(data):
                end = os.lseek(fd, 0, os.SEEK_CUR)
                self._rollback_partial(fd, end - written, end)
                raise OSError(f"short write ({written} of {len(data)} bytes)")
        finally:
            os.close(fd)

    def _rollback_partial(self, fd: int, start: int, end: int) -> None:
        # Only truncate when nothing else has been appended after our bytes.
        try:
            if os.fstat(fd).st_size == end:
                os.ftruncate(fd, start)
        except OSError as exc:
            logger.error("Could not roll back partial log entry in %s: %s", self.log_file_path, exc)

    def _prepend(self, text: str) -> None:
        with self._prepend_lock:
            try:
                existing = self.log_file_path.read_text(encoding="utf-8", errors="replace")
            except FileNotFoundError:
                existing = ""
            fd, tmp_name = tempfile.mkstemp(
                dir=self.log_dir, prefix=f".{self.log_file_path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8", errors="replace") as handle:
                    handle.write(text)
                    handle.write(existing)
                os.replace(tmp_name, self.log_file_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def ensure_resources(self, create: bool = True) -> LogResourcesStatus:
        """Check (and by default create) the log directory and file.

        Idempotent: repeated calls with everything in place change nothing.
        """
        if create:
            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with open(self.log_file_path, "a", encoding="utf-8"):
                    pass
            except OSError as exc:
                logger.error("Failed to create log resources at %s: %s", self.log_dir, exc)
                self.advisories.advise(
                    WRITE_FAILED,
                    f"Failed to create log resources: {exc}",
                    severity="error",
                )
            return self.status()

        status = self.status()
        if not status.directoryExists:
            self.advisories.advise(
                MISSING_DIRECTORY,
                f"Logs directory does not exist: {self.log_dir}. Create it to enable logging.",
            )
        elif not status.fileExists:
            self.advisories.advise(
                MISSING_FILE,
                f"Log file {self.log_file_path.name} is missing. Create it inside {self.log_dir} to enable logging.",
            )
        return status

    def status(self) -> LogResourcesStatus:
        dir_exists = self.log_dir.is_dir()
        file_exists = self.log_file_path.is_file()
        return LogResourcesStatus(
            logFilePath=str(self.log_file_path),
            directoryExists=dir_exists,
            fileExists=file_exists,
            ready=dir_exists and file_exists,
        )

    def read_head(self, max_lines: int) -> list[str]:
        """First ``max_lines`` non-blank lines of the log, or [] if it does not exist."""
        if max_lines <= 0:
            return []
        lines: list[str] = []
        try:
            with open(self.log_file_path, "r", encoding="utf-8", errors="replace") as handle:
                for line in handle:
                    stripped = line.rstrip("\r\n")
                    if not stripped.strip():
                        continue
                    lines.append(stripped)
                    if len(lines) >= max_lines:
                        break
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", self.log_file_path, exc)
            return []
        return lines
