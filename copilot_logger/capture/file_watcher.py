"""Workspace file watcher using watchfiles.

Turns on-disk edits inside a workspace into EditEvents: a text snapshot is
kept per file, and each change is diffed against it so only the inserted
fragments are published to the event hub.
"""
from __future__ import annotations

import asyncio
import difflib
import logging
from pathlib import Path
from typing import Optional

from watchfiles import awatch, Change

from copilot_logger import config
from copilot_logger.capture.events import EditEventHub
from copilot_logger.models import EditEvent, TextChange

logger = logging.getLogger("copilot_logger.watcher")


def inserted_fragments(before: str, after: str) -> list[TextChange]:
    """Text inserted or substituted when going from ``before`` to ``after``."""
    changes: list[TextChange] = []
    matcher = difflib.SequenceMatcher(None, before, after, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("insert", "replace"):
            changes.append(TextChange(text=after[j1:j2], rangeOffset=i1, rangeLength=i2 - i1))
    return changes


class WorkspaceEditWatcher:
    """Background watcher that publishes text insertions as edit events.

    Uses `watchfiles` (Rust-accelerated) for efficient watching.
    """

    def __init__(
        self,
        hub: EditEventHub,
        workspace_dir: Path,
        ignore_paths: tuple[Path, ...] = (),
        suffixes: tuple[str, ...] | None = None,
        max_bytes: int | None = None,
    ):
        self.hub = hub
        self.workspace_dir = Path(workspace_dir).resolve(strict=False)
        self._ignore = {self._key(p) for p in ignore_paths}
        self._suffixes = tuple(s.lower() for s in (suffixes or config.WATCH_SUFFIXES))
        self._max_bytes = config.WATCH_MAX_BYTES if max_bytes is None else max_bytes
        self._snapshots: dict[str, str] = {}
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    @staticmethod
    def _key(path: Path) -> str:
        return str(Path(path).resolve(strict=False))

    def _is_candidate(self, path: Path) -> bool:
        resolved = Path(self._key(path))
        if str(resolved) in self._ignore:
            return False
        try:
            relative = resolved.relative_to(self.workspace_dir)
        except ValueError:
            return False
        # Skip hidden directories such as .git and .venv.
        if any(part.startswith(".") for part in relative.parts[:-1]):
            return False
        return resolved.suffix.lower() in self._suffixes

    def _read_text(self, path: Path) -> str | None:
        try:
            if path.stat().st_size > self._max_bytes:
                return None
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    def prime(self) -> int:
        """Snapshot existing files so the first change only reports its own edits."""
        count = 0
        if not self.workspace_dir.is_dir():
            return count
        for path in self.workspace_dir.rglob("*"):
            if not path.is_file() or not self._is_candidate(path):
                continue
            text = self._read_text(path)
            if text is not None:
                self._snapshots[self._key(path)] = text
                count += 1
        return count

    def process_change(self, change_type: Change, path: Path) -> EditEvent | None:
        """Diff one changed file against its snapshot and publish the insertion."""
        if not self._is_candidate(path):
            return None
        key = self._key(path)
        if change_type == Change.deleted:
            self._snapshots.pop(key, None)
            return None

        after = self._read_text(path)
        if after is None:
            return None
        before = self._snapshots.get(key, "")
        self._snapshots[key] = after
        if after == before:
            return None

        changes = inserted_fragments(before, after)
        if not changes:
            return None
        event = EditEvent(documentUri=path.as_uri(), contentChanges=changes)
        self.hub.publish(event)
        return event

    async def start(self) -> None:
        """Start watching the workspace in a background task."""
        if self._running:
            logger.warning("File watcher already running")
            return
        if not self.workspace_dir.is_dir():
            logger.warning("Workspace %s does not exist, watcher has nothing to monitor", self.workspace_dir)
            return

        self._running = True
        self._stop_event = asyncio.Event()
        primed = await asyncio.to_thread(self.prime)
        self._task = asyncio.create_task(self._watch_loop())
        logger.info("File watcher started for %s (%s files primed)", self.workspace_dir, primed)

    async def stop(self) -> None:
        """Stop the file watcher."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self) -> None:
        try:
            async for changes in awatch(self.workspace_dir, stop_event=self._stop_event):
                if not self._running:
                    break
                for change_type, path_str in changes:
                    try:
                        self.process_change(change_type, Path(path_str))
                    except Exception as e:
                        logger.error(f"Error processing change for {path_str}: {e}")
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        except Exception as e:
            logger.error(f"File watcher error: {e}")
        finally:
            self._running = False
