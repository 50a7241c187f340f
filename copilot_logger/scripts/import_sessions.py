#!/usr/bin/env python3
"""Import persisted chat sessions into the activity log once.

Usage:
  python -m copilot_logger.scripts.import_sessions
  python -m copilot_logger.scripts.import_sessions --log-file ./logs/copilot-activity-log.txt
  python -m copilot_logger.scripts.import_sessions --storage-root ~/.config/Code/User/workspaceStorage --json
  python -m copilot_logger.scripts.import_sessions --ensure-only
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from copilot_logger import config
from copilot_logger.log_writer import LogWriter
from copilot_logger.notifications import HostNotificationSink
from copilot_logger.scanner import SessionStoreScanner


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import chat sessions into the Copilot activity log.")
    parser.add_argument("--log-file", type=Path, default=None, help="Log file path (default: configured log file)")
    parser.add_argument("--storage-root", type=Path, default=None, help="workspaceStorage directory to scan")
    parser.add_argument("--ensure-only", action="store_true", help="Only create the log directory and file")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    sink = HostNotificationSink(log_to_console=True, show_popups=False)
    log_file = args.log_file.expanduser() if args.log_file else config.LOG_FILE_PATH
    writer = LogWriter(log_file, sink)

    if args.ensure_only:
        status = writer.ensure_resources(create=True)
        if args.json:
            print(json.dumps(status.model_dump(), indent=2))
        else:
            print(f"Log resources {'ready' if status.ready else 'NOT ready'} at {status.logFilePath}")
        return 0 if status.ready else 1

    storage_root = args.storage_root.expanduser() if args.storage_root else None
    scanner = SessionStoreScanner(writer, sink, storage_root=storage_root)
    report = scanner.scan_and_log()

    if args.json:
        print(json.dumps(report.model_dump(), indent=2))
    elif report.skipped:
        print(f"Chat session import skipped ({report.reason}).")
    else:
        print(
            f"Imported {report.sessionsLogged} sessions from {report.workspaces} workspaces "
            f"into {writer.log_file_path} ({report.filesFailed} failed)."
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
