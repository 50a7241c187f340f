"""API routers for the host commands and display surfaces."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from copilot_logger import config
from copilot_logger.models import (
    EditEvent,
    LogHead,
    LogResourcesStatus,
    Notification,
    ScanReport,
)

logger = logging.getLogger("copilot_logger.api")

log_router = APIRouter(prefix="/api/log", tags=["log"])
sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])
events_router = APIRouter(prefix="/api/events", tags=["events"])
notifications_router = APIRouter(prefix="/api/notifications", tags=["notifications"])
chat_exports_router = APIRouter(prefix="/api/chat-exports", tags=["chat-exports"])


class EventAccepted(BaseModel):
    accepted: bool = True
    subscribers: int = 0


class ChatExportList(BaseModel):
    directory: str = ""
    files: list[str] = Field(default_factory=list)


def _get_runtime(request: Request):
    runtime = getattr(request.app.state, "runtime", None)
    if not runtime:
        raise HTTPException(status_code=503, detail="Copilot Logger not initialized")
    return runtime


# ── Log artifact ────────────────────────────────────────────────────

@log_router.post("/resources", response_model=LogResourcesStatus)
async def create_log_resources(request: Request):
    """Ensure the log directory and file exist (idempotent)."""
    runtime = _get_runtime(request)
    status = await asyncio.to_thread(runtime.writer.ensure_resources, True)
    if not status.ready:
        runtime.sink.error(f"Failed to create log resources at: {runtime.writer.log_dir}")
        raise HTTPException(status_code=500, detail="Failed to create log resources")
    runtime.sink.info(f"Log resources created at: {runtime.writer.log_dir}")
    return status


@log_router.get("/resources", response_model=LogResourcesStatus)
def get_log_resources(request: Request):
    runtime = _get_runtime(request)
    return runtime.writer.ensure_resources(create=False)


@log_router.get("/head", response_model=LogHead)
def get_log_head(
    request: Request,
    lines: int = Query(default=0, ge=0, le=1000),
):
    """First lines of the log, as shown in the sidebar view."""
    if not config.ENABLE_SIDEBAR:
        raise HTTPException(status_code=404, detail="Sidebar view disabled")
    runtime = _get_runtime(request)
    limit = lines or config.SIDEBAR_MAX_LINES
    return LogHead(
        logFilePath=str(runtime.writer.log_file_path),
        lines=runtime.writer.read_head(limit),
    )


# ── Session import ──────────────────────────────────────────────────

@sessions_router.post("/import", response_model=ScanReport)
async def import_chat_sessions(request: Request):
    runtime = _get_runtime(request)
    report = await asyncio.to_thread(runtime.import_sessions)
    if report.skipped:
        runtime.sink.warning(f"Chat session import skipped ({report.reason}).")
    else:
        runtime.sink.info(
            f"Chat sessions imported successfully ({report.sessionsLogged} sessions)."
        )
    return report


@sessions_router.get("/last-import", response_model=ScanReport)
def get_last_import(request: Request):
    return _get_runtime(request).scanner.last_report


# ── Live edits ──────────────────────────────────────────────────────

@events_router.post("", response_model=EventAccepted)
async def publish_edit_event(event: EditEvent, request: Request):
    """Host editors push document-change events here."""
    runtime = _get_runtime(request)
    runtime.hub.publish(event)
    return EventAccepted(subscribers=runtime.hub.subscriber_count)


@notifications_router.get("", response_model=list[Notification])
def list_notifications(
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
):
    return _get_runtime(request).sink.recent(limit)


# ── Chat exports ────────────────────────────────────────────────────

def list_chat_exports(directory: Path | None) -> list[str]:
    if directory is None or not directory.is_dir():
        return []
    try:
        return [name for name in os.listdir(directory) if (directory / name).is_file()]
    except OSError as exc:
        logger.warning("Could not list chat exports in %s: %s", directory, exc)
        return []


@chat_exports_router.get("", response_model=ChatExportList)
def get_chat_exports():
    if not config.ENABLE_CHAT_WEBVIEW:
        raise HTTPException(status_code=404, detail="Chat webview disabled")
    directory = config.CHAT_EXPORT_DIR
    return ChatExportList(
        directory=str(directory or ""),
        files=list_chat_exports(directory),
    )
