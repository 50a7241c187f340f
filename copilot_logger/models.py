"""Pydantic models for log entries, sessions, edit events and API payloads."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional

Severity = Literal["info", "warning", "error"]


# ── Log artifact ────────────────────────────────────────────────────

class LogEntry(BaseModel):
    timestamp: str
    body: str

    def render(self) -> str:
        return f"[{self.timestamp}] {self.body}\n\n"


class LogResourcesStatus(BaseModel):
    logFilePath: str
    directoryExists: bool = False
    fileExists: bool = False
    ready: bool = False


class LogHead(BaseModel):
    logFilePath: str
    lines: list[str] = Field(default_factory=list)


def _one_line(value: str) -> str:
    return " ".join(value.splitlines())


# ── Session-related models ──────────────────────────────────────────

class NormalizedSession(BaseModel):
    title: str = Field(..., min_length=1)
    workspaceId: str = ""
    resolvedPath: Optional[str] = None
    sourcePath: str = ""
    messages: list[str] = Field(default_factory=list)
    structured: bool = True

    def render(self) -> str:
        """Render the labelled text block written to the log for this session.

        Every field occupies exactly one line; embedded line breaks are folded
        so a session can never start a new log entry of its own.
        """
        lines = [
            f"Chat Session: {_one_line(self.title)}",
            f"Workspace: {_one_line(self.workspaceId)}",
        ]
        if self.resolvedPath:
            lines.append(f"Workspace Path: {_one_line(self.resolvedPath)}")
        lines.append(f"Source: {_one_line(self.sourcePath)}")
        lines.append("Messages:")
        for index, message in enumerate(self.messages, start=1):
            lines.append(f"{index}. {_one_line(message)}")
        return "\n".join(lines)


class ScanReport(BaseModel):
    storageRoot: Optional[str] = None
    workspaces: int = 0
    sessionsLogged: int = 0
    filesFailed: int = 0
    skipped: bool = False
    reason: str = ""


# ── Live edit events ────────────────────────────────────────────────

class TextChange(BaseModel):
    text: str = ""
    rangeOffset: Optional[int] = None
    rangeLength: Optional[int] = None


class EditEvent(BaseModel):
    documentUri: str
    contentChanges: list[TextChange] = Field(default_factory=list)

    def delta_text(self) -> str:
        return "".join(change.text for change in self.contentChanges)


class Notification(BaseModel):
    timestamp: str
    severity: Severity = "info"
    message: str
    popup: bool = False
