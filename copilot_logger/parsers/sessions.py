"""Normalize persisted chat-session files into NormalizedSession records.

Session files come from the editor's own storage and their schema drifts
between releases, so parsing is permissive: a structured (JSON) document is
mined through ordered lists of alternative keys, and anything that does not
parse is treated as freeform text. ``normalize_session`` never raises.
"""
from __future__ import annotations

import json
import re
from pathlib import PurePath
from typing import Any

from copilot_logger import config
from copilot_logger.models import NormalizedSession

# Key paths are tried in order; the first non-empty string wins.
TITLE_KEYS: tuple[tuple[str, ...], ...] = (
    ("title",),
    ("metadata", "title"),
    ("customTitle",),
)
MESSAGE_LIST_KEYS: tuple[str, ...] = ("messages", "items")
MESSAGE_TEXT_KEYS: tuple[str, ...] = ("text", "content")
WORKSPACE_PATH_KEYS: tuple[tuple[str, ...], ...] = (
    ("workspacePath",),
    ("workspaceFolder",),
    ("metadata", "workspacePath"),
)

_WHITESPACE_RE = re.compile(r"\s+")
_UNTITLED = "Untitled session"


def _lookup(data: dict[str, Any], key_path: tuple[str, ...]) -> Any:
    current: Any = data
    for key in key_path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _first_string(data: dict[str, Any], key_paths: tuple[tuple[str, ...], ...]) -> str | None:
    for key_path in key_paths:
        value = _lookup(data, key_path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def _message_text(item: Any) -> str:
    """Text of one message-like item: a string, or an object with text/content."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in MESSAGE_TEXT_KEYS:
            value = item.get(key)
            if isinstance(value, str):
                return value
            if value is not None:
                return _stringify(value)
    return _stringify(item)


def _structured_messages(data: dict[str, Any]) -> list[str]:
    messages: list[str] = []
    for key in MESSAGE_LIST_KEYS:
        items = data.get(key)
        if isinstance(items, list):
            messages.extend(_message_text(item) for item in items)
    return messages


def _decode(raw: bytes | str) -> str:
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8-sig", errors="replace")


def _parse_structured(text: str) -> dict[str, Any] | None:
    if not text.strip():
        return None
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, list):
        return {"messages": parsed}
    return None


def _freeform_messages(text: str, limit: int) -> list[str]:
    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            lines.append(stripped)
            if len(lines) >= limit:
                break
    return lines


def _clip_messages(messages: list[str], max_messages: int, max_chars: int) -> list[str]:
    return [message[:max_chars] for message in messages[:max_messages]]


def _fallback_title(messages: list[str], source_path: str, max_chars: int) -> str:
    for message in messages:
        collapsed = _WHITESPACE_RE.sub(" ", message).strip()
        if collapsed:
            return collapsed[:max_chars]
    name = PurePath(source_path).name if source_path else ""
    return name or source_path or _UNTITLED


def normalize_session(
    raw: bytes | str,
    workspace_id: str,
    source_path: str,
    *,
    max_messages: int | None = None,
    max_message_chars: int | None = None,
    max_title_chars: int | None = None,
) -> NormalizedSession:
    """Reduce one raw session file to a NormalizedSession.

    Title fallback: explicit title, then the first message (truncated), then
    the source file name. Messages keep file order; the earliest
    ``max_messages`` are retained, each clipped to ``max_message_chars``.
    """
    max_messages = config.MAX_MESSAGES if max_messages is None else max_messages
    max_message_chars = config.MESSAGE_MAX_CHARS if max_message_chars is None else max_message_chars
    max_title_chars = config.TITLE_MAX_CHARS if max_title_chars is None else max_title_chars

    text = _decode(raw)
    data = _parse_structured(text)

    title: str | None = None
    resolved_path: str | None = None
    if data is not None:
        title = _first_string(data, TITLE_KEYS)
        if title:
            title = _WHITESPACE_RE.sub(" ", title)
        resolved_path = _first_string(data, WORKSPACE_PATH_KEYS)
        if resolved_path:
            # Paths keep their spacing; only line breaks are folded.
            resolved_path = " ".join(resolved_path.splitlines())
        messages = _structured_messages(data)
    else:
        messages = _freeform_messages(text, max_messages)

    messages = _clip_messages(messages, max_messages, max_message_chars)
    if title:
        title = title[:max_title_chars]
    else:
        title = _fallback_title(messages, source_path, max_title_chars)

    return NormalizedSession(
        title=title,
        workspaceId=workspace_id,
        resolvedPath=resolved_path,
        sourcePath=source_path,
        messages=messages,
        structured=data is not None,
    )

