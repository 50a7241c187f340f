"""Copilot Logger Configuration."""
from __future__ import annotations

import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str) -> Path | None:
    value = (os.getenv(name) or "").strip()
    if not value:
        return None
    return Path(value).expanduser()


LOG_FILE_NAME = "copilot-activity-log.txt"


def resolve_log_file_path(workspace_dir: Path | None, override: Path | None = None) -> Path:
    """Pick the log file location.

    An explicit override wins; otherwise the log lives in the workspace's
    ``logs/`` folder, falling back to ``~/.copilot-chats`` with no workspace.
    """
    if override is not None:
        return override
    if workspace_dir is not None:
        return workspace_dir / "logs" / LOG_FILE_NAME
    return Path.home() / ".copilot-chats" / LOG_FILE_NAME


def _default_chat_export_dir() -> Path | None:
    appdata = (os.getenv("APPDATA") or "").strip()
    if not appdata:
        return None
    return Path(appdata) / "CopilotChats"


# Workspace + log artifact
WORKSPACE_DIR = _env_path("COPILOT_LOGGER_WORKSPACE_DIR")
LOG_FILE_PATH = resolve_log_file_path(WORKSPACE_DIR, _env_path("COPILOT_LOGGER_LOG_FILE"))

# Live detection
DETECTION_KEYWORD = os.getenv("COPILOT_LOGGER_KEYWORD", "copilot")
DEBOUNCE_MS = _env_int("COPILOT_LOGGER_DEBOUNCE_MS", 2000)
SNIPPET_MAX_CHARS = _env_int("COPILOT_LOGGER_SNIPPET_MAX_CHARS", 200)
NOTIFICATION_QUEUE_MAX = _env_int("COPILOT_LOGGER_NOTIFICATION_QUEUE_MAX", 50)

# Session normalization limits
TITLE_MAX_CHARS = 120
MESSAGE_MAX_CHARS = _env_int("COPILOT_LOGGER_MESSAGE_MAX_CHARS", 1000)
MAX_MESSAGES = _env_int("COPILOT_LOGGER_MAX_MESSAGES", 50)

# Session store
STORAGE_ROOT_OVERRIDE = _env_path("COPILOT_LOGGER_STORAGE_ROOT")
STARTUP_IMPORT_SESSIONS = _env_bool("COPILOT_LOGGER_STARTUP_IMPORT", True)

# Host surfaces
CHAT_EXPORT_DIR = _env_path("COPILOT_LOGGER_CHAT_EXPORT_DIR") or _default_chat_export_dir()
SIDEBAR_MAX_LINES = _env_int("COPILOT_LOGGER_SIDEBAR_MAX_LINES", 20)
NOTIFICATION_HISTORY_MAX = _env_int("COPILOT_LOGGER_NOTIFICATION_HISTORY_MAX", 200)
SHOW_POPUPS = _env_bool("SHOW_POPUPS", False)
LOG_TO_CONSOLE = _env_bool("LOG_TO_CONSOLE", True)

# Feature flags
ENABLE_LOGGING = _env_bool("ENABLE_LOGGING", True)
ENABLE_SIDEBAR = _env_bool("ENABLE_SIDEBAR", False)
ENABLE_CHAT_WEBVIEW = _env_bool("ENABLE_CHAT_WEBVIEW", False)

# Workspace file watcher
WATCH_SUFFIXES = (
    ".md", ".txt", ".py", ".ts", ".tsx", ".js", ".jsx", ".json",
    ".go", ".rs", ".java", ".cs", ".c", ".cpp", ".h", ".rb", ".sh",
)
WATCH_MAX_BYTES = _env_int("COPILOT_LOGGER_WATCH_MAX_BYTES", 1024 * 1024)

# Observability
OTEL_ENABLED = _env_bool("COPILOT_LOGGER_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("COPILOT_LOGGER_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("COPILOT_LOGGER_OTEL_SERVICE_NAME", "copilot-logger")
PROM_PORT = _env_int("COPILOT_LOGGER_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("COPILOT_LOGGER_HOST", "127.0.0.1")
PORT = int(os.getenv("COPILOT_LOGGER_PORT", "8765"))
