"""Copilot Logger FastAPI service: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import asyncio

from fastapi import FastAPI

from copilot_logger import config
from copilot_logger.routers.api import (
    log_router,
    sessions_router,
    events_router,
    notifications_router,
    chat_exports_router,
)
from copilot_logger.runtime import build_runtime
from copilot_logger.observability import initialize as initialize_observability, shutdown as shutdown_observability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("copilot_logger")


async def _run_startup_import(runtime) -> None:
    try:
        await asyncio.to_thread(runtime.import_sessions)
    except Exception as exc:
        logger.exception("Startup chat session import failed")
        runtime.sink.warning(f"Chat session scanner failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Copilot Logger starting up")
    initialize_observability(app)

    runtime = None
    if config.ENABLE_LOGGING:
        runtime = build_runtime()
        runtime.activate()
        app.state.runtime = runtime

        if config.STARTUP_IMPORT_SESSIONS:
            # Keep reference to wait for it on shutdown.
            app.state.import_task = asyncio.create_task(_run_startup_import(runtime))

        await runtime.start_watcher()
    else:
        logger.info("Logging disabled (ENABLE_LOGGING=false)")

    yield

    logger.info("Copilot Logger shutting down")

    if hasattr(app.state, "import_task"):
        # The worker thread cannot be cancelled; stop it between files and wait.
        runtime.import_stop.set()
        await app.state.import_task

    if runtime is not None:
        await runtime.shutdown()
    shutdown_observability(app)


app = FastAPI(
    title="Copilot Logger API",
    description="Captures assistant activity into a durable, human-readable log",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(log_router)
app.include_router(sessions_router)
app.include_router(events_router)
app.include_router(notifications_router)
app.include_router(chat_exports_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    runtime = getattr(app.state, "runtime", None)
    watcher = runtime.watcher if runtime else None
    return {
        "status": "ok",
        "logging": "enabled" if runtime else "disabled",
        "detector": "listening" if runtime and runtime.detector.active else "stopped",
        "watcher": "running" if watcher and watcher.is_running else "stopped",
    }
