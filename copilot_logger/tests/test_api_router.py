import json
import tempfile
import types
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi import HTTPException

from copilot_logger.models import EditEvent, TextChange
from copilot_logger.notifications import HostNotificationSink
from copilot_logger.routers import api as api_router
from copilot_logger.runtime import ACTIVATION_MESSAGE, build_runtime


class _Timer:
    def __init__(self, callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _ManualScheduler:
    def __init__(self) -> None:
        self.timers: list[_Timer] = []

    def call_later(self, delay_seconds: float, callback) -> _Timer:
        timer = _Timer(callback)
        self.timers.append(timer)
        return timer


class ApiRouterTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tmp = Path(tmpdir.name)
        self.store = self.tmp / "workspaceStorage"
        (self.tmp / "workspace" / "logs").mkdir(parents=True)
        self.runtime = build_runtime(
            log_file_path=self.tmp / "workspace" / "logs" / "copilot-activity-log.txt",
            storage_root=self.store,
            workspace_dir=self.tmp / "workspace",
            scheduler=_ManualScheduler(),
            sink=HostNotificationSink(log_to_console=False, show_popups=False),
        )
        self.runtime.activate()

    def _request(self, runtime=None):
        return types.SimpleNamespace(
            app=types.SimpleNamespace(state=types.SimpleNamespace(runtime=runtime or self.runtime))
        )

    def _log_text(self) -> str:
        return self.runtime.writer.log_file_path.read_text(encoding="utf-8")

    async def test_missing_runtime_is_503(self) -> None:
        request = types.SimpleNamespace(app=types.SimpleNamespace(state=types.SimpleNamespace()))
        with self.assertRaises(HTTPException) as ctx:
            await api_router.import_chat_sessions(request)
        self.assertEqual(ctx.exception.status_code, 503)

    async def test_activation_is_logged(self) -> None:
        self.assertIn(ACTIVATION_MESSAGE, self._log_text())
        self.assertTrue(self.runtime.detector.active)
        self.assertIsNotNone(self.runtime.watcher)

    async def test_create_log_resources_is_idempotent(self) -> None:
        first = await api_router.create_log_resources(self._request())
        second = await api_router.create_log_resources(self._request())
        self.assertTrue(first.ready)
        self.assertTrue(second.ready)
        self.assertIn(ACTIVATION_MESSAGE, self._log_text())
        messages = [n.message for n in self.runtime.sink.recent()]
        self.assertTrue(any(m.startswith("Log resources created at:") for m in messages))

    async def test_import_chat_sessions_appends_rendered_sessions(self) -> None:
        chat_dir = self.store / "ws1" / "chatSessions"
        chat_dir.mkdir(parents=True)
        (chat_dir / "s1.json").write_text(json.dumps({"title": "Fix tests", "messages": ["why?"]}), encoding="utf-8")

        report = await api_router.import_chat_sessions(self._request())

        self.assertEqual(report.sessionsLogged, 1)
        self.assertIn("Chat Session: Fix tests\nWorkspace: ws1", self._log_text())
        self.assertEqual(api_router.get_last_import(self._request()).sessionsLogged, 1)

    async def test_import_with_missing_store_warns(self) -> None:
        report = await api_router.import_chat_sessions(self._request())
        self.assertTrue(report.skipped)
        severities = [n.severity for n in self.runtime.sink.recent()]
        self.assertIn("warning", severities)

    async def test_published_edit_event_is_detected(self) -> None:
        event = EditEvent(
            documentUri="file:///work/notes.md",
            contentChanges=[TextChange(text="Copilot suggested X")],
        )
        accepted = await api_router.publish_edit_event(event, self._request())
        self.assertEqual(accepted.subscribers, 1)
        self.assertIn("Detected Copilot interaction: Copilot suggested X", self._log_text())
        self.assertEqual(self.runtime.aggregator.pending, ["Copilot suggested X"])

    async def test_log_head_requires_sidebar_flag(self) -> None:
        with patch.object(api_router.config, "ENABLE_SIDEBAR", False):
            with self.assertRaises(HTTPException) as ctx:
                api_router.get_log_head(self._request(), lines=5)
        self.assertEqual(ctx.exception.status_code, 404)

        with patch.object(api_router.config, "ENABLE_SIDEBAR", True):
            head = api_router.get_log_head(self._request(), lines=5)
        self.assertEqual(len(head.lines), 1)
        self.assertTrue(head.lines[0].endswith(ACTIVATION_MESSAGE))

    async def test_notifications_are_listed(self) -> None:
        notifications = api_router.list_notifications(self._request(), limit=10)
        self.assertEqual([n.message for n in notifications], [ACTIVATION_MESSAGE])

    async def test_chat_exports_lists_file_names(self) -> None:
        export_dir = self.tmp / "CopilotChats"
        export_dir.mkdir()
        (export_dir / "chat-1.json").write_text("{}", encoding="utf-8")
        (export_dir / "nested").mkdir()

        with patch.object(api_router.config, "ENABLE_CHAT_WEBVIEW", True), patch.object(
            api_router.config, "CHAT_EXPORT_DIR", export_dir
        ):
            listing = api_router.get_chat_exports()
        self.assertEqual(listing.files, ["chat-1.json"])

        with patch.object(api_router.config, "ENABLE_CHAT_WEBVIEW", True), patch.object(
            api_router.config, "CHAT_EXPORT_DIR", None
        ):
            self.assertEqual(api_router.get_chat_exports().files, [])

        with patch.object(api_router.config, "ENABLE_CHAT_WEBVIEW", False):
            with self.assertRaises(HTTPException):
                api_router.get_chat_exports()

    async def test_shutdown_disposes_detector(self) -> None:
        await self.runtime.shutdown()
        self.assertFalse(self.runtime.detector.active)
        self.assertEqual(self.runtime.hub.subscriber_count, 0)

    async def test_import_after_shutdown_writes_nothing(self) -> None:
        session = self.store / "ws" / "chatSessions" / "a.json"
        session.parent.mkdir(parents=True)
        session.write_text(json.dumps({"title": "Late"}), encoding="utf-8")

        await self.runtime.shutdown()
        report = self.runtime.import_sessions()

        self.assertEqual(report.sessionsLogged, 0)
        self.assertEqual(report.reason, "cancelled")
        self.assertNotIn("Chat Session: Late", self._log_text())


if __name__ == "__main__":
    unittest.main()
