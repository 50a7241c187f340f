import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

from copilot_logger import config
from copilot_logger.date_utils import format_timestamp


class ConfigTests(unittest.TestCase):
    def test_log_file_prefers_override_then_workspace(self) -> None:
        self.assertEqual(
            config.resolve_log_file_path(Path("/ws"), Path("/custom/log.txt")),
            Path("/custom/log.txt"),
        )
        self.assertEqual(
            config.resolve_log_file_path(Path("/ws")),
            Path("/ws/logs/copilot-activity-log.txt"),
        )

    def test_log_file_falls_back_to_home(self) -> None:
        with patch.object(Path, "home", return_value=Path("/home/tester")):
            self.assertEqual(
                config.resolve_log_file_path(None),
                Path("/home/tester/.copilot-chats/copilot-activity-log.txt"),
            )

    def test_env_helpers(self) -> None:
        with patch.dict("os.environ", {"X_FLAG": "Yes", "X_NUM": "12", "X_BAD": "twelve"}):
            self.assertTrue(config._env_bool("X_FLAG"))
            self.assertFalse(config._env_bool("X_MISSING"))
            self.assertEqual(config._env_int("X_NUM", 1), 12)
            self.assertEqual(config._env_int("X_BAD", 7), 7)


class TimestampTests(unittest.TestCase):
    def test_timestamps_are_utc_with_milliseconds(self) -> None:
        value = datetime(2026, 2, 16, 12, 30, 5, 250000, tzinfo=timezone(timedelta(hours=2)))
        self.assertEqual(format_timestamp(value), "2026-02-16T10:30:05.250Z")
        self.assertEqual(format_timestamp(datetime(2026, 1, 1)), "2026-01-01T00:00:00.000Z")


if __name__ == "__main__":
    unittest.main()
