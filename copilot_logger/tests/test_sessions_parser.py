import json
import unittest

from copilot_logger.models import NormalizedSession
from copilot_logger.parsers.sessions import normalize_session


def _raw(payload) -> bytes:
    return json.dumps(payload).encode("utf-8")


class SessionNormalizerTests(unittest.TestCase):
    def test_title_and_messages_are_taken_from_structured_input(self) -> None:
        session = normalize_session(_raw({"title": "T", "messages": ["a", "b"]}), "ws1", "/store/ws1/chatSessions/s.json")
        self.assertEqual(session.title, "T")
        self.assertEqual(session.messages, ["a", "b"])
        self.assertEqual(session.workspaceId, "ws1")
        self.assertEqual(session.sourcePath, "/store/ws1/chatSessions/s.json")
        self.assertTrue(session.structured)

    def test_title_falls_back_to_first_message(self) -> None:
        session = normalize_session(_raw({"messages": ["hello world"]}), "ws", "s.json")
        self.assertTrue("hello world".startswith(session.title))
        self.assertEqual(session.title, "hello world")

    def test_fallback_title_is_truncated_and_whitespace_collapsed(self) -> None:
        long_message = "  first\n\nline   " + "x" * 300
        session = normalize_session(_raw({"messages": [long_message]}), "ws", "s.json")
        self.assertEqual(len(session.title), 120)
        self.assertTrue(session.title.startswith("first line x"))

    def test_title_falls_back_to_file_name_without_messages(self) -> None:
        session = normalize_session(_raw({"messages": []}), "ws", "/store/ws/chatSessions/abc.json")
        self.assertEqual(session.title, "abc.json")

    def test_title_key_priority(self) -> None:
        payload = {"customTitle": "custom", "metadata": {"title": "meta"}, "title": "top"}
        self.assertEqual(normalize_session(_raw(payload), "ws", "s.json").title, "top")
        del payload["title"]
        self.assertEqual(normalize_session(_raw(payload), "ws", "s.json").title, "meta")
        del payload["metadata"]
        self.assertEqual(normalize_session(_raw(payload), "ws", "s.json").title, "custom")

    def test_blank_title_is_ignored(self) -> None:
        session = normalize_session(_raw({"title": "   ", "messages": ["real"]}), "ws", "s.json")
        self.assertEqual(session.title, "real")

    def test_message_items_accept_strings_objects_and_other_values(self) -> None:
        payload = {
            "messages": [
                "plain",
                {"text": "from text"},
                {"content": "from content"},
                {"role": "user"},
                {"content": [{"type": "text", "text": "nested"}]},
                42,
            ]
        }
        session = normalize_session(_raw(payload), "ws", "s.json")
        self.assertEqual(session.messages[:3], ["plain", "from text", "from content"])
        self.assertEqual(json.loads(session.messages[3]), {"role": "user"})
        self.assertEqual(json.loads(session.messages[4]), [{"type": "text", "text": "nested"}])
        self.assertEqual(session.messages[5], "42")

    def test_messages_and_items_are_both_collected_in_order(self) -> None:
        session = normalize_session(_raw({"items": ["i1"], "messages": ["m1", "m2"]}), "ws", "s.json")
        self.assertEqual(session.messages, ["m1", "m2", "i1"])

    def test_message_count_and_length_are_clipped(self) -> None:
        messages = [f"{i:03d}" + "y" * 2000 for i in range(60)]
        session = normalize_session(_raw({"title": "T", "messages": messages}), "ws", "s.json")
        self.assertEqual(len(session.messages), 50)
        self.assertTrue(all(len(m) == 1000 for m in session.messages))
        self.assertTrue(session.messages[0].startswith("000"))
        self.assertTrue(session.messages[-1].startswith("049"))

    def test_workspace_path_is_resolved_from_known_keys(self) -> None:
        first = normalize_session(_raw({"workspacePath": "/a", "workspaceFolder": "/b"}), "ws", "s.json")
        self.assertEqual(first.resolvedPath, "/a")
        second = normalize_session(_raw({"metadata": {"workspacePath": "/c"}}), "ws", "s.json")
        self.assertEqual(second.resolvedPath, "/c")
        third = normalize_session(_raw({"title": "T"}), "ws", "s.json")
        self.assertIsNone(third.resolvedPath)

    def test_freeform_text_uses_first_non_empty_lines(self) -> None:
        raw = b"first line\n\n   \nsecond line\r\nthird line\n"
        session = normalize_session(raw, "ws", "notes.txt")
        self.assertFalse(session.structured)
        self.assertEqual(session.messages, ["first line", "second line", "third line"])
        self.assertEqual(session.title, "first line")

    def test_freeform_line_count_is_capped(self) -> None:
        raw = "\n".join(f"line {i}" for i in range(80)).encode("utf-8")
        session = normalize_session(raw, "ws", "notes.txt")
        self.assertEqual(len(session.messages), 50)
        self.assertEqual(session.messages[-1], "line 49")

    def test_empty_and_whitespace_files_keep_the_file_name(self) -> None:
        for raw in (b"", b"   \n\t\n"):
            session = normalize_session(raw, "ws", "/store/ws/chatSessions/empty.json")
            self.assertEqual(session.messages, [])
            self.assertEqual(session.title, "empty.json")

    def test_never_raises_on_garbage(self) -> None:
        samples = [
            b"\xff\xfe\x00\x81garbage",
            b"{not json",
            b"null",
            b"17",
            b'"just a string"',
            b"[" * 100000,
            b'{"title": 5, "messages": "nope", "metadata": []}',
            b'{"messages": [null, {"text": null}]}',
            b'{"messages": ["\\ud800 lone surrogate"]}',
        ]
        for raw in samples:
            with self.subTest(raw=raw[:20]):
                session = normalize_session(raw, "ws", "/store/ws/chatSessions/odd.json")
                self.assertTrue(session.title)
                session.render()

    def test_top_level_list_is_treated_as_messages(self) -> None:
        session = normalize_session(_raw(["one", {"text": "two"}]), "ws", "s.json")
        self.assertEqual(session.messages, ["one", "two"])

    def test_render_has_fixed_labelled_layout(self) -> None:
        session = normalize_session(
            _raw({"title": "Refactor", "workspacePath": "/src/app", "messages": ["a", "b\nc"]}),
            "abc123",
            "/store/abc123/chatSessions/s1.json",
        )
        self.assertEqual(
            session.render(),
            "\n".join(
                [
                    "Chat Session: Refactor",
                    "Workspace: abc123",
                    "Workspace Path: /src/app",
                    "Source: /store/abc123/chatSessions/s1.json",
                    "Messages:",
                    "1. a",
                    "2. b c",
                ]
            ),
        )

    def test_multiline_title_and_workspace_path_stay_on_one_line(self) -> None:
        payload = {
            "title": "Real\n\n[2020-01-01T00:00:00.000Z] second entry",
            "workspacePath": "/a  b\nWorkspace: other",
            "messages": ["m"],
        }
        session = normalize_session(_raw(payload), "ws", "s.json")
        self.assertEqual(session.title, "Real [2020-01-01T00:00:00.000Z] second entry")
        self.assertEqual(session.resolvedPath, "/a  b Workspace: other")

        lines = session.render().split("\n")
        self.assertEqual(lines[0], "Chat Session: Real [2020-01-01T00:00:00.000Z] second entry")
        self.assertEqual(lines[2], "Workspace Path: /a  b Workspace: other")
        self.assertEqual(len(lines), 6)

    def test_render_folds_line_breaks_in_every_field(self) -> None:
        session = NormalizedSession(
            title="one\ntwo",
            workspaceId="ws\n1",
            resolvedPath="/p\r\nq",
            sourcePath="s\n\n.json",
            messages=["x\n\ny"],
        )
        self.assertEqual(
            session.render().split("\n"),
            [
                "Chat Session: one two",
                "Workspace: ws 1",
                "Workspace Path: /p q",
                "Source: s  .json",
                "Messages:",
                "1. x  y",
            ],
        )

    def test_render_omits_absent_workspace_path(self) -> None:
        rendered = normalize_session(_raw({"title": "T"}), "ws", "s.json").render()
        self.assertNotIn("Workspace Path:", rendered)
        self.assertTrue(rendered.endswith("Messages:"))


if __name__ == "__main__":
    unittest.main()
