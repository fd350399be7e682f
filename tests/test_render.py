from __future__ import annotations

import unittest
from unittest import mock
from pathlib import Path

from lazystage.ansi import ANSI_ESCAPE_RE, display_width, fit_ansi_line
from lazystage.config import AppConfig
from lazystage.diff_model import parse_hunks
from lazystage.git.models import ChangeKind, CommitInfo, FileEntry, StatusSnapshot
from lazystage.highlight import colorize_diff_lines, diff_display_lines
from lazystage.render import build_frame, build_frame_rows, build_status_line, clear_styled_diff_cache
from lazystage.state import (
    CommitPopup,
    ErrorPopup,
    HelpPopup,
    PushFailed,
    PushRunning,
    RemotePopup,
    View,
    initial_state,
)


def _plain(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


class RenderBehaviorTests(unittest.TestCase):
    def setUp(self) -> None:
        snapshot = StatusSnapshot(
            staged=(FileEntry("src/app.py", ChangeKind.MODIFIED),),
            unstaged=(FileEntry("notes.txt", ChangeKind.UNTRACKED),),
        )
        self.state = initial_state(Path("/work/demo"), snapshot, width=100, height=12)
        self.state.diff_path = "notes.txt"
        self.state.diff_hunks = parse_hunks("@@ -0,0 +1,2 @@\n+hello\n+world\n")
        self.config = AppConfig(no_color=True, log_path=Path("/tmp/lazystage-test.log"))
        clear_styled_diff_cache()

    def rows(self) -> list[str]:
        return [_plain(row) for row in build_frame_rows(self.state, self.config)]

    def test_frame_has_one_row_per_terminal_line(self) -> None:
        rows = build_frame_rows(self.state, self.config)
        self.assertEqual(len(rows), 12)
        for row in rows:
            self.assertLessEqual(display_width(row), 100)

    def test_status_view_shows_sections_badges_and_diff(self) -> None:
        rows = self.rows()
        self.assertIn("Status", rows[0])
        self.assertIn("demo", rows[0])
        self.assertIn("Diff: notes.txt (unstaged)", rows[1])
        body = "\n".join(rows[2:-1])
        self.assertIn("Unstaged changes (1)", body)
        self.assertIn("? notes.txt", body)
        self.assertIn("Staged changes (1)", body)
        self.assertIn("M src/app.py", body)
        self.assertIn("@@ -0,0 +1,2 @@", body)
        self.assertIn("+hello", body)

    def test_selected_row_is_reverse_video_when_files_focused(self) -> None:
        raw = build_frame_rows(self.state, self.config)
        # Item 1 (notes.txt) is drawn on screen row 4 (index 3).
        self.assertIn("\033[7m", raw[3])
        self.assertNotIn("\033[7m", raw[5])

    def test_status_bar_reports_push_progress_and_failure(self) -> None:
        self.state.push = PushRunning(operation_id=1, remote="origin")
        self.state.spinner_frame = 1
        self.assertIn("/ pushing to origin", self.rows()[-1])

        self.state.push = PushFailed(summary="Rejected", finished_at=1.0, detail="non-fast-forward")
        self.assertIn("push failed: Rejected (non-fast-forward)", self.rows()[-1])
        self.assertTrue(self.rows()[-1].rstrip().endswith("? Help"))

    def test_log_view_lists_commits(self) -> None:
        self.state.view = View.LOG
        self.state.log_entries = [CommitInfo("abc1234", "fix parser", "Ada", "2024-05-01 09:30")]
        rows = self.rows()
        self.assertIn("Commits (1)", rows[1])
        self.assertIn("abc1234 2024-05-01 09:30 Ada", rows[2])
        self.assertIn("fix parser", rows[2])

    def test_popups_are_drawn_over_the_frame(self) -> None:
        self.state.popup = HelpPopup()
        self.assertIn("lazystage help", _plain(build_frame(self.state, self.config)))

        self.state.popup = CommitPopup("wip message")
        frame = _plain(build_frame(self.state, self.config))
        self.assertIn("Commit message", frame)
        self.assertIn("wip message", frame)

        self.state.popup = ErrorPopup("Stage a.txt failed: boom")
        self.assertIn("Stage a.txt failed: boom", _plain(build_frame(self.state, self.config)))

    def test_repaints_reuse_the_highlighted_diff(self) -> None:
        config = AppConfig(style="monokai", log_path=Path("/tmp/lazystage-test.log"))
        with mock.patch("lazystage.render.colorize_diff_lines", wraps=colorize_diff_lines) as colorize:
            build_frame_rows(self.state, config)
            self.state.spinner_frame += 1
            build_frame_rows(self.state, config)
            self.assertEqual(colorize.call_count, 1)

            self.state.diff_hunks = parse_hunks("@@ -1 +1 @@\n-a\n+b\n")
            rows = [_plain(row) for row in build_frame_rows(self.state, config)]
            self.assertEqual(colorize.call_count, 2)
        self.assertIn("+b", "\n".join(rows))

    def test_filter_shows_matches_out_of_totals(self) -> None:
        self.state.set_filter("app")
        rows = self.rows()
        body = "\n".join(rows[2:-1])
        self.assertIn("Unstaged changes (0/1)", body)
        self.assertIn("Staged changes (1)", body)
        self.assertNotIn("notes.txt", body)
        self.assertIn("filter: app", rows[-1])

        self.state.search_active = True
        self.assertIn("/app", self.rows()[-1])

    def test_remote_prompt_shows_remote_and_typed_url(self) -> None:
        self.state.popup = RemotePopup("origin", "git@example.com:demo.git")
        frame = _plain(build_frame(self.state, self.config))
        self.assertIn("Add remote", frame)
        self.assertIn("No remote 'origin'. Enter its URL:", frame)
        self.assertIn("git@example.com:demo.git", frame)

    def test_control_bytes_in_paths_are_escaped(self) -> None:
        self.state.set_collections([], [FileEntry("evil\x1b[2Jname", ChangeKind.UNTRACKED)])
        body = "\n".join(build_frame_rows(self.state, self.config))
        self.assertNotIn("\x1b[2J", body)
        self.assertIn("evil\\x1b[2Jname", _plain(body))


class RenderHelperTests(unittest.TestCase):
    def test_fit_ansi_line_pads_and_clips_by_display_width(self) -> None:
        self.assertEqual(fit_ansi_line("abc", 5), "abc  ")
        self.assertEqual(_plain(fit_ansi_line("\033[31mabcdef\033[0m", 4)), "abcd")
        self.assertEqual(display_width(fit_ansi_line("日本語", 5)), 5)

    def test_build_status_line_keeps_right_text(self) -> None:
        line = build_status_line("left side", 30)
        self.assertEqual(len(line), 29)
        self.assertTrue(line.startswith("left side"))
        self.assertTrue(line.endswith("│ ? Help"))

    def test_colorized_diff_keeps_one_row_per_line(self) -> None:
        hunks = parse_hunks("@@ -1,2 +1,2 @@\n-old\n+new\n context\n")
        plain = diff_display_lines(hunks)
        self.assertEqual(plain, ["@@ -1,2 +1,2 @@", "-old", "+new", " context"])
        styled = colorize_diff_lines(plain, style="monokai")
        self.assertEqual(len(styled), len(plain))
        self.assertEqual([_plain(line) for line in styled], plain)
        self.assertIn("\033[", "".join(styled))

    def test_no_color_returns_plain_rows(self) -> None:
        self.assertEqual(colorize_diff_lines(["+a"], no_color=True), ["+a"])

    def test_unknown_style_falls_back_to_default(self) -> None:
        styled = colorize_diff_lines(["+a"], style="no-such-style")
        self.assertEqual([_plain(line) for line in styled], ["+a"])


if __name__ == "__main__":
    unittest.main()
