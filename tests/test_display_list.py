"""Tests for the staged/unstaged display-list projection and row walking."""

from __future__ import annotations

import unittest

from lazystage.display_list import (
    STAGED_LABEL,
    UNSTAGED_LABEL,
    FileRow,
    SectionHeader,
    build_status_display_list,
    first_file_row_index,
    nearest_file_row_index,
    next_file_row_index,
    selected_file_row,
)
from lazystage.git.models import ChangeKind, FileEntry


def _entry(path: str, kind: ChangeKind = ChangeKind.MODIFIED) -> FileEntry:
    return FileEntry(path, kind)


class BuildStatusDisplayListTests(unittest.TestCase):
    def test_headers_then_rows_in_input_order(self) -> None:
        staged = [_entry("b.txt", ChangeKind.ADDED)]
        unstaged = [_entry("c.txt"), _entry("a.txt", ChangeKind.UNTRACKED)]

        items = build_status_display_list(staged, unstaged)

        self.assertEqual(
            items,
            [
                SectionHeader(UNSTAGED_LABEL, 2, 2),
                FileRow(unstaged[0], staged=False),
                FileRow(unstaged[1], staged=False),
                SectionHeader(STAGED_LABEL, 1, 1),
                FileRow(staged[0], staged=True),
            ],
        )

    def test_empty_collections_still_have_both_headers(self) -> None:
        items = build_status_display_list([], [])
        self.assertEqual(items, [SectionHeader(UNSTAGED_LABEL, 0, 0), SectionHeader(STAGED_LABEL, 0, 0)])
        self.assertIsNone(first_file_row_index(items))

    def test_builder_is_idempotent(self) -> None:
        staged = [_entry("x"), _entry("y")]
        unstaged = [_entry("z")]
        self.assertEqual(
            build_status_display_list(staged, unstaged),
            build_status_display_list(staged, unstaged),
        )

    def test_row_counts_match_collections(self) -> None:
        staged = [_entry(f"s{i}") for i in range(3)]
        unstaged = [_entry(f"u{i}") for i in range(5)]
        items = build_status_display_list(staged, unstaged)

        rows = [item for item in items if isinstance(item, FileRow)]
        self.assertEqual(sum(1 for row in rows if row.staged), 3)
        self.assertEqual(sum(1 for row in rows if not row.staged), 5)
        self.assertEqual(len(items), 3 + 5 + 2)

    def test_query_filters_rows_but_headers_keep_totals(self) -> None:
        staged = [_entry("src/App.py"), _entry("docs/guide.md")]
        unstaged = [_entry("README.md"), _entry("src/util.py", ChangeKind.UNTRACKED)]

        items = build_status_display_list(staged, unstaged, query="SRC")

        self.assertEqual(
            items,
            [
                SectionHeader(UNSTAGED_LABEL, 1, 2),
                FileRow(unstaged[1], staged=False),
                SectionHeader(STAGED_LABEL, 1, 2),
                FileRow(staged[0], staged=True),
            ],
        )
        self.assertEqual(build_status_display_list(staged, unstaged, query=""), build_status_display_list(staged, unstaged))

    def test_query_without_matches_leaves_only_headers(self) -> None:
        items = build_status_display_list([_entry("a")], [_entry("b")], query="zzz")
        self.assertEqual(items, [SectionHeader(UNSTAGED_LABEL, 0, 1), SectionHeader(STAGED_LABEL, 0, 1)])
        self.assertIsNone(first_file_row_index(items))


class FileRowWalkTests(unittest.TestCase):
    def setUp(self) -> None:
        # 0 header, 1 u1, 2 header, 3 s1, 4 s2
        self.items = build_status_display_list([_entry("s1"), _entry("s2")], [_entry("u1")])

    def test_first_file_row_skips_header(self) -> None:
        self.assertEqual(first_file_row_index(self.items), 1)

    def test_next_row_skips_section_header(self) -> None:
        self.assertEqual(next_file_row_index(self.items, 1, 1), 3)
        self.assertEqual(next_file_row_index(self.items, 3, -1), 1)

    def test_walk_stops_at_bounds(self) -> None:
        self.assertIsNone(next_file_row_index(self.items, 4, 1))
        self.assertIsNone(next_file_row_index(self.items, 1, -1))

    def test_large_step_lands_on_last_row(self) -> None:
        self.assertEqual(next_file_row_index(self.items, 1, 100), 4)
        self.assertEqual(next_file_row_index(self.items, 4, -100), 1)

    def test_nearest_row_prefers_forward_then_backward(self) -> None:
        self.assertEqual(nearest_file_row_index(self.items, 2), 3)
        self.assertEqual(nearest_file_row_index(self.items, 0), 1)
        self.assertEqual(nearest_file_row_index(self.items, 99), 4)

        only_unstaged = build_status_display_list([], [_entry("u1")])
        self.assertEqual(nearest_file_row_index(only_unstaged, 2), 1)

    def test_selected_file_row_rejects_headers_and_out_of_range(self) -> None:
        self.assertIsNone(selected_file_row(self.items, 0))
        self.assertIsNone(selected_file_row(self.items, None))
        self.assertIsNone(selected_file_row(self.items, 42))
        self.assertEqual(selected_file_row(self.items, 3), FileRow(_entry("s1"), staged=True))


if __name__ == "__main__":
    unittest.main()
