"""Screen geometry shared by the renderer and mouse hit-testing.

Row 1 holds the view tabs, the last row the status bar, and the rows in
between the panels. In the Status view the Files panel takes the left
columns, then a one-column separator, then the Diff panel.
"""

from __future__ import annotations

from dataclasses import dataclass

from .state import View

MIN_FILES_WIDTH = 16
MAX_FILES_WIDTH = 60
TAB_LABELS: tuple[tuple[View, str], ...] = ((View.STATUS, " Status "), (View.LOG, " Log "))


@dataclass(frozen=True)
class ScreenLayout:
    width: int
    height: int
    files_width: int

    @property
    def content_top(self) -> int:
        """1-based row of the first panel row (below the panel title)."""
        return 3

    @property
    def list_rows(self) -> int:
        return max(1, self.height - 3)

    @property
    def diff_col(self) -> int:
        """1-based column where the Diff panel starts."""
        return self.files_width + 2

    @property
    def diff_width(self) -> int:
        return max(1, self.width - self.files_width - 1)

    def content_index(self, row: int) -> int | None:
        """Map a 1-based screen row to a 0-based visible list offset."""
        offset = row - self.content_top
        if 0 <= offset < self.list_rows:
            return offset
        return None

    def in_files_pane(self, col: int) -> bool:
        return 1 <= col <= self.files_width

    def in_diff_pane(self, col: int) -> bool:
        return col >= self.diff_col

    def tab_at(self, col: int) -> View | None:
        start = 1
        for view, label in TAB_LABELS:
            end = start + len(label)
            if start <= col < end:
                return view
            start = end + 1
        return None


def clamp_files_width(width: int) -> int:
    if width < 2 * MIN_FILES_WIDTH:
        return max(1, width // 2)
    return max(MIN_FILES_WIDTH, min(MAX_FILES_WIDTH, (width * 2) // 5))


def compute_layout(width: int, height: int) -> ScreenLayout:
    width = max(1, width)
    height = max(1, height)
    return ScreenLayout(width=width, height=height, files_width=clamp_files_width(width))
