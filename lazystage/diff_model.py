"""Structural decomposition of one file's unified diff into hunks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .errors import DiffParseError

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_PREAMBLE_PREFIXES = (
    "diff --git ",
    "index ",
    "--- ",
    "+++ ",
    "new file mode ",
    "deleted file mode ",
    "old mode ",
    "new mode ",
    "similarity index ",
    "dissimilarity index ",
    "rename from ",
    "rename to ",
    "copy from ",
    "copy to ",
    "Binary files ",
)
_NO_NEWLINE_MARKER = "\\"


class DiffLineKind(Enum):
    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"

    @property
    def marker(self) -> str:
        return _MARKERS[self]


_MARKERS = {
    DiffLineKind.CONTEXT: " ",
    DiffLineKind.ADDED: "+",
    DiffLineKind.REMOVED: "-",
}
_KINDS_BY_MARKER = {marker: kind for kind, marker in _MARKERS.items()}


@dataclass(frozen=True)
class DiffLine:
    kind: DiffLineKind
    text: str


@dataclass(frozen=True)
class DiffHunk:
    """One ``@@`` block: its header line and marker-stripped body lines."""

    header: str
    lines: tuple[DiffLine, ...]
    old_start: int = 0
    old_count: int = 0
    new_start: int = 0
    new_count: int = 0

    @property
    def added_count(self) -> int:
        return sum(1 for line in self.lines if line.kind is DiffLineKind.ADDED)

    @property
    def removed_count(self) -> int:
        return sum(1 for line in self.lines if line.kind is DiffLineKind.REMOVED)


def _is_preamble(line: str) -> bool:
    return line.startswith(_PREAMBLE_PREFIXES)


def parse_hunks(diff_text: str) -> list[DiffHunk]:
    """Parse unified diff text into ordered hunks.

    File-header lines (``diff --git``, ``---``/``+++``, mode and rename
    records) are accepted before the first hunk and between files. Anything
    else outside a hunk, or a body line without a ``+``/``-``/space marker,
    raises ``DiffParseError``.
    """
    if not isinstance(diff_text, str):
        raise DiffParseError(f"expected text, got {type(diff_text).__name__}")

    hunks: list[DiffHunk] = []
    header: str | None = None
    counts = (0, 0, 0, 0)
    body: list[DiffLine] = []

    def close_current() -> None:
        if header is not None:
            hunks.append(DiffHunk(header, tuple(body), *counts))

    # Only "\n" ends a diff line; form feeds and Unicode separators are content.
    lines = diff_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for line_number, raw_line in enumerate(lines, start=1):
        if raw_line.endswith("\r"):
            raw_line = raw_line[:-1]
        match = _HUNK_RE.match(raw_line)
        if match:
            close_current()
            header = raw_line
            counts = (
                int(match.group(1)),
                int(match.group(2) or "1"),
                int(match.group(3)),
                int(match.group(4) or "1"),
            )
            body = []
            continue

        if raw_line.startswith("diff --git "):
            close_current()
            header = None
            body = []
            continue

        if header is None:
            if _is_preamble(raw_line):
                continue
            raise DiffParseError(f"content before first hunk header: {raw_line[:40]!r}", line_number)

        if raw_line.startswith(_NO_NEWLINE_MARKER):
            continue
        if raw_line == "":
            body.append(DiffLine(DiffLineKind.CONTEXT, ""))
            continue
        kind = _KINDS_BY_MARKER.get(raw_line[0])
        if kind is None:
            raise DiffParseError(f"unrecognized line marker {raw_line[0]!r}", line_number)
        body.append(DiffLine(kind, raw_line[1:]))

    close_current()
    return hunks


def diff_row_count(hunks: list[DiffHunk]) -> int:
    """Number of display rows: one per hunk header plus its body lines."""
    return sum(1 + len(hunk.lines) for hunk in hunks)


def hunk_row_offsets(hunks: list[DiffHunk]) -> list[int]:
    """Display row at which each hunk's header is drawn."""
    offsets: list[int] = []
    row = 0
    for hunk in hunks:
        offsets.append(row)
        row += 1 + len(hunk.lines)
    return offsets
