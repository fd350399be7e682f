"""Render-ready projection of the staged/unstaged collections.

The status list shown in the Files panel is always the output of
``build_status_display_list`` for the current collections; it is stored
beside them on ``AppState`` and rebuilt after every membership change.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from .git.models import FileEntry

UNSTAGED_LABEL = "Unstaged changes"
STAGED_LABEL = "Staged changes"


@dataclass(frozen=True)
class SectionHeader:
    """Section label; ``count`` rows are shown out of ``total`` entries."""

    label: str
    count: int
    total: int


@dataclass(frozen=True)
class FileRow:
    entry: FileEntry
    staged: bool


StatusDisplayItem = Union[SectionHeader, FileRow]


def path_matches(entry: FileEntry, query: str) -> bool:
    """Case-insensitive substring match of ``query`` against the path."""
    return not query or query.lower() in entry.path.lower()


def build_status_display_list(
    staged: Sequence[FileEntry],
    unstaged: Sequence[FileEntry],
    query: str = "",
) -> list[StatusDisplayItem]:
    """Return header + rows for unstaged, then header + rows for staged.

    Rows keep the order of the input sequences. A non-empty ``query`` keeps
    only matching paths; headers still report the unfiltered totals.
    """
    shown_unstaged = [entry for entry in unstaged if path_matches(entry, query)]
    shown_staged = [entry for entry in staged if path_matches(entry, query)]
    items: list[StatusDisplayItem] = [SectionHeader(UNSTAGED_LABEL, len(shown_unstaged), len(unstaged))]
    items.extend(FileRow(entry, staged=False) for entry in shown_unstaged)
    items.append(SectionHeader(STAGED_LABEL, len(shown_staged), len(staged)))
    items.extend(FileRow(entry, staged=True) for entry in shown_staged)
    return items


def first_file_row_index(items: Sequence[StatusDisplayItem]) -> int | None:
    for idx, item in enumerate(items):
        if isinstance(item, FileRow):
            return idx
    return None


def next_file_row_index(items: Sequence[StatusDisplayItem], start: int, step: int) -> int | None:
    """Return the nearest file row from ``start`` moving by ``step``.

    Headers are skipped and the walk stops at the list bounds, so the result
    is ``None`` only when no file row lies in that direction.
    """
    if step == 0:
        return start if 0 <= start < len(items) and isinstance(items[start], FileRow) else None
    direction = 1 if step > 0 else -1
    remaining = abs(step)
    idx = start
    found: int | None = None
    while remaining > 0:
        idx += direction
        if idx < 0 or idx >= len(items):
            break
        if isinstance(items[idx], FileRow):
            found = idx
            remaining -= 1
    return found


def nearest_file_row_index(items: Sequence[StatusDisplayItem], preferred: int) -> int | None:
    """Clamp a stale selection onto the closest file row, preferring forward."""
    if not items:
        return None
    preferred = max(0, min(preferred, len(items) - 1))
    if isinstance(items[preferred], FileRow):
        return preferred
    forward = next_file_row_index(items, preferred, 1)
    if forward is not None:
        return forward
    return next_file_row_index(items, preferred, -1)


def selected_file_row(items: Sequence[StatusDisplayItem], index: int | None) -> FileRow | None:
    if index is None or not 0 <= index < len(items):
        return None
    item = items[index]
    return item if isinstance(item, FileRow) else None
