from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from .diff_model import DiffHunk
from .display_list import (
    FileRow,
    StatusDisplayItem,
    build_status_display_list,
    first_file_row_index,
    nearest_file_row_index,
    selected_file_row,
)
from .git.models import CommitInfo, FileEntry, StatusSnapshot


class View(Enum):
    STATUS = "status"
    LOG = "log"


class Panel(Enum):
    FILES = "files"
    DIFF = "diff"


@dataclass(frozen=True)
class CommitPopup:
    message: str = ""


@dataclass(frozen=True)
class ErrorPopup:
    message: str


@dataclass(frozen=True)
class RemotePopup:
    """Prompt for the URL of a remote that push found missing."""

    remote: str
    url: str = ""


@dataclass(frozen=True)
class HelpPopup:
    """Help overlay; ``previous`` is the popup restored on close."""

    previous: CommitPopup | ErrorPopup | RemotePopup | None = None


Popup = Union[HelpPopup, CommitPopup, ErrorPopup, RemotePopup, None]


@dataclass(frozen=True)
class PushIdle:
    pass


@dataclass(frozen=True)
class PushRunning:
    operation_id: int
    remote: str


@dataclass(frozen=True)
class PushSucceeded:
    remote: str
    finished_at: float


@dataclass(frozen=True)
class PushFailed:
    summary: str
    finished_at: float
    detail: str = ""


PushState = Union[PushIdle, PushRunning, PushSucceeded, PushFailed]


@dataclass
class AppState:
    repo_root: Path
    staged: list[FileEntry] = field(default_factory=list)
    unstaged: list[FileEntry] = field(default_factory=list)
    status_items: list[StatusDisplayItem] = field(default_factory=list)
    status_selected: int | None = None
    status_list_start: int = 0
    view: View = View.STATUS
    focus: Panel = Panel.FILES
    diff_path: str | None = None
    diff_staged: bool = False
    diff_hunks: list[DiffHunk] = field(default_factory=list)
    diff_notice: str = ""
    diff_start: int = 0
    hunk_mode: bool = False
    hunk_selected: int = 0
    log_entries: list[CommitInfo] = field(default_factory=list)
    log_selected: int = 0
    log_list_start: int = 0
    popup: Popup = None
    push: PushState = field(default_factory=PushIdle)
    next_operation_id: int = 1
    width: int = 80
    height: int = 24
    filter_query: str = ""
    search_active: bool = False
    status_message: str = ""
    spinner_frame: int = 0
    dirty: bool = True

    def set_collections(self, staged: list[FileEntry], unstaged: list[FileEntry]) -> None:
        """Replace both collections and rebuild the derived display list.

        This is the only writer of ``status_items``.
        """
        previous = self.status_selected
        self.staged = list(staged)
        self.unstaged = list(unstaged)
        self.status_items = build_status_display_list(self.staged, self.unstaged, self.filter_query)
        if previous is None:
            self.status_selected = first_file_row_index(self.status_items)
        else:
            self.status_selected = nearest_file_row_index(self.status_items, previous)
        self.dirty = True

    def set_filter(self, query: str) -> None:
        """Change the path filter and rebuild the display list from it."""
        if query == self.filter_query:
            return
        self.filter_query = query
        self.set_collections(self.staged, self.unstaged)

    def apply_snapshot(self, snapshot: StatusSnapshot) -> None:
        self.set_collections(list(snapshot.staged), list(snapshot.unstaged))

    def selected_row(self) -> FileRow | None:
        return selected_file_row(self.status_items, self.status_selected)

    @property
    def push_in_flight(self) -> bool:
        return isinstance(self.push, PushRunning)


def initial_state(
    repo_root: Path,
    snapshot: StatusSnapshot,
    log_entries: list[CommitInfo] | None = None,
    width: int = 80,
    height: int = 24,
) -> AppState:
    """Build the startup state from the first status read."""
    state = AppState(repo_root=repo_root, width=width, height=height)
    state.apply_snapshot(snapshot)
    state.log_entries = list(log_entries or [])
    return state
