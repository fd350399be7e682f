"""Value types produced by the git backend."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChangeKind(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"
    CONFLICTED = "conflicted"

    @property
    def badge(self) -> str:
        return _BADGES[self]


_BADGES = {
    ChangeKind.ADDED: "A",
    ChangeKind.MODIFIED: "M",
    ChangeKind.DELETED: "D",
    ChangeKind.RENAMED: "R",
    ChangeKind.UNTRACKED: "?",
    ChangeKind.CONFLICTED: "U",
}


@dataclass(frozen=True)
class FileEntry:
    """One changed path as reported by a single status read.

    ``orig_path`` is the rename source; a rename is staged and unstaged as
    the pair ``(orig_path, path)``.
    """

    path: str
    kind: ChangeKind
    orig_path: str | None = None

    @property
    def paths(self) -> tuple[str, ...]:
        if self.orig_path is None:
            return (self.path,)
        return (self.orig_path, self.path)


@dataclass(frozen=True)
class StatusSnapshot:
    """Staged and unstaged entries, each in backend report order."""

    staged: tuple[FileEntry, ...]
    unstaged: tuple[FileEntry, ...]


@dataclass(frozen=True)
class CommitInfo:
    """One row of the log view."""

    short_id: str
    summary: str
    author: str
    time: str
