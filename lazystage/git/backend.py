"""Subprocess-backed git operations used by the reducer and the push worker.

Every call shells out to the ``git`` executable with ``-C <repo_root>`` so a
``GitBackend`` is nothing more than a repository path plus timeouts. The UI
thread owns one instance; the push worker opens its own from the same path.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from ..errors import BackendOperationFailed, RepositoryIOError, RepositoryNotFound
from .models import ChangeKind, CommitInfo, FileEntry, StatusSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_PUSH_TIMEOUT_SECONDS = 120.0
LOG_LIMIT = 200

_CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})
_INDEX_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.ADDED,
}
_WORKTREE_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
}
_PUSH_FAILURE_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("RemoteNotFound", ("does not appear to be a git repository", "no such remote")),
    ("AuthenticationFailed", ("authentication failed", "permission denied", "terminal prompts disabled")),
    ("Rejected", ("[rejected]", "non-fast-forward", "failed to push some refs")),
    (
        "NetworkFailure",
        (
            "could not resolve host",
            "unable to access",
            "connection refused",
            "connection timed out",
            "network is unreachable",
            "could not read from remote repository",
        ),
    ),
)
_LOG_FIELD_SEP = "\x1f"


def _git_env(**overrides: str) -> dict[str, str]:
    env = dict(os.environ)
    env.update(overrides)
    return env


def _iter_porcelain_records(output: str) -> list[tuple[str, str, str | None]]:
    """Split ``status --porcelain=v1 -z`` output into ``(XY, path, source)`` records.

    ``source`` is the original path of a rename or copy, else ``None``.
    """
    records: list[tuple[str, str, str | None]] = []
    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if not token:
            continue
        if len(token) < 4 or token[2] != " ":
            continue

        status = token[:2]
        source: str | None = None

        # Renames and copies carry the source path as the following token.
        if "R" in status or "C" in status:
            if index < len(tokens) and tokens[index]:
                source = tokens[index]
            index += 1

        records.append((status, token[3:], source))

    return records


def parse_porcelain_status(output: str) -> StatusSnapshot:
    """Map porcelain records onto staged/unstaged entries in report order.

    git reports tracked changes sorted by path, then untracked paths sorted
    by path; both sections keep that order.
    """
    staged: list[FileEntry] = []
    unstaged: list[FileEntry] = []
    for status, path, source in _iter_porcelain_records(output):
        if not path or status == "!!":
            continue
        if status == "??":
            unstaged.append(FileEntry(path, ChangeKind.UNTRACKED))
            continue
        if status in _CONFLICT_CODES:
            unstaged.append(FileEntry(path, ChangeKind.CONFLICTED))
            continue

        index_code, worktree_code = status[0], status[1]
        index_kind = _INDEX_KINDS.get(index_code)
        if index_kind is not None:
            staged.append(FileEntry(path, index_kind, source if index_code == "R" else None))
        worktree_kind = _WORKTREE_KINDS.get(worktree_code)
        if worktree_kind is not None:
            unstaged.append(FileEntry(path, worktree_kind, source if worktree_code == "R" else None))
    return StatusSnapshot(staged=tuple(staged), unstaged=tuple(unstaged))


def report_order_key(entry: FileEntry) -> tuple[bool, str]:
    """Sort key reproducing git's status order within one section."""
    return (entry.kind is ChangeKind.UNTRACKED, entry.path)


def classify_push_failure(message: str) -> str:
    """Reduce git's push stderr to one short failure kind."""
    lowered = message.lower()
    for kind, markers in _PUSH_FAILURE_MARKERS:
        if any(marker in lowered for marker in markers):
            return kind
    return "PushFailed"


def discover_repository(path: Path, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Path:
    """Return the working-tree root containing ``path``.

    Raises ``RepositoryNotFound`` when ``path`` is not inside a working tree
    and ``RepositoryIOError`` when the path or the git executable is missing.
    """
    if not path.exists():
        raise RepositoryIOError(f"path not found: {path}")
    try:
        proc = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--show-toplevel"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired as exc:
        raise RepositoryIOError(f"git rev-parse did not finish within {exc.timeout:g}s") from exc
    except OSError as exc:
        raise RepositoryIOError.from_os_error(exc) from exc

    top_level = proc.stdout.strip()
    if proc.returncode != 0 or not top_level:
        logger.debug("rev-parse failed for %s: %s", path, proc.stderr.strip())
        raise RepositoryNotFound(path.resolve())
    return Path(top_level).resolve()


class GitBackend:
    """Git operations bound to one working-tree root."""

    def __init__(self, repo_root: Path, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.repo_root = Path(repo_root)
        self.timeout_seconds = timeout_seconds

    @classmethod
    def discover(cls, path: Path, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> GitBackend:
        return cls(discover_repository(path, timeout_seconds), timeout_seconds)

    def _run(
        self,
        args: list[str],
        *,
        kind: str,
        ok_returncodes: tuple[int, ...] = (0,),
        timeout_seconds: float | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        logger.debug("git %s", " ".join(args))
        try:
            proc = subprocess.run(
                ["git", "-C", str(self.repo_root), *args],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as exc:
            raise BackendOperationFailed.from_timeout(f"git {args[0]}", exc) from exc
        except OSError as exc:
            raise RepositoryIOError.from_os_error(exc) from exc
        if proc.returncode not in ok_returncodes:
            logger.warning("git %s exited %d: %s", args[0], proc.returncode, proc.stderr.strip())
            raise BackendOperationFailed.from_called_process(kind, proc)
        return proc

    def has_head(self) -> bool:
        proc = self._run(
            ["rev-parse", "--verify", "--quiet", "HEAD"],
            kind="StatusFailed",
            ok_returncodes=(0, 1),
        )
        return proc.returncode == 0

    def status(self) -> StatusSnapshot:
        proc = self._run(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all"],
            kind="StatusFailed",
            env=_git_env(GIT_OPTIONAL_LOCKS="0"),
        )
        return parse_porcelain_status(proc.stdout)

    def diff(self, entry: FileEntry, staged: bool) -> str:
        """Return unified diff text for one entry on the requested side."""
        if not staged and entry.kind is ChangeKind.UNTRACKED:
            # --no-index exits 1 when the files differ.
            proc = self._run(
                ["diff", "--no-color", "--no-ext-diff", "--no-index", "--", os.devnull, entry.path],
                kind="DiffFailed",
                ok_returncodes=(0, 1),
            )
            return proc.stdout
        args = ["diff", "--no-color", "--no-ext-diff"]
        if staged:
            args.append("--cached")
        args.extend(["--", entry.path])
        return self._run(args, kind="DiffFailed").stdout

    def stage(self, *paths: str) -> None:
        self._run(["add", "-A", "--", *paths], kind="StageFailed")

    def unstage(self, *paths: str) -> None:
        if self.has_head():
            self._run(["reset", "-q", "HEAD", "--", *paths], kind="UnstageFailed")
        else:
            self._run(["rm", "--cached", "-q", "-r", "--", *paths], kind="UnstageFailed")

    def stage_all(self) -> None:
        self._run(["add", "-A"], kind="StageFailed")

    def unstage_all(self) -> None:
        """Reset the whole index to HEAD, or empty it before the first commit."""
        if self.has_head():
            self._run(["reset", "-q", "HEAD"], kind="UnstageFailed")
        else:
            self._run(["rm", "--cached", "-q", "-r", "--ignore-unmatch", "--", "."], kind="UnstageFailed")

    def has_remote(self, name: str) -> bool:
        proc = self._run(["remote"], kind="RemoteLookupFailed")
        return name in proc.stdout.split()

    def add_remote(self, name: str, url: str) -> None:
        self._run(["remote", "add", name, url], kind="AddRemoteFailed")

    def commit(self, message: str) -> None:
        self._run(["commit", "-q", "-m", message], kind="CommitFailed")

    def push(self, remote: str, timeout_seconds: float = DEFAULT_PUSH_TIMEOUT_SECONDS) -> None:
        """Push the current branch to ``remote`` under the same name.

        A remote name that is not configured fails as ``RemoteNotFound``
        without running ``git push``.
        """
        if not self.has_remote(remote):
            raise BackendOperationFailed("RemoteNotFound", f"no remote named '{remote}'")
        try:
            self._run(
                ["push", "--porcelain", remote, "HEAD"],
                kind="PushFailed",
                timeout_seconds=timeout_seconds,
                env=_git_env(GIT_TERMINAL_PROMPT="0"),
            )
        except BackendOperationFailed as exc:
            if exc.kind != "PushFailed":
                raise
            raise BackendOperationFailed(classify_push_failure(exc.output), exc.detail, exc.output) from exc

    def log(self, limit: int = LOG_LIMIT) -> list[CommitInfo]:
        """Return up to ``limit`` commits reachable from HEAD, newest first."""
        if not self.has_head():
            return []
        fmt = _LOG_FIELD_SEP.join(("%h", "%s", "%an", "%ad"))
        proc = self._run(
            [
                "log",
                f"--max-count={limit}",
                f"--pretty=format:{fmt}",
                "--date=format:%Y-%m-%d %H:%M:%S",
            ],
            kind="LogFailed",
        )
        commits: list[CommitInfo] = []
        for line in proc.stdout.split("\n"):
            parts = line.split(_LOG_FIELD_SEP)
            if len(parts) != 4:
                continue
            short_id, summary, author, when = parts
            commits.append(CommitInfo(short_id=short_id, summary=summary, author=author, time=when))
        return commits


def open_backend(repo_path: Path) -> GitBackend:
    """Open a backend from a plain path; used by worker threads."""
    return GitBackend(Path(repo_path))
