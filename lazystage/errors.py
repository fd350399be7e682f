"""Closed error taxonomy shared by the backend, diff model, and reducer.

Every lower-layer failure (subprocess exit codes, timeouts, OS errors, diff
parse failures) is converted into one of these types before it reaches the
reducer, which decides whether it becomes an error popup or a push failure.
"""

from __future__ import annotations

import subprocess
from pathlib import Path


class LazyStageError(Exception):
    """Base class for all user-visible lazystage failures."""


class RepositoryNotFound(LazyStageError):
    """No git working tree at or above the requested path."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"not a git repository (or any parent up to mount point): {path}")


class BackendOperationFailed(LazyStageError):
    """A git command exited unsuccessfully or did not finish in time."""

    def __init__(self, kind: str, detail: str = "", output: str = "") -> None:
        self.kind = kind
        self.detail = detail
        self.output = output or detail
        message = f"{kind}: {detail}" if detail else kind
        super().__init__(message)

    @classmethod
    def from_called_process(
        cls,
        kind: str,
        proc: subprocess.CompletedProcess[str],
    ) -> BackendOperationFailed:
        """Build from a finished ``git`` process, keeping the first stderr line."""
        stderr = (proc.stderr or "").strip()
        stdout = (proc.stdout or "").strip()
        detail = next((line for line in (stderr or stdout).splitlines() if line.strip()), "")
        if not detail:
            detail = f"git exited with status {proc.returncode}"
        return cls(kind, detail, output=stderr or stdout)

    @classmethod
    def from_timeout(cls, operation: str, exc: subprocess.TimeoutExpired) -> BackendOperationFailed:
        return cls("Timeout", f"{operation} did not finish within {exc.timeout:g}s")


class DiffParseError(LazyStageError):
    """Unified-diff text did not have the expected hunk structure."""

    def __init__(self, detail: str, line_number: int | None = None) -> None:
        self.detail = detail
        self.line_number = line_number
        where = f" (line {line_number})" if line_number is not None else ""
        super().__init__(f"cannot parse diff{where}: {detail}")


class RepositoryIOError(LazyStageError):
    """Filesystem or process-spawn failure unrelated to git's own exit status."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)

    @classmethod
    def from_os_error(cls, exc: OSError) -> RepositoryIOError:
        if isinstance(exc, FileNotFoundError) and exc.filename in {"git", None}:
            return cls("git executable not found on PATH")
        target = f": {exc.filename}" if exc.filename else ""
        reason = exc.strerror or str(exc)
        return cls(f"{reason}{target}")


__all__ = [
    "BackendOperationFailed",
    "DiffParseError",
    "LazyStageError",
    "RepositoryIOError",
    "RepositoryNotFound",
]
