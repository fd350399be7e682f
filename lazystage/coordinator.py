"""Background push worker with a single-flight guard.

The worker thread receives only a repository path and a remote name, opens
its own backend from that path, and reports back by posting exactly one
``BackendResult`` on the event channel. It never sees ``AppState``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .errors import BackendOperationFailed, LazyStageError, RepositoryIOError
from .events import AppEvent, BackendResult
from .git.backend import DEFAULT_PUSH_TIMEOUT_SECONDS, GitBackend, open_backend

logger = logging.getLogger(__name__)

PUSH_OPERATION = "push"


@dataclass(frozen=True)
class PushHandle:
    operation_id: int
    remote: str
    thread: threading.Thread

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker; return whether it has finished."""
        self.thread.join(timeout)
        return not self.thread.is_alive()


def _as_backend_failure(exc: Exception) -> BackendOperationFailed:
    if isinstance(exc, BackendOperationFailed):
        return exc
    if isinstance(exc, RepositoryIOError):
        return BackendOperationFailed("IoError", exc.detail)
    if isinstance(exc, LazyStageError):
        return BackendOperationFailed(type(exc).__name__, str(exc))
    return BackendOperationFailed("InternalError", f"{type(exc).__name__}: {exc}")


class PushCoordinator:
    """Run at most one push at a time on a short-lived daemon thread."""

    def __init__(
        self,
        post_event: Callable[[AppEvent], None],
        open_backend: Callable[[Path], GitBackend] = open_backend,
        timeout_seconds: float = DEFAULT_PUSH_TIMEOUT_SECONDS,
    ) -> None:
        self._post_event = post_event
        self._open_backend = open_backend
        self._timeout_seconds = timeout_seconds
        self._lock = threading.Lock()
        self._active: PushHandle | None = None
        self.spawned_count = 0

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._active is not None

    def _worker(self, operation_id: int, repo_path: Path, remote: str) -> None:
        error: BackendOperationFailed | None = None
        try:
            backend = self._open_backend(repo_path)
            backend.push(remote, timeout_seconds=self._timeout_seconds)
        except Exception as exc:
            if not isinstance(exc, LazyStageError):
                logger.exception("push #%d crashed", operation_id)
            error = _as_backend_failure(exc)

        if error is None:
            logger.info("push #%d to %s succeeded", operation_id, remote)
        else:
            logger.warning("push #%d to %s failed: %s", operation_id, remote, error)

        with self._lock:
            self._active = None
        self._post_event(BackendResult(operation_id, PUSH_OPERATION, error))

    def spawn_push(self, operation_id: int, repo_path: Path, remote: str) -> PushHandle | None:
        """Start a push unless one is already running.

        Returns ``None`` (and starts nothing) when a push is in flight.
        """
        with self._lock:
            if self._active is not None:
                logger.warning(
                    "refusing push #%d: push #%d still running",
                    operation_id,
                    self._active.operation_id,
                )
                return None
            worker = threading.Thread(
                target=self._worker,
                args=(operation_id, Path(str(repo_path)), str(remote)),
                name=f"lazystage-push-{operation_id}",
                daemon=True,
            )
            handle = PushHandle(operation_id=operation_id, remote=remote, thread=worker)
            self._active = handle
            self.spawned_count += 1

        logger.info("push #%d to %s started", operation_id, remote)
        worker.start()
        return handle

    def wait(self, timeout: float | None = None) -> bool:
        """Join the running push, if any; return whether nothing is in flight."""
        with self._lock:
            handle = self._active
        if handle is None:
            return True
        return handle.join(timeout)
