"""Push coordinator tests: single flight, fresh backend per push, one result."""

from __future__ import annotations

import threading
import unittest
from pathlib import Path

from lazystage.coordinator import PUSH_OPERATION, PushCoordinator
from lazystage.errors import BackendOperationFailed, RepositoryIOError
from lazystage.events import BackendResult, EventChannel, TickEvent


class _BlockingBackend:
    def __init__(self, repo_root: Path, release: threading.Event, error: Exception | None = None) -> None:
        self.repo_root = repo_root
        self.release = release
        self.error = error
        self.pushes: list[tuple[str, float]] = []

    def push(self, remote: str, timeout_seconds: float) -> None:
        self.pushes.append((remote, timeout_seconds))
        self.release.wait(5.0)
        if self.error is not None:
            raise self.error


class PushCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.channel = EventChannel()
        self.release = threading.Event()
        self.opened: list[_BlockingBackend] = []
        self.error: Exception | None = None

    def _open_backend(self, repo_path: Path) -> _BlockingBackend:
        backend = _BlockingBackend(repo_path, self.release, self.error)
        self.opened.append(backend)
        return backend

    def _coordinator(self, timeout_seconds: float = 120.0) -> PushCoordinator:
        return PushCoordinator(self.channel.put, open_backend=self._open_backend, timeout_seconds=timeout_seconds)

    def _next_result(self) -> BackendResult:
        event = self.channel.get(5.0)
        self.assertIsInstance(event, BackendResult)
        return event

    def test_successful_push_posts_one_ok_result(self) -> None:
        coordinator = self._coordinator(timeout_seconds=30.0)
        handle = coordinator.spawn_push(7, Path("/repo"), "origin")
        assert handle is not None
        self.assertTrue(coordinator.in_flight)

        self.release.set()
        self.assertTrue(handle.join(5.0))

        result = self._next_result()
        self.assertEqual(result, BackendResult(7, PUSH_OPERATION, None))
        self.assertTrue(result.ok)
        self.assertFalse(coordinator.in_flight)
        self.assertEqual(self.opened[0].repo_root, Path("/repo"))
        self.assertEqual(self.opened[0].pushes, [("origin", 30.0)])
        self.assertEqual(self.channel.drain(), [])

    def test_second_spawn_while_running_is_refused(self) -> None:
        coordinator = self._coordinator()
        first = coordinator.spawn_push(1, Path("/repo"), "origin")
        second = coordinator.spawn_push(2, Path("/repo"), "origin")

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertEqual(coordinator.spawned_count, 1)

        self.release.set()
        self.assertTrue(coordinator.wait(5.0))
        self.assertEqual(self._next_result().operation_id, 1)
        self.assertIsInstance(self.channel.get(0.05), TickEvent)

    def test_each_push_opens_a_fresh_backend(self) -> None:
        self.release.set()
        coordinator = self._coordinator()
        for operation_id in (1, 2):
            handle = coordinator.spawn_push(operation_id, Path("/repo"), "origin")
            assert handle is not None
            handle.join(5.0)
            self._next_result()
        self.assertEqual(len(self.opened), 2)
        self.assertIsNot(self.opened[0], self.opened[1])

    def test_backend_failure_is_posted_as_error_result(self) -> None:
        self.error = BackendOperationFailed("Rejected", "non-fast-forward")
        self.release.set()
        coordinator = self._coordinator()
        coordinator.spawn_push(3, Path("/repo"), "origin")

        result = self._next_result()
        self.assertFalse(result.ok)
        assert result.error is not None
        self.assertEqual(result.error.kind, "Rejected")
        self.assertEqual(result.error.detail, "non-fast-forward")

    def test_io_error_and_unexpected_errors_are_converted(self) -> None:
        self.release.set()
        self.error = RepositoryIOError("git executable not found on PATH")
        coordinator = self._coordinator()
        coordinator.spawn_push(1, Path("/repo"), "origin")
        result = self._next_result()
        assert result.error is not None
        self.assertEqual(result.error.kind, "IoError")

        self.error = ValueError("boom")
        coordinator.spawn_push(2, Path("/repo"), "origin")
        result = self._next_result()
        assert result.error is not None
        self.assertEqual(result.error.kind, "InternalError")
        self.assertFalse(coordinator.in_flight)

    def test_wait_without_push_returns_immediately(self) -> None:
        self.assertTrue(self._coordinator().wait(0.01))


if __name__ == "__main__":
    unittest.main()
