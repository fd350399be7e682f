"""Composition root: wires backend, state, channel, coordinator, and loop."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from .config import AppConfig
from .coordinator import PushCoordinator
from .errors import LazyStageError
from .events import EventChannel
from .git.backend import GitBackend
from .git.models import StatusSnapshot
from .loop import InputPump, run_event_loop
from .reducer import Reducer
from .render import build_frame
from .state import AppState, ErrorPopup, initial_state
from .terminal import TerminalController, terminal_size

logger = logging.getLogger(__name__)


def load_initial_state(
    backend: GitBackend,
    reducer: Reducer,
    width: int,
    height: int,
) -> AppState:
    """Read status and log once; a failure opens an error popup instead."""
    try:
        snapshot = backend.status()
    except LazyStageError as exc:
        logger.warning("initial status failed: %s", exc)
        state = initial_state(backend.repo_root, StatusSnapshot((), ()), width=width, height=height)
        state.popup = ErrorPopup(f"Status failed: {exc}")
        return state

    state = initial_state(backend.repo_root, snapshot, width=width, height=height)
    reducer.refresh_log(state)
    reducer.load_selected_diff(state)
    return state


def run_app(
    repo_root: Path,
    config: AppConfig,
    stdin_fd: int | None = None,
    stdout_fd: int | None = None,
) -> int:
    """Run the interactive session; return the process exit code."""
    if stdin_fd is None:
        stdin_fd = sys.stdin.fileno()
    if stdout_fd is None:
        stdout_fd = sys.stdout.fileno()

    backend = GitBackend(repo_root, timeout_seconds=config.backend_timeout_seconds)
    reducer = Reducer(backend, config)
    width, height = terminal_size()
    state = load_initial_state(backend, reducer, width, height)

    channel = EventChannel()
    coordinator = PushCoordinator(channel.put, timeout_seconds=config.push_timeout_seconds)
    terminal = TerminalController(stdin_fd, stdout_fd)
    pump = InputPump(stdin_fd, channel.put)

    logger.info("session started in %s", repo_root)
    with terminal.raw_mode():
        pump.start()
        try:
            run_event_loop(
                state=state,
                reducer=reducer,
                channel=channel,
                coordinator=coordinator,
                paint=lambda current: terminal.write_frame(build_frame(current, config)),
                tick_seconds=config.tick_seconds,
            )
        finally:
            pump.stop()
    if coordinator.in_flight:
        logger.warning("exiting with a push still running; it is abandoned")
    logger.info("session ended")
    return 0
