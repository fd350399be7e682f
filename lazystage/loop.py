"""Event dispatch: input pump thread and the single-consumer update loop."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .coordinator import PushCoordinator
from .events import (
    AppEvent,
    Effect,
    EventChannel,
    QuitEffect,
    ResizeEvent,
    SpawnPushEffect,
    event_from_token,
)
from .input import read_key
from .reducer import Reducer
from .state import AppState, PushIdle
from .terminal import terminal_size

logger = logging.getLogger(__name__)

INPUT_POLL_MS = 50


class InputPump:
    """Decode terminal input on a daemon thread and post it as events.

    Terminal size is sampled between reads; a change posts ``ResizeEvent``.
    """

    def __init__(
        self,
        stdin_fd: int,
        post_event: Callable[[AppEvent], None],
        *,
        read_token: Callable[[int, int | None], str] = read_key,
        get_size: Callable[[], tuple[int, int]] = terminal_size,
        poll_ms: int = INPUT_POLL_MS,
    ) -> None:
        self.stdin_fd = stdin_fd
        self._post_event = post_event
        self._read_token = read_token
        self._get_size = get_size
        self._poll_ms = poll_ms
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last_size: tuple[int, int] | None = None

    def _check_resize(self) -> None:
        size = self._get_size()
        if size != self._last_size:
            if self._last_size is not None:
                self._post_event(ResizeEvent(*size))
            self._last_size = size

    def poll_once(self) -> AppEvent | None:
        """Read at most one token; post and return its event."""
        self._check_resize()
        token = self._read_token(self.stdin_fd, self._poll_ms)
        event = event_from_token(token)
        if event is not None:
            self._post_event(event)
        return event

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except OSError as exc:
                logger.warning("input pump stopped: %s", exc)
                return

    def start(self) -> None:
        self._last_size = self._get_size()
        self._thread = threading.Thread(target=self._run, name="lazystage-input", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)


def execute_effects(effects: tuple[Effect, ...], state: AppState, coordinator: PushCoordinator) -> bool:
    """Run effects in order; return ``True`` when one of them asks to quit."""
    for effect in effects:
        if isinstance(effect, QuitEffect):
            return True
        if isinstance(effect, SpawnPushEffect):
            handle = coordinator.spawn_push(effect.operation_id, effect.repo_path, effect.remote)
            if handle is None:
                # Refused: no result will ever arrive for this id.
                state.push = PushIdle()
                state.status_message = "a push is already running"
                state.dirty = True
    return False


def run_event_loop(
    *,
    state: AppState,
    reducer: Reducer,
    channel: EventChannel,
    coordinator: PushCoordinator,
    paint: Callable[[AppState], None],
    tick_seconds: float = 0.12,
    max_events: int | None = None,
) -> AppState:
    """Process events until a quit effect (or ``max_events`` events).

    Every event is applied in arrival order; repaint happens only when the
    reducer marked the state dirty.
    """
    processed = 0
    if state.dirty:
        paint(state)
        state.dirty = False
    while max_events is None or processed < max_events:
        event = channel.get(tick_seconds)
        processed += 1
        effects = reducer.update(state, event)
        if execute_effects(effects, state, coordinator):
            logger.info("quit requested")
            break
        if state.dirty:
            paint(state)
            state.dirty = False
    return state
