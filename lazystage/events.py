"""Event and effect vocabulary plus the single ordered event channel.

Terminal input, background results, and ticks all arrive as ``AppEvent``
values on one ``EventChannel``; the reducer answers with ``Effect`` values.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from queue import Empty, Queue
from typing import Callable, Union

from .errors import BackendOperationFailed

SHIFT = "shift"
CTRL = "ctrl"

_CTRL_TOKENS = {
    "CTRL_C": "c",
    "CTRL_D": "d",
    "CTRL_G": "g",
    "CTRL_K": "k",
    "CTRL_O": "o",
    "CTRL_P": "p",
    "CTRL_U": "u",
    "CTRL_QUESTION": "?",
}

_ENTER_TOKENS = {"ENTER_CR", "ENTER_LF"}


@dataclass(frozen=True)
class KeyEvent:
    """One decoded key; ``code`` uses the input decoder's token names."""

    code: str
    modifiers: frozenset[str] = frozenset()


@dataclass(frozen=True)
class MouseEvent:
    """``kind`` is one of left_down, left_up, wheel_up, wheel_down; 1-based cells."""

    kind: str
    col: int
    row: int


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int


@dataclass(frozen=True)
class TickEvent:
    now: float


@dataclass(frozen=True)
class BackendResult:
    """Outcome of one background operation; ``error is None`` means success."""

    operation_id: int
    operation: str
    error: BackendOperationFailed | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


AppEvent = Union[KeyEvent, MouseEvent, ResizeEvent, TickEvent, BackendResult]


@dataclass(frozen=True)
class QuitEffect:
    pass


@dataclass(frozen=True)
class SpawnPushEffect:
    operation_id: int
    repo_path: Path
    remote: str


Effect = Union[QuitEffect, SpawnPushEffect]


def key_event_from_token(token: str) -> KeyEvent:
    if token in _ENTER_TOKENS:
        return KeyEvent("ENTER")
    if token in _CTRL_TOKENS:
        return KeyEvent(token, frozenset({CTRL}))
    if token.startswith("SHIFT_") or token == "BACKTAB":
        return KeyEvent(token, frozenset({SHIFT}))
    if len(token) == 1 and token.isalpha() and token.isupper():
        return KeyEvent(token, frozenset({SHIFT}))
    return KeyEvent(token)


def _parse_mouse_token(token: str) -> MouseEvent | None:
    name, _, coords = token.partition(":")
    col_text, _, row_text = coords.partition(":")
    try:
        col = int(col_text)
        row = int(row_text)
    except ValueError:
        return None
    kind = {
        "MOUSE_LEFT_DOWN": "left_down",
        "MOUSE_LEFT_UP": "left_up",
        "MOUSE_WHEEL_UP": "wheel_up",
        "MOUSE_WHEEL_DOWN": "wheel_down",
        "MOUSE_WHEEL_LEFT": "wheel_left",
        "MOUSE_WHEEL_RIGHT": "wheel_right",
    }.get(name)
    if kind is None:
        return None
    return MouseEvent(kind, col, row)


def event_from_token(token: str) -> AppEvent | None:
    """Translate one ``read_key`` token; ``None`` for empty/unknown mouse tokens."""
    if not token:
        return None
    if token.startswith("MOUSE"):
        return _parse_mouse_token(token)
    return key_event_from_token(token)


class EventChannel:
    """Multi-producer, single-consumer FIFO of ``AppEvent`` values.

    ``get`` yields a ``TickEvent`` once ``timeout`` seconds have passed since
    the previous tick, even while other events keep arriving, so the loop
    wakes periodically without a separate timer thread.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._queue: Queue[AppEvent] = Queue()
        self._clock = clock
        self._last_tick = clock()

    def put(self, event: AppEvent) -> None:
        self._queue.put(event)

    def _tick(self) -> TickEvent:
        now = self._clock()
        self._last_tick = now
        return TickEvent(now)

    def get(self, timeout: float) -> AppEvent:
        remaining = timeout - (self._clock() - self._last_tick)
        if remaining <= 0:
            return self._tick()
        try:
            return self._queue.get(timeout=remaining)
        except Empty:
            return self._tick()

    def drain(self) -> list[AppEvent]:
        out: list[AppEvent] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except Empty:
                break
        return out
