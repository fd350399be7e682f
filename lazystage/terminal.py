"""Terminal control helpers for the TUI session.

Owns raw-mode lifecycle, alternate-screen switching, mouse toggles, and the
final write of composed frames to the output descriptor.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import termios
import tty

_ENTER_SEQUENCE = b"\x1b[?1049h\x1b[?25l\x1b[?1000h\x1b[?1002h\x1b[?1006h"
_EXIT_SEQUENCE = b"\x1b[?1000l\x1b[?1002l\x1b[?1006l\x1b[?25h\x1b[?1049l"


def terminal_size() -> tuple[int, int]:
    """Return ``(columns, lines)`` with an 80x24 fallback."""
    size = shutil.get_terminal_size((80, 24))
    return max(1, size.columns), max(1, size.lines)


class TerminalController:
    """Manage terminal mode transitions and frame output."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind stdin/stdout file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with mouse reporting enabled."""
        tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        os.write(self.stdout_fd, _ENTER_SEQUENCE)

    def disable_tui_mode(self) -> None:
        """Restore normal terminal state and disable mouse reporting."""
        os.write(self.stdout_fd, _EXIT_SEQUENCE)
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)

    def write_frame(self, frame: str) -> None:
        data = frame.encode("utf-8", errors="replace")
        while data:
            written = os.write(self.stdout_fd, data)
            data = data[written:]

    @contextlib.contextmanager
    def raw_mode(self):
        """Context manager that brackets code with TUI enter/exit calls."""
        try:
            self.enable_tui_mode()
            yield
        finally:
            self.disable_tui_mode()
