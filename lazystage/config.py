"""Runtime configuration and diagnostic log setup.

All settings come from command-line flags; nothing is read back from disk.
The log file is a write-only side channel because the screen belongs to the
TUI while it runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_log_dir

APP_NAME = "lazystage"
LOG_FILENAME = "lazystage.log"
DEFAULT_REMOTE = "origin"
PUSH_RESET_KEYPRESS = "keypress"
PUSH_RESET_TIMED = "timed"
PUSH_RESET_POLICIES = (PUSH_RESET_KEYPRESS, PUSH_RESET_TIMED)
LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


def default_log_path() -> Path:
    return Path(user_log_dir(APP_NAME, appauthor=False)) / LOG_FILENAME


@dataclass(frozen=True)
class AppConfig:
    remote: str = DEFAULT_REMOTE
    no_color: bool = False
    style: str = "monokai"
    push_timeout_seconds: float = 120.0
    push_result_reset: str = PUSH_RESET_KEYPRESS
    push_result_seconds: float = 3.0
    tick_seconds: float = 0.12
    backend_timeout_seconds: float = 10.0
    log_path: Path = field(default_factory=default_log_path)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.push_result_reset not in PUSH_RESET_POLICIES:
            raise ValueError(f"unknown push result reset policy: {self.push_result_reset!r}")
        if not self.remote:
            raise ValueError("remote name must not be empty")


def configure_logging(log_path: Path, level: str = "INFO") -> logging.Handler:
    """Route package logs to ``log_path`` and return the installed handler.

    Handlers from an earlier call are closed and replaced.

    Raises ``OSError`` when the log directory cannot be created or opened.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger(APP_NAME)
    for previous in list(package_logger.handlers):
        package_logger.removeHandler(previous)
        previous.close()
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.addHandler(handler)
    package_logger.propagate = False
    return handler
