"""Command-line front door for lazystage.

Parses CLI options, discovers the repository, and sets up the log file.
Then dispatches into the interactive session (or prints one frame with
``--render``).
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import sys
from pathlib import Path

from .app import load_initial_state, run_app
from .config import (
    DEFAULT_REMOTE,
    PUSH_RESET_KEYPRESS,
    PUSH_RESET_POLICIES,
    AppConfig,
    configure_logging,
    default_log_path,
)
from .errors import RepositoryIOError, RepositoryNotFound
from .git.backend import GitBackend, discover_repository
from .reducer import Reducer
from .render import build_frame_rows

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _positive_float(value: str) -> float:
    """argparse type for positive float values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def stdio_is_terminal() -> bool:
    try:
        return os.isatty(sys.stdin.fileno()) and os.isatty(sys.stdout.fileno())
    except (OSError, ValueError):
        # Replaced streams (pipes in tests, StringIO) have no usable descriptor.
        return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazystage",
        description="Stage, commit, and push git changes from a terminal UI.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Path inside a git work tree. Defaults to cwd.")
    parser.add_argument("--remote", default=DEFAULT_REMOTE, help="Remote used by push (default: origin).")
    parser.add_argument("--style", default="monokai", help="Pygments style name for diff colouring.")
    parser.add_argument("--no-color", action="store_true", help="Disable diff colouring.")
    parser.add_argument(
        "--push-timeout",
        type=_positive_float,
        default=120.0,
        metavar="SECONDS",
        help="Abort a push that runs longer than this (default: 120).",
    )
    parser.add_argument(
        "--push-result-reset",
        choices=PUSH_RESET_POLICIES,
        default=PUSH_RESET_KEYPRESS,
        help="Clear the push result on the next key press or after a delay.",
    )
    parser.add_argument(
        "--push-result-seconds",
        type=_positive_float,
        default=3.0,
        metavar="SECONDS",
        help="Delay used by --push-result-reset=timed (default: 3).",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Diagnostic log path.")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="INFO", help="Diagnostic log level.")
    parser.add_argument("--render", action="store_true", help="Print the Status view once and exit.")
    parser.add_argument(
        "--max-cols",
        type=_positive_int,
        default=None,
        help="Column width for --render output (default: terminal width).",
    )
    parser.add_argument(
        "--rows",
        type=_positive_int,
        default=None,
        help="Row count for --render output (default: terminal height).",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> AppConfig:
    return AppConfig(
        remote=args.remote,
        no_color=args.no_color,
        style=args.style,
        push_timeout_seconds=args.push_timeout,
        push_result_reset=args.push_result_reset,
        push_result_seconds=args.push_result_seconds,
        log_path=args.log_file or default_log_path(),
        log_level=args.log_level,
    )


def render_status_view(repo_root: Path, config: AppConfig, width: int, height: int) -> str:
    """Render one Status-view frame as plain rows (ANSI colours kept)."""
    backend = GitBackend(repo_root, timeout_seconds=config.backend_timeout_seconds)
    state = load_initial_state(backend, Reducer(backend, config), width, height)
    return "\n".join(build_frame_rows(state, config)) + "\n"


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and launch lazystage on the repository at PATH.

    Discovery failures and a non-terminal stdin end the process with a
    message on stderr and exit status 1.
    """
    args = build_parser().parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        raise SystemExit(f"lazystage: {exc}") from exc

    path = Path(args.path) if args.path else Path.cwd()
    try:
        repo_root = discover_repository(path)
    except RepositoryNotFound as exc:
        raise SystemExit(f"lazystage: {exc}") from exc
    except RepositoryIOError as exc:
        raise SystemExit(f"lazystage: cannot open repository: {exc}") from exc

    try:
        configure_logging(config.log_path, config.log_level)
    except OSError as exc:
        print(f"lazystage: logging disabled ({exc})", file=sys.stderr)
    logger.info("repository %s", repo_root)

    if args.render:
        term = shutil.get_terminal_size((80, 24))
        width = args.max_cols or max(1, term.columns)
        height = args.rows or max(1, term.lines)
        sys.stdout.write(render_status_view(repo_root, config, width, height))
        return 0

    if not stdio_is_terminal():
        raise SystemExit("lazystage: stdin and stdout must be a terminal (use --render for a one-shot view)")

    os.chdir(repo_root)
    return run_app(repo_root, config)


if __name__ == "__main__":
    sys.exit(main())
