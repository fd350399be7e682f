"""Frame composition for the Status and Log views.

``build_frame`` is a pure function of ``AppState`` and ``AppConfig``: it
returns one complete ANSI frame (panels, status bar, and any popup overlay)
and never touches the terminal. The loop hands the result to
``TerminalController.write_frame``.
"""

from __future__ import annotations

from ..ansi import fit_ansi_line, sanitize_terminal_text, selected_with_ansi
from ..config import AppConfig
from ..diff_model import DiffHunk, hunk_row_offsets
from ..display_list import FileRow, SectionHeader
from ..highlight import colorize_diff_lines, diff_display_lines
from ..layout import TAB_LABELS, ScreenLayout, compute_layout
from ..state import (
    AppState,
    Panel,
    PushFailed,
    PushRunning,
    PushSucceeded,
    View,
)
from .help import popup_overlay

PUSH_SPINNER_FRAMES: tuple[str, ...] = ("|", "/", "-", "\\")
SEPARATOR = "\033[2;38;5;245m│\033[0m"
HEADER_SGR = "\033[1;38;5;81m"
STAGED_BADGE_SGR = "\033[38;5;114m"
UNSTAGED_BADGE_SGR = "\033[38;5;203m"
TITLE_SGR = "\033[1m"
DIM_SGR = "\033[2m"
HUNK_GUTTER = "\033[38;5;45m▎\033[0m"
LOG_ID_SGR = "\033[38;5;179m"
LOG_AUTHOR_SGR = "\033[38;5;110m"


def build_status_line(left_text: str, width: int, right_text: str = "│ ? Help") -> str:
    usable = max(1, width - 1)
    if usable <= len(right_text):
        return right_text[-usable:]
    left_limit = max(0, usable - len(right_text) - 1)
    left = left_text[:left_limit]
    gap = " " * (usable - len(left) - len(right_text))
    return f"{left}{gap}{right_text}"


def push_status_text(state: AppState) -> str:
    push = state.push
    if isinstance(push, PushRunning):
        spinner = PUSH_SPINNER_FRAMES[state.spinner_frame % len(PUSH_SPINNER_FRAMES)]
        return f"{spinner} pushing to {push.remote}"
    if isinstance(push, PushSucceeded):
        return f"pushed to {push.remote}"
    if isinstance(push, PushFailed):
        if push.detail:
            return f"push failed: {push.summary} ({push.detail})"
        return f"push failed: {push.summary}"
    return ""


def _tab_bar(state: AppState, width: int) -> str:
    parts: list[str] = []
    for view, label in TAB_LABELS:
        if view is state.view:
            parts.append(f"\033[1;7m{label}\033[0m")
        else:
            parts.append(f"{DIM_SGR}{label}\033[0m")
    repo_name = sanitize_terminal_text(state.repo_root.name or str(state.repo_root))
    return fit_ansi_line(" ".join(parts) + f"  {TITLE_SGR}{repo_name}\033[0m", width)


def _panel_title(title: str, focused: bool, width: int) -> str:
    sgr = "\033[1;38;5;45m" if focused else DIM_SGR
    return fit_ansi_line(f"{sgr}{title}\033[0m", width)


def _status_item_text(item: SectionHeader | FileRow) -> str:
    if isinstance(item, SectionHeader):
        counter = str(item.count) if item.count == item.total else f"{item.count}/{item.total}"
        return f"{HEADER_SGR}{item.label} ({counter})\033[0m"
    badge_sgr = STAGED_BADGE_SGR if item.staged else UNSTAGED_BADGE_SGR
    path = sanitize_terminal_text(item.entry.path)
    return f"  {badge_sgr}{item.entry.kind.badge}\033[0m {path}"


def files_pane_rows(state: AppState, layout: ScreenLayout) -> list[str]:
    width = layout.files_width
    rows: list[str] = []
    for offset in range(layout.list_rows):
        index = state.status_list_start + offset
        if index >= len(state.status_items):
            rows.append(" " * width)
            continue
        text = fit_ansi_line(_status_item_text(state.status_items[index]), width)
        if index == state.status_selected:
            text = selected_with_ansi(text) if state.focus is Panel.FILES else f"\033[1m{text}\033[0m"
        rows.append(text)
    return rows


_STYLED_DIFF_CACHE: dict[str, object] = {}


def styled_diff_rows(hunks: list[DiffHunk], style: str, no_color: bool) -> list[str]:
    """Colourized diff rows, reused while the same hunk list stays on screen.

    The reducer replaces ``diff_hunks`` on every reload, so list identity
    plus the colour settings identify one highlighted document.
    """
    cache = _STYLED_DIFF_CACHE
    if cache.get("hunks") is hunks and cache.get("key") == (style, no_color):
        return cache["rows"]  # type: ignore[return-value]
    rows = colorize_diff_lines(diff_display_lines(hunks), style=style, no_color=no_color)
    cache.update(hunks=hunks, key=(style, no_color), rows=rows)
    return rows


def clear_styled_diff_cache() -> None:
    _STYLED_DIFF_CACHE.clear()


def diff_pane_rows(state: AppState, config: AppConfig, width: int, rows: int) -> list[str]:
    if not state.diff_hunks:
        if state.diff_path is None:
            message = "no file selected"
        else:
            message = state.diff_notice or "no changes"
        lines = [fit_ansi_line(f"{DIM_SGR}{message}\033[0m", width)]
        return lines + [" " * width] * (rows - 1)

    styled = styled_diff_rows(state.diff_hunks, config.style, config.no_color)
    selected_range: range | None = None
    if state.hunk_mode and 0 <= state.hunk_selected < len(state.diff_hunks):
        start = hunk_row_offsets(state.diff_hunks)[state.hunk_selected]
        selected_range = range(start, start + 1 + len(state.diff_hunks[state.hunk_selected].lines))

    out: list[str] = []
    body_width = max(0, width - 1)
    for offset in range(rows):
        index = state.diff_start + offset
        if index >= len(styled):
            out.append(" " * width)
            continue
        gutter = HUNK_GUTTER if selected_range is not None and index in selected_range else " "
        out.append(gutter + fit_ansi_line(styled[index], body_width))
    return out


def log_pane_rows(state: AppState, layout: ScreenLayout, width: int) -> list[str]:
    if not state.log_entries:
        return [fit_ansi_line(f"{DIM_SGR}no commits yet\033[0m", width)] + [" " * width] * (layout.list_rows - 1)
    rows: list[str] = []
    for offset in range(layout.list_rows):
        index = state.log_list_start + offset
        if index >= len(state.log_entries):
            rows.append(" " * width)
            continue
        commit = state.log_entries[index]
        author = sanitize_terminal_text(commit.author)[:16]
        text = (
            f"{LOG_ID_SGR}{commit.short_id}\033[0m "
            f"{DIM_SGR}{commit.time}\033[0m "
            f"{LOG_AUTHOR_SGR}{author:<16}\033[0m "
            f"{sanitize_terminal_text(commit.summary)}"
        )
        text = fit_ansi_line(text, width)
        if index == state.log_selected:
            text = selected_with_ansi(text)
        rows.append(text)
    return rows


def _filter_text(state: AppState) -> str:
    if state.search_active:
        return f"/{state.filter_query}"
    if state.filter_query:
        return f"filter: {state.filter_query}"
    return ""


def _status_bar(state: AppState, width: int) -> str:
    parts = [part for part in (_filter_text(state), push_status_text(state), state.status_message) if part]
    left = " " + " · ".join(parts) if parts else f" {len(state.staged)} staged, {len(state.unstaged)} unstaged"
    bar = build_status_line(sanitize_terminal_text(left), width)
    sgr = "\033[41;97m" if isinstance(state.push, PushFailed) else "\033[7m"
    return f"{sgr}{bar}\033[0m"


def build_frame_rows(state: AppState, config: AppConfig) -> list[str]:
    """Return one string per screen row, without cursor movement."""
    layout = compute_layout(state.width, state.height)
    # Leave the last column blank so no row triggers terminal autowrap.
    usable = max(1, layout.width - 1)
    rows = [_tab_bar(state, usable)]

    if state.view is View.LOG:
        rows.append(_panel_title(f" Commits ({len(state.log_entries)})", True, usable))
        rows.extend(log_pane_rows(state, layout, usable))
    else:
        diff_width = max(1, usable - layout.files_width - 1)
        if state.diff_path is None:
            diff_title = " Diff"
        else:
            where = "staged" if state.diff_staged else "unstaged"
            mode = " · hunks" if state.hunk_mode else ""
            diff_title = f" Diff: {sanitize_terminal_text(state.diff_path)} ({where}){mode}"
        rows.append(
            _panel_title(" Files", state.focus is Panel.FILES, layout.files_width)
            + SEPARATOR
            + _panel_title(diff_title, state.focus is Panel.DIFF, diff_width)
        )
        left_rows = files_pane_rows(state, layout)
        right_rows = diff_pane_rows(state, config, diff_width, layout.list_rows)
        rows.extend(left + SEPARATOR + right for left, right in zip(left_rows, right_rows))

    rows.append(_status_bar(state, layout.width))
    return rows[: layout.height]


def build_frame(state: AppState, config: AppConfig) -> str:
    """Compose the full ANSI frame for ``state``."""
    out: list[str] = ["\033[H\033[J"]
    out.append("\r\n".join(build_frame_rows(state, config)))
    out.append(popup_overlay(state.popup, state.width, state.height))
    return "".join(out)
