"""Modal overlays: help page, commit editor, remote prompt, and error box.

Each overlay is returned as an ANSI string of absolute cursor moves that the
frame builder appends after the base panels, so the panels underneath stay
intact around the box.
"""

from __future__ import annotations

import textwrap

from ..ansi import clip_ansi_line, sanitize_terminal_text
from ..state import CommitPopup, ErrorPopup, HelpPopup, Popup, RemotePopup

FRAME_SGR = "\033[38;5;45m"
ERROR_FRAME_SGR = "\033[38;5;203m"
KEY_SGR = "\033[38;5;229m"
SECTION_SGR = "\033[1;38;5;81m"
HINT_SGR = "\033[2;38;5;250m"


def _key(text: str) -> str:
    return f"{KEY_SGR}{text}\033[0m"


def _section(text: str) -> str:
    return f"{SECTION_SGR}{text}\033[0m"


HELP_LINES: tuple[str, ...] = (
    "",
    _section("General"),
    f"  {_key('?')} toggle help   {_key('Ctrl+?')} help from the commit editor",
    f"  {_key('q')} quit (or leave hunk mode)   {_key('Ctrl+C')} quit now",
    f"  {_key('Esc')} close popup / leave hunk mode   {_key('r')} refresh status",
    f"  {_key('s')} status view   {_key('l')}/{_key('h')} next/previous panel or view",
    "",
    _section("Files panel"),
    f"  {_key('j')}/{_key('k')} move selection   {_key('g')}/{_key('G')} first/last file",
    f"  {_key('Space')} stage file   {_key('u')} unstage file",
    f"  {_key('a')} stage all   {_key('U')} unstage all   {_key('/')} filter by path",
    f"  {_key('Enter')} select hunks in the diff   {_key('Tab')} switch Files/Diff",
    f"  {_key('c')} commit staged changes   {_key('P')} push to the remote",
    "",
    _section("Diff panel"),
    f"  {_key('j')}/{_key('k')} scroll (next/previous hunk in hunk mode)",
    "",
    _section("Mouse"),
    "  click tabs to switch views, click files to select them",
    "  wheel scrolls the list or diff under the pointer",
    "",
    f"{HINT_SGR}Press ? / Esc / q to close\033[0m",
)


def _draw_box(
    out: list[str],
    title: str,
    lines: list[str],
    width: int,
    height: int,
    modal_w: int,
    modal_h: int,
    frame_sgr: str = FRAME_SGR,
) -> None:
    modal_w = max(4, min(modal_w, width))
    modal_h = max(3, min(modal_h, height))
    x = max(0, (width - modal_w) // 2)
    y = max(0, (height - modal_h) // 2)
    inner_w = max(1, modal_w - 2)
    inner_h = max(1, modal_h - 2)

    # Rounded frame.
    out.append(f"\033[{y + 1};{x + 1}H{frame_sgr}╭")
    out.append("─" * inner_w)
    out.append("╮\033[0m")
    for i in range(inner_h):
        out.append(f"\033[{y + 2 + i};{x + 1}H{frame_sgr}│\033[0m")
        out.append(" " * inner_w)
        out.append(f"{frame_sgr}│\033[0m")
    out.append(f"\033[{y + modal_h};{x + 1}H{frame_sgr}╰")
    out.append("─" * inner_w)
    out.append("╯\033[0m")

    title_text = clip_ansi_line(f" {title} ", max(0, inner_w - 2))
    title_x = x + max(1, (modal_w - len(title_text)) // 2)
    out.append(f"\033[{y + 1};{title_x + 1}H\033[1m{title_text}\033[0m")

    for i, line in enumerate(lines[:inner_h]):
        out.append(f"\033[{y + 2 + i};{x + 3}H")
        out.append(clip_ansi_line(line, max(0, inner_w - 2)))
        out.append("\033[0m")


def help_overlay(width: int, height: int) -> str:
    out: list[str] = []
    modal_w = min(76, max(40, width - 10))
    modal_h = min(len(HELP_LINES) + 2, max(8, height - 2))
    _draw_box(out, "lazystage help", list(HELP_LINES), width, height, modal_w, modal_h)
    return "".join(out)


def commit_overlay(popup: CommitPopup, width: int, height: int) -> str:
    out: list[str] = []
    modal_w = min(72, max(30, width - 8))
    inner = max(1, modal_w - 4)
    message = sanitize_terminal_text(popup.message)
    # Keep the tail of a long message in view, like a single-line input.
    visible = message[-(inner - 1):] if len(message) >= inner else message
    lines = [
        "",
        f"{visible}\033[7m \033[0m",
        "",
        f"{HINT_SGR}Enter commit · Esc cancel · Ctrl+U clear · Ctrl+? help\033[0m",
    ]
    _draw_box(out, "Commit message", lines, width, height, modal_w, len(lines) + 2)
    return "".join(out)


def remote_overlay(popup: RemotePopup, width: int, height: int) -> str:
    out: list[str] = []
    modal_w = min(72, max(30, width - 8))
    inner = max(1, modal_w - 4)
    url = sanitize_terminal_text(popup.url)
    visible = url[-(inner - 1):] if len(url) >= inner else url
    lines = [
        "",
        f"No remote '{sanitize_terminal_text(popup.remote)}'. Enter its URL:",
        f"{visible}\033[7m \033[0m",
        "",
        f"{HINT_SGR}Enter add · Esc cancel · Ctrl+U clear\033[0m",
    ]
    _draw_box(out, "Add remote", lines, width, height, modal_w, len(lines) + 2)
    return "".join(out)


def error_overlay(popup: ErrorPopup, width: int, height: int) -> str:
    out: list[str] = []
    modal_w = min(72, max(30, width - 8))
    inner = max(8, modal_w - 4)
    body: list[str] = [""]
    for paragraph in popup.message.split("\n"):
        body.extend(textwrap.wrap(sanitize_terminal_text(paragraph), inner) or [""])
    body.append("")
    body.append(f"{HINT_SGR}Enter / Esc close\033[0m")
    modal_h = min(len(body) + 2, max(5, height - 2))
    _draw_box(out, "Error", body, width, height, modal_w, modal_h, frame_sgr=ERROR_FRAME_SGR)
    return "".join(out)


def popup_overlay(popup: Popup, width: int, height: int) -> str:
    """Return the overlay for ``popup``; empty when no popup is open."""
    if isinstance(popup, HelpPopup):
        return help_overlay(width, height)
    if isinstance(popup, CommitPopup):
        return commit_overlay(popup, width, height)
    if isinstance(popup, RemotePopup):
        return remote_overlay(popup, width, height)
    if isinstance(popup, ErrorPopup):
        return error_overlay(popup, width, height)
    return ""
