"""Diff-line colouring with Pygments.

The whole visible hunk list is highlighted as one unified-diff document so
the lexer sees real ``@@``/``+``/``-`` lines, then split back into one
styled string per display row.
"""

from __future__ import annotations

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import DiffLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .ansi import sanitize_terminal_text
from .diff_model import DiffHunk

DEFAULT_STYLE = "monokai"

_LEXER = DiffLexer(stripnl=False)
_FORMATTERS: dict[str, Terminal256Formatter] = {}


def _normalize_style(style: str) -> str:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE
    return style


def _formatter_for_style(style: str) -> Terminal256Formatter:
    style = _normalize_style(style)
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = Terminal256Formatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def diff_display_lines(hunks: list[DiffHunk]) -> list[str]:
    """Plain display rows: each hunk header followed by its marked body lines."""
    rows: list[str] = []
    for hunk in hunks:
        rows.append(sanitize_terminal_text(hunk.header))
        rows.extend(sanitize_terminal_text(line.kind.marker + line.text) for line in hunk.lines)
    return rows


def colorize_diff_lines(lines: list[str], style: str = DEFAULT_STYLE, no_color: bool = False) -> list[str]:
    """Return ``lines`` with ANSI colour, one output row per input row.

    Falls back to the plain rows when colour is disabled or the formatter
    output does not line up with the input.
    """
    if no_color or not lines:
        return list(lines)
    rendered = highlight("\n".join(lines) + "\n", _LEXER, _formatter_for_style(style))
    styled = rendered.split("\n")
    if styled and styled[-1] == "":
        styled.pop()
    if len(styled) != len(lines):
        return list(lines)
    return styled
