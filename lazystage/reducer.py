"""State transitions for every event the loop can deliver.

``Reducer.update`` is the only code that mutates ``AppState``. Fast local git
operations (stage, unstage, commit, status, diff, log) run synchronously here
and their failures become an error popup; the push is requested as an effect
and its outcome comes back later as a ``BackendResult`` event.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .config import PUSH_RESET_KEYPRESS, PUSH_RESET_TIMED, AppConfig
from .coordinator import PUSH_OPERATION
from .diff_model import diff_row_count, hunk_row_offsets, parse_hunks
from .display_list import FileRow, SectionHeader, next_file_row_index
from .errors import LazyStageError
from .events import (
    AppEvent,
    BackendResult,
    Effect,
    KeyEvent,
    MouseEvent,
    QuitEffect,
    ResizeEvent,
    SpawnPushEffect,
    TickEvent,
)
from .git.backend import GitBackend, report_order_key
from .git.models import ChangeKind, FileEntry
from .key_registry import KeyComboBinding, KeyComboRegistry
from .layout import compute_layout
from .state import (
    AppState,
    CommitPopup,
    ErrorPopup,
    HelpPopup,
    Panel,
    PushFailed,
    PushIdle,
    PushRunning,
    PushSucceeded,
    RemotePopup,
    View,
)

logger = logging.getLogger(__name__)

WHEEL_DIFF_STEP = 3
_STAGED_KIND = {ChangeKind.UNTRACKED: ChangeKind.ADDED, ChangeKind.CONFLICTED: ChangeKind.MODIFIED}
_UNSTAGED_KIND = {ChangeKind.ADDED: ChangeKind.UNTRACKED, ChangeKind.RENAMED: ChangeKind.UNTRACKED}


def _insert_in_report_order(entries: list[FileEntry], entry: FileEntry) -> list[FileEntry]:
    """Return ``entries`` with ``entry`` where the next status read will put it.

    An entry whose path is already listed is not added twice.
    """
    if any(existing.path == entry.path for existing in entries):
        return list(entries)
    out = list(entries)
    key = report_order_key(entry)
    for idx, existing in enumerate(out):
        if report_order_key(existing) > key:
            out.insert(idx, entry)
            return out
    out.append(entry)
    return out


def _is_text_key(code: str) -> bool:
    return len(code) == 1 and code.isprintable()


def _may_pair_as_rename(staged: list[FileEntry]) -> bool:
    kinds = {entry.kind for entry in staged}
    return ChangeKind.ADDED in kinds and ChangeKind.DELETED in kinds


def _edit_line(text: str, code: str) -> str | None:
    """Apply one single-line editing key; ``None`` when ``code`` is not one."""
    if code == "BACKSPACE":
        return text[:-1]
    if code == "CTRL_U":
        return ""
    if _is_text_key(code):
        return text + code
    return None


class Reducer:
    """Apply events to ``AppState`` using a UI-thread-owned backend."""

    def __init__(
        self,
        backend: GitBackend,
        config: AppConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backend = backend
        self.config = config
        self._clock = clock

    def update(self, state: AppState, event: AppEvent) -> tuple[Effect, ...]:
        """Apply one event; return side-effect requests for the loop."""
        if isinstance(event, KeyEvent):
            return self._on_key(state, event)
        if isinstance(event, MouseEvent):
            self._on_mouse(state, event)
        elif isinstance(event, ResizeEvent):
            self._on_resize(state, event)
        elif isinstance(event, TickEvent):
            self._on_tick(state, event)
        elif isinstance(event, BackendResult):
            self._on_backend_result(state, event)
        return ()

    # -- backend-backed helpers -------------------------------------------------

    def _show_error(self, state: AppState, action: str, exc: LazyStageError) -> None:
        logger.warning("%s failed: %s", action, exc)
        state.popup = ErrorPopup(f"{action} failed: {exc}")
        state.dirty = True

    def refresh_status(self, state: AppState) -> bool:
        try:
            snapshot = self.backend.status()
        except LazyStageError as exc:
            self._show_error(state, "Status refresh", exc)
            return False
        state.apply_snapshot(snapshot)
        self._ensure_status_visible(state)
        self.load_selected_diff(state)
        return True

    def refresh_log(self, state: AppState) -> bool:
        try:
            entries = self.backend.log()
        except LazyStageError as exc:
            self._show_error(state, "Log refresh", exc)
            return False
        state.log_entries = entries
        state.log_selected = min(state.log_selected, max(0, len(entries) - 1))
        self._ensure_log_visible(state)
        state.dirty = True
        return True

    def load_selected_diff(self, state: AppState) -> None:
        """Load hunks for the selected file row, or clear the Diff panel."""
        row = state.selected_row()
        state.hunk_mode = False
        state.hunk_selected = 0
        state.diff_start = 0
        state.diff_hunks = []
        state.diff_notice = ""
        state.dirty = True
        if row is None:
            state.diff_path = None
            return
        entry = row.entry
        state.diff_path = entry.path
        state.diff_staged = row.staged
        if entry.kind is ChangeKind.CONFLICTED:
            state.diff_notice = "conflicted: resolve outside lazystage"
            return
        try:
            state.diff_hunks = parse_hunks(self.backend.diff(entry, row.staged))
        except LazyStageError as exc:
            self._show_error(state, f"Diff of {entry.path}", exc)
            return
        if not state.diff_hunks:
            state.diff_notice = "no textual changes"

    # -- geometry ---------------------------------------------------------------

    def _ensure_status_visible(self, state: AppState) -> None:
        rows = compute_layout(state.width, state.height).list_rows
        max_start = max(0, len(state.status_items) - rows)
        selected = state.status_selected
        if selected is not None:
            if selected < state.status_list_start:
                state.status_list_start = selected
                if selected > 0 and isinstance(state.status_items[selected - 1], SectionHeader):
                    state.status_list_start = selected - 1
            elif selected >= state.status_list_start + rows:
                state.status_list_start = selected - rows + 1
        state.status_list_start = max(0, min(state.status_list_start, max_start))

    def _ensure_log_visible(self, state: AppState) -> None:
        rows = compute_layout(state.width, state.height).list_rows
        if state.log_selected < state.log_list_start:
            state.log_list_start = state.log_selected
        elif state.log_selected >= state.log_list_start + rows:
            state.log_list_start = state.log_selected - rows + 1
        state.log_list_start = max(0, min(state.log_list_start, max(0, len(state.log_entries) - rows)))

    def _scroll_diff(self, state: AppState, delta: int) -> None:
        rows = compute_layout(state.width, state.height).list_rows
        max_start = max(0, diff_row_count(state.diff_hunks) - rows)
        new_start = max(0, min(state.diff_start + delta, max_start))
        if new_start != state.diff_start:
            state.diff_start = new_start
            state.dirty = True

    # -- selection --------------------------------------------------------------

    def _select_status_index(self, state: AppState, index: int | None) -> None:
        if index is None or index == state.status_selected:
            return
        state.status_selected = index
        self._ensure_status_visible(state)
        self.load_selected_diff(state)

    def _move_status_selection(self, state: AppState, step: int) -> None:
        if state.status_selected is None:
            return
        self._select_status_index(state, next_file_row_index(state.status_items, state.status_selected, step))

    def _move_log_selection(self, state: AppState, step: int) -> None:
        if not state.log_entries:
            return
        target = max(0, min(state.log_selected + step, len(state.log_entries) - 1))
        if target != state.log_selected:
            state.log_selected = target
            self._ensure_log_visible(state)
            state.dirty = True

    def _move_hunk_selection(self, state: AppState, step: int) -> None:
        if not state.diff_hunks:
            return
        target = max(0, min(state.hunk_selected + step, len(state.diff_hunks) - 1))
        if target == state.hunk_selected:
            return
        state.hunk_selected = target
        rows = compute_layout(state.width, state.height).list_rows
        max_start = max(0, diff_row_count(state.diff_hunks) - rows)
        state.diff_start = min(hunk_row_offsets(state.diff_hunks)[target], max_start)
        state.dirty = True

    def _navigate(self, state: AppState, step: int) -> None:
        if state.view is View.LOG:
            self._move_log_selection(state, step)
        elif state.focus is Panel.FILES:
            self._move_status_selection(state, step)
        elif state.hunk_mode:
            self._move_hunk_selection(state, step)
        else:
            self._scroll_diff(state, step)

    def _navigate_to_edge(self, state: AppState, end: bool) -> None:
        big = 1 << 30
        self._navigate(state, big if end else -big)

    # -- file membership --------------------------------------------------------

    def _stage_selected(self, state: AppState) -> None:
        row = state.selected_row()
        if state.focus is not Panel.FILES or row is None or row.staged:
            return
        entry = row.entry
        try:
            self.backend.stage(*entry.paths)
        except LazyStageError as exc:
            self._show_error(state, f"Stage {entry.path}", exc)
            return
        logger.debug("staged %s", entry.path)
        staged_entry = FileEntry(entry.path, _STAGED_KIND.get(entry.kind, entry.kind))
        staged = _insert_in_report_order(state.staged, staged_entry)
        if entry.orig_path is not None or _may_pair_as_rename(staged):
            # git decides rename pairing in the index; re-read it.
            self.refresh_status(state)
            return
        unstaged = [item for item in state.unstaged if item != entry]
        state.set_collections(staged, unstaged)
        self._ensure_status_visible(state)
        self.load_selected_diff(state)

    def _unstage_selected(self, state: AppState) -> None:
        row = state.selected_row()
        if state.focus is not Panel.FILES or row is None or not row.staged:
            return
        entry = row.entry
        try:
            self.backend.unstage(*entry.paths)
        except LazyStageError as exc:
            self._show_error(state, f"Unstage {entry.path}", exc)
            return
        logger.debug("unstaged %s", entry.path)
        if entry.orig_path is not None:
            # An unstaged rename splits into a deletion and an untracked path.
            self.refresh_status(state)
            return
        unstaged_entry = FileEntry(entry.path, _UNSTAGED_KIND.get(entry.kind, entry.kind))
        staged = [item for item in state.staged if item != entry]
        state.set_collections(staged, _insert_in_report_order(state.unstaged, unstaged_entry))
        self._ensure_status_visible(state)
        self.load_selected_diff(state)

    def _stage_all(self, state: AppState) -> None:
        if not state.unstaged:
            state.status_message = "nothing to stage"
            state.dirty = True
            return
        try:
            self.backend.stage_all()
        except LazyStageError as exc:
            self._show_error(state, "Stage all", exc)
            return
        logger.info("staged all %d unstaged change(s)", len(state.unstaged))
        self.refresh_status(state)

    def _unstage_all(self, state: AppState) -> None:
        if not state.staged:
            state.status_message = "nothing staged"
            state.dirty = True
            return
        try:
            self.backend.unstage_all()
        except LazyStageError as exc:
            self._show_error(state, "Unstage all", exc)
            return
        logger.info("unstaged all %d staged change(s)", len(state.staged))
        self.refresh_status(state)

    # -- commit -----------------------------------------------------------------

    def _submit_commit(self, state: AppState, popup: CommitPopup) -> None:
        message = popup.message.strip()
        if not message:
            state.status_message = "commit message is empty"
            state.dirty = True
            return
        if not state.staged:
            state.status_message = "nothing staged to commit"
            state.dirty = True
            return
        try:
            self.backend.commit(message)
        except LazyStageError as exc:
            self._show_error(state, "Commit", exc)
            return
        logger.info("committed %d staged file(s)", len(state.staged))
        state.popup = None
        state.set_collections([], state.unstaged)
        state.status_message = f"committed: {message.splitlines()[0]}"
        if self.refresh_status(state):
            self.refresh_log(state)

    def _on_commit_popup_key(self, state: AppState, popup: CommitPopup, code: str) -> None:
        if code == "ESC":
            state.popup = None
        elif code == "ENTER":
            self._submit_commit(state, popup)
        elif code == "CTRL_QUESTION":
            state.popup = HelpPopup(previous=popup)
        else:
            edited = _edit_line(popup.message, code)
            if edited is None:
                return
            state.popup = CommitPopup(edited)
        state.dirty = True

    # -- push -------------------------------------------------------------------

    def _request_push(self, state: AppState) -> tuple[Effect, ...]:
        if not isinstance(state.push, PushIdle):
            logger.debug("push key ignored while %s", type(state.push).__name__)
            return ()
        operation_id = state.next_operation_id
        state.next_operation_id += 1
        remote = self.config.remote
        state.push = PushRunning(operation_id=operation_id, remote=remote)
        state.spinner_frame = 0
        state.dirty = True
        return (SpawnPushEffect(operation_id=operation_id, repo_path=state.repo_root, remote=remote),)

    def _on_backend_result(self, state: AppState, event: BackendResult) -> None:
        running = state.push
        if event.operation != PUSH_OPERATION or not isinstance(running, PushRunning):
            logger.debug("ignoring %s result #%d", event.operation, event.operation_id)
            return
        if running.operation_id != event.operation_id:
            logger.debug("ignoring stale push result #%d", event.operation_id)
            return
        finished_at = self._clock()
        if event.error is None:
            state.push = PushSucceeded(remote=running.remote, finished_at=finished_at)
            state.dirty = True
            if self.refresh_status(state):
                self.refresh_log(state)
            return
        state.push = PushFailed(summary=event.error.kind, finished_at=finished_at, detail=event.error.detail)
        state.dirty = True
        if event.error.kind == "RemoteNotFound" and state.popup is None:
            self._offer_remote_setup(state, running.remote)

    def _offer_remote_setup(self, state: AppState, remote: str) -> None:
        try:
            configured = self.backend.has_remote(remote)
        except LazyStageError as exc:
            logger.warning("remote lookup failed: %s", exc)
            return
        if not configured:
            state.popup = RemotePopup(remote)

    def _submit_remote(self, state: AppState, popup: RemotePopup) -> None:
        url = popup.url.strip()
        if not url:
            state.status_message = "remote URL is empty"
            state.dirty = True
            return
        try:
            self.backend.add_remote(popup.remote, url)
        except LazyStageError as exc:
            self._show_error(state, f"Add remote {popup.remote}", exc)
            return
        logger.info("added remote %s", popup.remote)
        state.popup = None
        state.status_message = f"remote '{popup.remote}' added; press P to push"
        state.dirty = True

    def _acknowledge_push_result(self, state: AppState) -> None:
        if self.config.push_result_reset != PUSH_RESET_KEYPRESS:
            return
        if isinstance(state.push, (PushSucceeded, PushFailed)):
            state.push = PushIdle()
            state.dirty = True

    # -- views and panels -------------------------------------------------------

    def _exit_hunk_mode(self, state: AppState) -> None:
        state.hunk_mode = False
        state.focus = Panel.FILES
        state.dirty = True

    def _enter_hunk_mode(self, state: AppState) -> None:
        if state.focus is not Panel.FILES or state.selected_row() is None:
            return
        if not state.diff_hunks:
            state.status_message = "no hunks to select"
            state.dirty = True
            return
        state.hunk_mode = True
        state.hunk_selected = 0
        state.diff_start = 0
        state.focus = Panel.DIFF
        state.dirty = True

    def _set_view(self, state: AppState, view: View) -> None:
        if state.view is view:
            return
        state.view = view
        state.dirty = True

    def _set_focus(self, state: AppState, panel: Panel) -> None:
        if panel is Panel.FILES and state.hunk_mode:
            state.hunk_mode = False
        if state.focus is not panel:
            state.focus = panel
            state.dirty = True

    def _focus_right(self, state: AppState) -> None:
        if state.view is View.LOG:
            return
        if state.focus is Panel.FILES:
            self._set_focus(state, Panel.DIFF)
        else:
            self._set_view(state, View.LOG)

    def _focus_left(self, state: AppState) -> None:
        if state.view is View.LOG:
            self._set_view(state, View.STATUS)
        else:
            self._set_focus(state, Panel.FILES)

    def _toggle_focus(self, state: AppState) -> None:
        if state.view is View.STATUS:
            self._set_focus(state, Panel.DIFF if state.focus is Panel.FILES else Panel.FILES)

    # -- keys -------------------------------------------------------------------

    def _on_remote_popup_key(self, state: AppState, popup: RemotePopup, code: str) -> None:
        if code == "ESC":
            state.popup = None
        elif code == "ENTER":
            self._submit_remote(state, popup)
        elif code == "CTRL_QUESTION":
            state.popup = HelpPopup(previous=popup)
        else:
            edited = _edit_line(popup.url, code)
            if edited is None:
                return
            state.popup = RemotePopup(popup.remote, edited)
        state.dirty = True

    def _on_popup_key(self, state: AppState, code: str) -> None:
        popup = state.popup
        if isinstance(popup, CommitPopup):
            self._on_commit_popup_key(state, popup, code)
            return
        if isinstance(popup, RemotePopup):
            self._on_remote_popup_key(state, popup, code)
            return
        if isinstance(popup, HelpPopup):
            if code in {"?", "ESC", "q", "CTRL_QUESTION"}:
                state.popup = popup.previous
                state.dirty = True
            return
        if code in {"ESC", "ENTER", "q"}:
            state.popup = None
            state.dirty = True
        elif code in {"?", "CTRL_QUESTION"}:
            state.popup = HelpPopup(previous=popup)
            state.dirty = True

    def _apply_filter(self, state: AppState, query: str) -> None:
        before = state.selected_row()
        state.set_filter(query)
        self._ensure_status_visible(state)
        if state.selected_row() != before:
            self.load_selected_diff(state)

    def _on_search_key(self, state: AppState, code: str) -> None:
        """Edit the path filter; arrows still move the selection."""
        if code == "ESC":
            state.search_active = False
            self._apply_filter(state, "")
        elif code == "ENTER":
            state.search_active = False
        elif code in {"DOWN", "UP"}:
            self._move_status_selection(state, 1 if code == "DOWN" else -1)
            return
        else:
            edited = _edit_line(state.filter_query, code)
            if edited is None:
                return
            self._apply_filter(state, edited)
        state.dirty = True

    def _on_key(self, state: AppState, event: KeyEvent) -> tuple[Effect, ...]:
        code = event.code
        if code == "CTRL_C":
            return (QuitEffect(),)
        self._acknowledge_push_result(state)
        if state.status_message:
            state.status_message = ""
            state.dirty = True

        if state.popup is not None:
            self._on_popup_key(state, code)
            return ()
        if state.search_active and state.view is View.STATUS:
            self._on_search_key(state, code)
            return ()

        effects: list[Effect] = []

        def quit_or_leave_mode() -> bool:
            if state.hunk_mode:
                self._exit_hunk_mode(state)
            else:
                effects.append(QuitEffect())
            return True

        def escape() -> bool:
            if state.hunk_mode:
                self._exit_hunk_mode(state)
            elif state.filter_query and state.view is View.STATUS:
                self._apply_filter(state, "")
            return True

        def open_help() -> bool:
            state.popup = HelpPopup()
            state.dirty = True
            return True

        global_bindings = KeyComboRegistry().register_bindings(
            KeyComboBinding(("q",), quit_or_leave_mode),
            KeyComboBinding(("ESC",), escape),
            KeyComboBinding(("?", "CTRL_QUESTION"), open_help),
            KeyComboBinding(("s",), lambda: self._set_view(state, View.STATUS)),
            KeyComboBinding(("r",), lambda: self.refresh_status(state)),
            KeyComboBinding(("j", "DOWN"), lambda: self._navigate(state, 1)),
            KeyComboBinding(("k", "UP"), lambda: self._navigate(state, -1)),
            KeyComboBinding(("g", "HOME"), lambda: self._navigate_to_edge(state, end=False)),
            KeyComboBinding(("G", "END"), lambda: self._navigate_to_edge(state, end=True)),
            KeyComboBinding(("l", "RIGHT"), lambda: self._focus_right(state)),
            KeyComboBinding(("h", "LEFT"), lambda: self._focus_left(state)),
        )
        if code in global_bindings:
            global_bindings.dispatch(code)
            return tuple(effects)
        if state.view is not View.STATUS:
            return ()

        def open_commit_popup() -> bool:
            state.popup = CommitPopup()
            state.dirty = True
            return True

        def request_push() -> bool:
            effects.extend(self._request_push(state))
            return True

        def start_search() -> bool:
            state.search_active = True
            state.dirty = True
            return True

        status_bindings = KeyComboRegistry().register_bindings(
            KeyComboBinding((" ",), lambda: self._stage_selected(state)),
            KeyComboBinding(("u",), lambda: self._unstage_selected(state)),
            KeyComboBinding(("a",), lambda: self._stage_all(state)),
            KeyComboBinding(("U",), lambda: self._unstage_all(state)),
            KeyComboBinding(("/",), start_search),
            KeyComboBinding(("ENTER",), lambda: self._enter_hunk_mode(state)),
            KeyComboBinding(("c",), open_commit_popup),
            KeyComboBinding(("P",), request_push),
            KeyComboBinding(("TAB", "BACKTAB"), lambda: self._toggle_focus(state)),
        )
        status_bindings.dispatch(code)
        return tuple(effects)

    # -- mouse, resize, tick ----------------------------------------------------

    def _on_mouse(self, state: AppState, event: MouseEvent) -> None:
        if state.popup is not None:
            return
        layout = compute_layout(state.width, state.height)
        if event.kind == "left_down":
            if event.row == 1:
                view = layout.tab_at(event.col)
                if view is not None:
                    self._set_view(state, view)
                return
            offset = layout.content_index(event.row)
            if state.view is View.LOG:
                if offset is not None:
                    index = state.log_list_start + offset
                    if 0 <= index < len(state.log_entries) and index != state.log_selected:
                        state.log_selected = index
                        state.dirty = True
                return
            if layout.in_files_pane(event.col):
                self._set_focus(state, Panel.FILES)
                if offset is not None:
                    index = state.status_list_start + offset
                    if 0 <= index < len(state.status_items) and isinstance(state.status_items[index], FileRow):
                        self._select_status_index(state, index)
            elif layout.in_diff_pane(event.col):
                self._set_focus(state, Panel.DIFF)
            return

        if event.kind not in {"wheel_up", "wheel_down"}:
            return
        step = -1 if event.kind == "wheel_up" else 1
        if state.view is View.LOG:
            self._move_log_selection(state, step)
        elif layout.in_files_pane(event.col):
            self._move_status_selection(state, step)
        elif state.hunk_mode:
            self._move_hunk_selection(state, step)
        else:
            self._scroll_diff(state, step * WHEEL_DIFF_STEP)

    def _on_resize(self, state: AppState, event: ResizeEvent) -> None:
        state.width = max(1, event.width)
        state.height = max(1, event.height)
        self._ensure_status_visible(state)
        self._ensure_log_visible(state)
        self._scroll_diff(state, 0)
        state.dirty = True

    def _on_tick(self, state: AppState, event: TickEvent) -> None:
        if isinstance(state.push, PushRunning):
            state.spinner_frame += 1
            state.dirty = True
            return
        if self.config.push_result_reset != PUSH_RESET_TIMED:
            return
        if isinstance(state.push, (PushSucceeded, PushFailed)):
            if event.now - state.push.finished_at >= self.config.push_result_seconds:
                state.push = PushIdle()
                state.dirty = True
