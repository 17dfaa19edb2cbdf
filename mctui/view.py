"""Interactive session state machine.

``InstanceBrowser.handle`` takes the session's single ``ViewState`` and one
``KeyEvent`` and applies it: mode transitions, selection moves, sort cycling,
filter editing, and the launch/open-folder/refresh side effects. The list the
user sees is always recomputed from the repository snapshot (``project``), and
the selection is clamped to it after every input.

``InstanceBrowser.frame`` turns the state into a ``Frame`` for the renderer,
querying the process monitor only for the rows that are on screen.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Iterable, Protocol

from .exceptions import DispatchError, RepositoryError
from .models import InstanceRecord, Mode, SortKey, ViewState

logger = logging.getLogger(__name__)

PAGE_SIZE = 10


class Key(Enum):
    CHAR = "char"
    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    TAB = "tab"
    QUIT = "quit"


@dataclass(frozen=True, slots=True)
class KeyEvent:
    key: Key
    char: str = ""

    @classmethod
    def of(cls, char: str) -> KeyEvent:
        return cls(Key.CHAR, char)


BROWSE_CHAR_ACTIONS = {
    "/": "search",
    "s": "sort",
    "i": "details",
    "o": "open_folder",
    "r": "refresh",
    "q": "quit",
    "k": "up",
    "j": "down",
    "g": "home",
    "G": "end",
}
BROWSE_KEY_ACTIONS = {
    Key.UP: "up",
    Key.DOWN: "down",
    Key.PAGE_UP: "page_up",
    Key.PAGE_DOWN: "page_down",
    Key.HOME: "home",
    Key.END: "end",
    Key.ENTER: "launch",
    Key.TAB: "details",
    Key.ESCAPE: "clear_filter",
    Key.QUIT: "quit",
}
SEARCH_KEY_ACTIONS = {
    Key.UP: "up",
    Key.DOWN: "down",
    Key.PAGE_UP: "page_up",
    Key.PAGE_DOWN: "page_down",
    Key.HOME: "home",
    Key.END: "end",
    Key.ENTER: "launch",
    Key.ESCAPE: "browse",
    Key.BACKSPACE: "delete_char",
    Key.QUIT: "quit",
}
NAVIGATION = {"up", "down", "page_up", "page_down", "home", "end"}


class RecordSource(Protocol):
    @property
    def records(self) -> tuple[InstanceRecord, ...]: ...

    def refresh(self) -> None: ...


class RunningQuery(Protocol):
    def is_running(self, record: InstanceRecord) -> bool: ...

    def running_ids(self, records: Iterable[InstanceRecord]) -> set[str]: ...


class Dispatcher(Protocol):
    def launch(self, record: InstanceRecord) -> None: ...

    def open_folder(self, path: str | Path) -> None: ...


@dataclass(frozen=True, slots=True)
class Row:
    record: InstanceRecord
    running: bool
    selected: bool


@dataclass(frozen=True, slots=True)
class Frame:
    mode: Mode
    sort_key: SortKey
    filter_text: str
    rows: tuple[Row, ...]
    offset: int
    matched: int
    total: int
    notice: str | None = None
    detail: Row | None = None


def sort_records(records: Iterable[InstanceRecord], sort_key: SortKey) -> list[InstanceRecord]:
    by_name = sorted(records, key=lambda record: (record.display_name.casefold(), record.id))
    if sort_key is SortKey.LAST_PLAYED:
        return sorted(
            by_name,
            key=lambda record: (
                record.last_played is None,
                -record.last_played.timestamp() if record.last_played else 0.0,
            ),
        )
    if sort_key is SortKey.PLAYTIME:
        return sorted(by_name, key=lambda record: -record.total_playtime)
    return by_name


def project(records: Iterable[InstanceRecord], state: ViewState) -> list[InstanceRecord]:
    needle = state.filter_text.casefold()
    if state.mode is Mode.SEARCH and needle:
        records = [record for record in records if needle in record.display_name.casefold()]
    return sort_records(records, state.sort_key)


def clamp_index(index: int | None, count: int) -> int | None:
    if count <= 0:
        return None
    if index is None:
        return 0
    return min(max(index, 0), count - 1)


def window_offset(index: int | None, count: int, height: int) -> int:
    """First visible row so that ``index`` stays on screen, roughly centered."""
    if index is None or height <= 0 or count <= height:
        return 0
    return min(max(index - height // 2, 0), count - height)


class InstanceBrowser:
    def __init__(
        self,
        repository: RecordSource,
        monitor: RunningQuery,
        dispatcher: Dispatcher,
        quit_after_launch: bool = False,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self.repository = repository
        self.monitor = monitor
        self.dispatcher = dispatcher
        self.quit_after_launch = quit_after_launch
        self.page_size = page_size

    def projection(self, state: ViewState) -> list[InstanceRecord]:
        return project(self.repository.records, state)

    def selected(self, state: ViewState) -> InstanceRecord | None:
        items = self.projection(state)
        index = clamp_index(state.selected_index, len(items))
        return items[index] if index is not None else None

    def sync(self, state: ViewState) -> None:
        state.selected_index = clamp_index(state.selected_index, len(self.projection(state)))

    def handle(self, state: ViewState, event: KeyEvent) -> None:
        before = self.projection(state)
        state.selected_index = clamp_index(state.selected_index, len(before))
        anchor = before[state.selected_index] if state.selected_index is not None else None
        state.notice = None

        if state.mode is Mode.SEARCH:
            action = self._search_action(state, event)
        elif state.mode is Mode.DETAILS:
            action = "quit" if self._is_quit(event) else "browse"
        else:
            action = self._browse_action(event)
        if action is not None:
            self._apply(state, action, before)

        after = self.projection(state)
        if [record.id for record in after] != [record.id for record in before]:
            state.selected_index = self._reanchor(after, anchor, state.selected_index)
        else:
            state.selected_index = clamp_index(state.selected_index, len(after))

    def frame(self, state: ViewState, visible_rows: int) -> Frame:
        items = self.projection(state)
        index = clamp_index(state.selected_index, len(items))
        common = dict(
            mode=state.mode,
            sort_key=state.sort_key,
            filter_text=state.filter_text,
            matched=len(items),
            total=len(self.repository.records),
            notice=state.notice,
        )
        if state.mode is Mode.DETAILS and index is not None:
            record = items[index]
            detail = Row(record=record, running=self.monitor.is_running(record), selected=True)
            return Frame(rows=(), offset=0, detail=detail, **common)

        offset = window_offset(index, len(items), visible_rows)
        visible = items[offset : offset + max(visible_rows, 0)]
        running = self.monitor.running_ids(visible)
        rows = tuple(
            Row(record=record, running=record.id in running, selected=offset + pos == index)
            for pos, record in enumerate(visible)
        )
        return Frame(rows=rows, offset=offset, **common)

    @staticmethod
    def _is_quit(event: KeyEvent) -> bool:
        return event.key is Key.QUIT or (event.key is Key.CHAR and event.char == "q")

    @staticmethod
    def _browse_action(event: KeyEvent) -> str | None:
        if event.key is Key.CHAR:
            return BROWSE_CHAR_ACTIONS.get(event.char)
        return BROWSE_KEY_ACTIONS.get(event.key)

    @staticmethod
    def _search_action(state: ViewState, event: KeyEvent) -> str | None:
        if event.key is Key.CHAR:
            if event.char and event.char.isprintable():
                state.filter_text += event.char
            return None
        return SEARCH_KEY_ACTIONS.get(event.key)

    def _apply(self, state: ViewState, action: str, items: list[InstanceRecord]) -> None:
        if action in NAVIGATION:
            self._move(state, action, len(items))
        elif action == "quit":
            state.quit_requested = True
        elif action == "search":
            state.mode = Mode.SEARCH
        elif action == "browse":
            state.mode = Mode.BROWSE
        elif action == "details":
            if state.selected_index is not None:
                state.mode = Mode.DETAILS
        elif action == "sort":
            state.sort_key = state.sort_key.next()
        elif action == "delete_char":
            state.filter_text = state.filter_text[:-1]
        elif action == "clear_filter":
            state.filter_text = ""
        elif action == "launch":
            self._launch(state, items)
        elif action == "open_folder":
            self._open_folder(state, items)
        elif action == "refresh":
            self._refresh(state)

    def _move(self, state: ViewState, action: str, count: int) -> None:
        if count == 0:
            return
        current = state.selected_index or 0
        if action == "home":
            target = 0
        elif action == "end":
            target = count - 1
        else:
            step = self.page_size if action.startswith("page_") else 1
            target = current - step if action.endswith("up") else current + step
        state.selected_index = min(max(target, 0), count - 1)

    def _launch(self, state: ViewState, items: list[InstanceRecord]) -> None:
        if state.selected_index is None:
            state.notice = "No instance selected."
            return
        record = items[state.selected_index]
        try:
            self.dispatcher.launch(record)
        except DispatchError as exc:
            state.notice = f"Launch failed: {exc}"
            return
        state.notice = f"Launching {record.display_name}..."
        if self.quit_after_launch:
            state.quit_requested = True

    def _open_folder(self, state: ViewState, items: list[InstanceRecord]) -> None:
        if state.selected_index is None:
            state.notice = "No instance selected."
            return
        record = items[state.selected_index]
        try:
            self.dispatcher.open_folder(record.path)
        except DispatchError as exc:
            state.notice = f"Open folder failed: {exc}"
            return
        state.notice = f"Opened {record.path}"

    def _refresh(self, state: ViewState) -> None:
        try:
            self.repository.refresh()
        except RepositoryError as exc:
            logger.warning("Refresh failed: %s", exc)
            state.notice = f"Refresh failed: {exc}"
            return
        state.notice = f"Reloaded {len(self.repository.records)} instance(s)."

    @staticmethod
    def _reanchor(
        items: list[InstanceRecord],
        anchor: InstanceRecord | None,
        index: int | None,
    ) -> int | None:
        if anchor is not None:
            for pos, record in enumerate(items):
                if record.id == anchor.id:
                    return pos
        return clamp_index(index, len(items))
