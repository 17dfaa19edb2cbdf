from __future__ import annotations

import curses
from datetime import datetime

from .models import InstanceRecord, Mode, ViewState
from .utils import format_duration, format_last_played
from .view import Frame, InstanceBrowser, Key, KeyEvent, Row

TITLE = "Minecraft Instance Manager"
HEADER_LINES = 3
FOOTER_LINES = 2

SPECIAL_KEYS = {
    curses.KEY_UP: Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    curses.KEY_PPAGE: Key.PAGE_UP,
    curses.KEY_NPAGE: Key.PAGE_DOWN,
    curses.KEY_HOME: Key.HOME,
    curses.KEY_END: Key.END,
    curses.KEY_ENTER: Key.ENTER,
    curses.KEY_BACKSPACE: Key.BACKSPACE,
}
CONTROL_CHARS = {
    "\n": Key.ENTER,
    "\r": Key.ENTER,
    "\x1b": Key.ESCAPE,
    "\x7f": Key.BACKSPACE,
    "\b": Key.BACKSPACE,
    "\t": Key.TAB,
    "\x03": Key.QUIT,
    "\x11": Key.QUIT,
}
HELP = {
    Mode.BROWSE: "Up/Down j/k Navigate  Enter Launch  / Search  s Sort  i Details  "
    "o Open folder  r Reload  q Quit",
    Mode.SEARCH: "Type to filter  Up/Down Navigate  Enter Launch  Backspace Delete  "
    "Esc Done  Ctrl-C Quit",
    Mode.DETAILS: "Any key Back  q Quit",
}

COLOR_HEADER = 1
COLOR_RUNNING = 2
COLOR_NOTICE = 3
COLOR_DIM = 4


def translate_key(code: int | str) -> KeyEvent | None:
    if isinstance(code, int):
        key = SPECIAL_KEYS.get(code)
        return KeyEvent(key) if key is not None else None
    if code in CONTROL_CHARS:
        return KeyEvent(CONTROL_CHARS[code])
    if code.isprintable():
        return KeyEvent.of(code)
    return None


def loader_label(record: InstanceRecord) -> str:
    if record.loader_version:
        return f"{record.mod_loader.value} {record.loader_version}"
    return record.mod_loader.value


def format_row(row: Row, width: int, now: datetime | None = None) -> str:
    record = row.record
    marker = ">>" if row.selected else "  "
    status = "RUNNING" if row.running else ""
    columns = (
        f"{record.game_version or '?':<10} "
        f"{record.mod_loader.value:<9} "
        f"{record.mod_count:>4} mods  "
        f"{format_duration(record.total_playtime):>9}  "
        f"{format_last_played(record.last_played, now):<15} "
        f"{status}"
    )
    name_width = max(width - len(marker) - len(columns) - 3, 12)
    name = record.display_name
    if len(name) > name_width:
        name = name[: name_width - 1] + "~"
    return f"{marker} {name:<{name_width}}  {columns}".rstrip()[:width]


def detail_lines(row: Row, now: datetime | None = None) -> list[str]:
    record = row.record
    if record.last_played is not None:
        stamp = record.last_played.astimezone().strftime("%Y-%m-%d %H:%M")
        last_played = f"{stamp} ({format_last_played(record.last_played, now)})"
    else:
        last_played = "Never"
    return [
        f"Name:          {record.display_name}",
        f"Instance id:   {record.id}",
        f"Minecraft:     {record.game_version or 'Unknown'}",
        f"Mod loader:    {loader_label(record)}",
        f"Mods:          {record.mod_count}",
        f"Playtime:      {format_duration(record.total_playtime)}",
        f"Last played:   {last_played}",
        f"Status:        {'Running' if row.running else 'Not running'}",
        f"Folder:        {record.path}",
    ]


def status_line(frame: Frame) -> str:
    parts = [f"Mode: {frame.mode.value.title()}", f"Sort: {frame.sort_key.label}"]
    if frame.mode is Mode.SEARCH or frame.filter_text:
        parts.append(f"Filter: {frame.filter_text}")
    parts.append(f"{frame.matched}/{frame.total} instances")
    return "  |  ".join(parts)


def list_height(screen_height: int) -> int:
    return max(screen_height - HEADER_LINES - FOOTER_LINES, 1)


def run(browser: InstanceBrowser, state: ViewState) -> None:
    curses.wrapper(_main, browser, state)


def _main(stdscr, browser: InstanceBrowser, state: ViewState) -> None:  # noqa: ANN001
    _setup(stdscr)
    while not state.quit_requested:
        height, width = stdscr.getmaxyx()
        frame = browser.frame(state, visible_rows=list_height(height))
        _draw(stdscr, frame, height, width)
        try:
            code = stdscr.get_wch()
        except KeyboardInterrupt:
            event: KeyEvent | None = KeyEvent(Key.QUIT)
        except curses.error:
            continue
        else:
            event = translate_key(code)
        if event is not None:
            browser.handle(state, event)


def _setup(stdscr) -> None:  # noqa: ANN001
    if hasattr(curses, "set_escdelay"):
        curses.set_escdelay(25)
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)
    if curses.has_colors():
        curses.use_default_colors()
        curses.init_pair(COLOR_HEADER, curses.COLOR_CYAN, -1)
        curses.init_pair(COLOR_RUNNING, curses.COLOR_GREEN, -1)
        curses.init_pair(COLOR_NOTICE, curses.COLOR_YELLOW, -1)
        curses.init_pair(COLOR_DIM, curses.COLOR_WHITE, -1)


def _put(stdscr, y: int, x: int, text: str, width: int, attr: int = 0) -> None:  # noqa: ANN001
    # Writing into the bottom-right cell raises even though the text is drawn.
    try:
        stdscr.addnstr(y, x, text, max(width - x, 0), attr)
    except curses.error:
        pass


def _color(pair: int) -> int:
    return curses.color_pair(pair) if curses.has_colors() else 0


def _draw(stdscr, frame: Frame, height: int, width: int) -> None:  # noqa: ANN001
    stdscr.erase()
    _put(stdscr, 0, 0, TITLE.center(width), width, _color(COLOR_HEADER) | curses.A_BOLD)
    _put(stdscr, 1, 0, status_line(frame), width, _color(COLOR_DIM))
    _put(stdscr, 2, 0, "-" * width, width, _color(COLOR_HEADER))

    top = HEADER_LINES
    if frame.detail is not None:
        for offset, line in enumerate(detail_lines(frame.detail)):
            if top + offset >= height - FOOTER_LINES:
                break
            _put(stdscr, top + offset, 2, line, width)
    elif not frame.rows:
        message = "No instances match" if frame.total else "No Minecraft instances found"
        _put(stdscr, top + 1, 0, message.center(width), width, _color(COLOR_NOTICE))
    else:
        for offset, row in enumerate(frame.rows):
            attr = curses.A_REVERSE | curses.A_BOLD if row.selected else 0
            if row.running:
                attr |= _color(COLOR_RUNNING)
            _put(stdscr, top + offset, 0, format_row(row, width), width, attr)

    if frame.notice:
        _put(stdscr, height - 2, 0, frame.notice, width, _color(COLOR_NOTICE) | curses.A_BOLD)
    _put(stdscr, height - 1, 0, HELP[frame.mode], width, curses.A_DIM)
    stdscr.refresh()
