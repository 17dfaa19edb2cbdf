import itertools
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from mctui.exceptions import DispatchError, RepositoryError
from mctui.models import InstanceRecord, Mode, SortKey, ViewState
from mctui.view import InstanceBrowser, Key, KeyEvent, project, sort_records, window_offset

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _record(instance_id, last_played=None, playtime=0, name=None):
    return InstanceRecord(
        id=instance_id,
        display_name=name or instance_id,
        path=Path("/instances") / instance_id,
        last_played=last_played,
        total_playtime=playtime,
    )


SURVIVAL = _record("Survival", last_played=NOW - timedelta(days=1), playtime=100)
CREATIVE = _record("Creative", last_played=NOW - timedelta(days=2), playtime=50)


class _FakeRepository:
    def __init__(self, records, fail_refresh=False):
        self.records = tuple(records)
        self.next_records = None
        self.fail_refresh = fail_refresh

    def refresh(self):
        if self.fail_refresh:
            raise RepositoryError("Instances directory does not exist: /gone")
        if self.next_records is not None:
            self.records = tuple(self.next_records)


class _FakeMonitor:
    def __init__(self, running=()):
        self.running = set(running)
        self.queried = []

    def is_running(self, record):
        self.queried.append([record.id])
        return record.id in self.running

    def running_ids(self, records):
        ids = [record.id for record in records]
        self.queried.append(ids)
        return {instance_id for instance_id in ids if instance_id in self.running}


class _FakeDispatcher:
    def __init__(self, fail=False):
        self.fail = fail
        self.launched = []
        self.opened = []

    def launch(self, record):
        if self.fail:
            raise DispatchError("Could not launch: launch-minecraft.sh: No such file or directory")
        self.launched.append(record.id)

    def open_folder(self, path):
        if self.fail:
            raise DispatchError("Could not open folder: xdg-open: No such file or directory")
        self.opened.append(path)


def _browser(records=(SURVIVAL, CREATIVE), **kwargs):
    repository = _FakeRepository(records)
    dispatcher = kwargs.pop("dispatcher", _FakeDispatcher())
    monitor = kwargs.pop("monitor", _FakeMonitor())
    browser = InstanceBrowser(repository, monitor, dispatcher, **kwargs)
    state = ViewState()
    browser.sync(state)
    return browser, state


def _names(browser, state):
    return [record.display_name for record in browser.projection(state)]


def _type(browser, state, text):
    for char in text:
        browser.handle(state, KeyEvent.of(char))


def test_default_sort_and_sort_cycle_scenario():
    browser, state = _browser()
    assert _names(browser, state) == ["Creative", "Survival"]

    browser.handle(state, KeyEvent.of("s"))
    assert state.sort_key is SortKey.LAST_PLAYED
    assert _names(browser, state) == ["Survival", "Creative"]

    browser.handle(state, KeyEvent.of("s"))
    assert state.sort_key is SortKey.PLAYTIME
    assert _names(browser, state) == ["Survival", "Creative"]

    browser.handle(state, KeyEvent.of("s"))
    assert state.sort_key is SortKey.NAME


def test_sort_cycle_has_period_three():
    for start in SortKey:
        assert start.next().next().next() is start
        assert start.next() is not start


def test_search_scenario_filters_and_backspace_restores():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("/"))
    assert state.mode is Mode.SEARCH

    _type(browser, state, "cre")
    assert _names(browser, state) == ["Creative"]

    browser.handle(state, KeyEvent(Key.BACKSPACE))
    assert state.filter_text == "cr"
    assert _names(browser, state) == ["Creative"]

    browser.handle(state, KeyEvent(Key.BACKSPACE))
    browser.handle(state, KeyEvent(Key.BACKSPACE))
    assert _names(browser, state) == ["Creative", "Survival"]


def test_search_deleting_last_character_of_cre_restores_both_under_active_sort():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("s"))
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "c")
    assert _names(browser, state) == ["Creative"]
    browser.handle(state, KeyEvent(Key.BACKSPACE))
    assert _names(browser, state) == ["Survival", "Creative"]


def test_filter_is_case_insensitive_and_idempotent():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "SURV")
    first = browser.projection(state)
    second = project(browser.repository.records, state)
    assert first == second == [SURVIVAL]


def test_search_characters_are_text_not_commands():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "qsj")
    assert state.filter_text == "qsj"
    assert state.sort_key is SortKey.NAME
    assert not state.quit_requested


def test_search_round_trip_leaves_state_unchanged():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("s"))
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "sur")
    browser.handle(state, KeyEvent(Key.ESCAPE))

    before = (state.filter_text, state.sort_key, browser.projection(state))
    browser.handle(state, KeyEvent.of("/"))
    browser.handle(state, KeyEvent(Key.ESCAPE))
    after = (state.filter_text, state.sort_key, browser.projection(state))

    assert state.mode is Mode.BROWSE
    assert before == after
    assert state.filter_text == "sur"


def test_escape_in_browse_clears_stored_filter():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "x")
    browser.handle(state, KeyEvent(Key.ESCAPE))
    browser.handle(state, KeyEvent(Key.ESCAPE))
    assert state.filter_text == ""
    assert not state.quit_requested


def test_navigation_saturates_at_bounds():
    records = [_record(f"inst-{idx:02d}") for idx in range(5)]
    browser, state = _browser(records)
    assert state.selected_index == 0

    browser.handle(state, KeyEvent(Key.UP))
    assert state.selected_index == 0

    for _ in range(10):
        browser.handle(state, KeyEvent.of("j"))
    assert state.selected_index == 4

    browser.handle(state, KeyEvent.of("k"))
    assert state.selected_index == 3
    browser.handle(state, KeyEvent.of("g"))
    assert state.selected_index == 0
    browser.handle(state, KeyEvent.of("G"))
    assert state.selected_index == 4
    browser.handle(state, KeyEvent(Key.PAGE_UP))
    assert state.selected_index == 0
    browser.handle(state, KeyEvent(Key.PAGE_DOWN))
    assert state.selected_index == 4


def test_filter_that_removes_selection_clamps_index():
    records = [_record("alpha"), _record("beta"), _record("gamma"), _record("delta")]
    browser, state = _browser(records)
    browser.handle(state, KeyEvent.of("G"))
    assert browser.selected(state).id == "gamma"

    browser.handle(state, KeyEvent.of("/"))
    assert browser.selected(state).id == "gamma"
    _type(browser, state, "al")
    assert _names(browser, state) == ["alpha"]
    assert state.selected_index == 0

    _type(browser, state, "zz")
    assert browser.projection(state) == []
    assert state.selected_index is None
    assert browser.selected(state) is None


def test_selection_follows_record_across_sort_changes():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("j"))
    assert browser.selected(state) is SURVIVAL
    browser.handle(state, KeyEvent.of("s"))
    assert browser.selected(state) is SURVIVAL
    assert state.selected_index == 0


def test_selected_index_in_bounds_for_all_short_input_sequences():
    records = [
        _record("Creative", last_played=NOW - timedelta(days=2), playtime=50),
        _record("Survival", last_played=NOW - timedelta(days=1), playtime=100),
        _record("Skyblock", playtime=10),
        _record("Create Above and Beyond", last_played=NOW, playtime=5),
    ]
    alphabet = [
        KeyEvent.of("/"),
        KeyEvent.of("c"),
        KeyEvent.of("s"),
        KeyEvent.of("j"),
        KeyEvent(Key.BACKSPACE),
        KeyEvent(Key.ESCAPE),
        KeyEvent(Key.DOWN),
        KeyEvent(Key.TAB),
    ]
    for sequence in itertools.product(alphabet, repeat=4):
        browser, state = _browser(records)
        for event in sequence:
            browser.handle(state, event)
            count = len(browser.projection(state))
            if count == 0:
                assert state.selected_index is None
            else:
                assert 0 <= state.selected_index < count


def test_missing_last_played_sorts_last():
    never = _record("Aaa never played")
    older = _record("Old", last_played=NOW - timedelta(days=30))
    newer = _record("New", last_played=NOW)
    ordered = sort_records([never, older, newer], SortKey.LAST_PLAYED)
    assert ordered == [newer, older, never]


def test_playtime_sort_is_descending_with_name_tie_break():
    a = _record("b-pack", playtime=10)
    b = _record("a-pack", playtime=10)
    c = _record("c-pack", playtime=99)
    assert sort_records([a, b, c], SortKey.PLAYTIME) == [c, b, a]


def test_details_mode_and_dismiss():
    browser, state = _browser()
    browser.handle(state, KeyEvent(Key.TAB))
    assert state.mode is Mode.DETAILS

    frame = browser.frame(state, visible_rows=10)
    assert frame.detail.record is CREATIVE
    assert frame.rows == ()

    browser.handle(state, KeyEvent.of("x"))
    assert state.mode is Mode.BROWSE
    assert not state.quit_requested


def test_details_requires_a_selection():
    browser, state = _browser(records=())
    browser.handle(state, KeyEvent.of("i"))
    assert state.mode is Mode.BROWSE


def test_quit_from_every_mode():
    for setup in ([], [KeyEvent.of("/")], [KeyEvent.of("i")]):
        browser, state = _browser()
        for event in setup:
            browser.handle(state, event)
        browser.handle(state, KeyEvent(Key.QUIT))
        assert state.quit_requested

    browser, state = _browser()
    browser.handle(state, KeyEvent.of("i"))
    browser.handle(state, KeyEvent.of("q"))
    assert state.quit_requested


def test_launch_dispatches_selected_record_without_transition():
    dispatcher = _FakeDispatcher()
    browser, state = _browser(dispatcher=dispatcher)
    browser.handle(state, KeyEvent.of("j"))
    browser.handle(state, KeyEvent(Key.ENTER))

    assert dispatcher.launched == ["Survival"]
    assert state.mode is Mode.BROWSE
    assert state.selected_index == 1
    assert state.notice == "Launching Survival..."
    assert not state.quit_requested


def test_launch_from_search_uses_filtered_selection():
    dispatcher = _FakeDispatcher()
    browser, state = _browser(dispatcher=dispatcher)
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "surv")
    browser.handle(state, KeyEvent(Key.ENTER))
    assert dispatcher.launched == ["Survival"]
    assert state.mode is Mode.SEARCH


def test_failed_launch_leaves_state_and_shows_transient_notice():
    browser, state = _browser(dispatcher=_FakeDispatcher(fail=True))
    browser.handle(state, KeyEvent.of("j"))
    browser.handle(state, KeyEvent(Key.ENTER))

    assert state.selected_index == 1
    assert state.mode is Mode.BROWSE
    assert state.notice.startswith("Launch failed:")

    browser.handle(state, KeyEvent.of("k"))
    assert state.notice is None


def test_quit_after_launch_option():
    browser, state = _browser(quit_after_launch=True)
    browser.handle(state, KeyEvent(Key.ENTER))
    assert state.quit_requested


def test_launch_with_empty_projection_is_a_notice():
    dispatcher = _FakeDispatcher()
    browser, state = _browser(records=(), dispatcher=dispatcher)
    browser.handle(state, KeyEvent(Key.ENTER))
    assert dispatcher.launched == []
    assert state.notice == "No instance selected."


def test_open_folder_success_and_failure():
    dispatcher = _FakeDispatcher()
    browser, state = _browser(dispatcher=dispatcher)
    browser.handle(state, KeyEvent.of("o"))
    assert dispatcher.opened == [CREATIVE.path]

    browser, state = _browser(dispatcher=_FakeDispatcher(fail=True))
    browser.handle(state, KeyEvent.of("o"))
    assert state.notice.startswith("Open folder failed:")
    assert state.mode is Mode.BROWSE


def test_refresh_replaces_records_and_reclamps():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("j"))
    browser.repository.next_records = [CREATIVE]
    browser.handle(state, KeyEvent.of("r"))

    assert _names(browser, state) == ["Creative"]
    assert state.selected_index == 0
    assert state.notice == "Reloaded 1 instance(s)."


def test_refresh_failure_keeps_snapshot():
    browser, state = _browser()
    browser.repository.fail_refresh = True
    browser.handle(state, KeyEvent.of("r"))
    assert _names(browser, state) == ["Creative", "Survival"]
    assert state.notice.startswith("Refresh failed:")


def test_frame_queries_monitor_for_visible_rows_only():
    records = [_record(f"inst-{idx:02d}") for idx in range(30)]
    monitor = _FakeMonitor(running={"inst-01", "inst-25"})
    browser, state = _browser(records, monitor=monitor)
    browser.handle(state, KeyEvent.of("j"))

    frame = browser.frame(state, visible_rows=5)

    assert monitor.queried == [[f"inst-{idx:02d}" for idx in range(5)]]
    assert [row.record.id for row in frame.rows if row.running] == ["inst-01"]
    assert [row.record.id for row in frame.rows if row.selected] == ["inst-01"]
    assert frame.matched == frame.total == 30


def test_frame_scrolls_to_keep_selection_visible():
    records = [_record(f"inst-{idx:02d}") for idx in range(30)]
    browser, state = _browser(records)
    browser.handle(state, KeyEvent.of("G"))
    frame = browser.frame(state, visible_rows=5)
    assert frame.offset == 25
    assert frame.rows[-1].selected


def test_frame_for_empty_projection():
    browser, state = _browser()
    browser.handle(state, KeyEvent.of("/"))
    _type(browser, state, "nothing")
    frame = browser.frame(state, visible_rows=5)
    assert frame.rows == ()
    assert frame.matched == 0
    assert frame.total == 2
    assert frame.filter_text == "nothing"


@pytest.mark.parametrize(
    "index,count,height,expected",
    [(None, 10, 5, 0), (0, 3, 5, 0), (4, 10, 5, 2), (9, 10, 5, 5), (2, 10, 0, 0)],
)
def test_window_offset(index, count, height, expected):
    assert window_offset(index, count, height) == expected
