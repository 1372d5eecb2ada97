# tests/test_render.py

from __future__ import annotations

from crewtasks.core import reducers
from crewtasks.core.models import Project, Task, TaskStatus
from crewtasks.core.state import SyncStatus, Tab, TrackerState
from crewtasks.ui import render
from crewtasks.ui.theme import PLAIN, Theme

COLOR = Theme(enabled=True)


def _state(**kw) -> TrackerState:
    base = dict(
        current_user="Verma",
        projects=(
            Project(id="p1aaaaaaaaaa", name="Launch", created_at="1"),
            Project(id="p2bbbbbbbbbb", name="Old", archived=True, expanded=False, created_at="2"),
        ),
        tasks=(
            Task(id="t1aaaaaaaaaa", project_id="p1aaaaaaaaaa", text="Write copy", added_by="Verma", created_at="3"),
            Task(
                id="t2bbbbbbbbbb",
                project_id="p1aaaaaaaaaa",
                text="Ship",
                status=TaskStatus.DONE,
                added_by="Thor",
                created_at="4",
            ),
            Task(
                id="t3cccccccccc",
                project_id="p1aaaaaaaaaa",
                text="Review copy",
                status=TaskStatus.REVIEW,
                reviewer="Jerome",
                notes="see doc",
                created_at="5",
            ),
        ),
        sync_status=SyncStatus.ONLINE,
        loading=False,
    )
    base.update(kw)
    return TrackerState(**base)


def test_done_task_is_dimmed_and_struck_through() -> None:
    state = _state()
    done = state.find_task("t2bbbbbbbbbb")

    line = render.render_task_line(done, state, COLOR)

    assert "\x1b[2;9mShip\x1b[0m" in line
    assert render.STATUS_ICONS[TaskStatus.DONE] in line
    # One more press brings it back to To Do.
    assert done.status.next() == TaskStatus.ACTIVE


def test_task_badges() -> None:
    state = _state()
    mine = render.render_task_line(state.find_task("t1aaaaaaaaaa"), state, PLAIN)
    theirs = render.render_task_line(state.find_task("t2bbbbbbbbbb"), state, PLAIN)
    review = render.render_task_line(state.find_task("t3cccccccccc"), state, PLAIN)

    assert "from" not in mine
    assert "from Thor" in theirs
    assert "📝" in review and "→ Jerome" in review
    assert "#t1aaaaaa" in mine


def test_board_shows_tabs_counts_and_remaining() -> None:
    board = render.render_board(_state(), PLAIN)

    assert "● Live" in board
    assert "[Active (1)]" in board and "Archived (1)" in board
    assert "Launch" in board and "2 remaining" in board
    assert "Old" not in board

    archived = render.render_board(reducers.set_tab(_state(), Tab.ARCHIVED), PLAIN)
    assert "Old" in archived and "Launch" not in archived


def test_collapsed_project_hides_tasks_but_keeps_count() -> None:
    state = reducers.patch_project(_state(), "p1aaaaaaaaaa", expanded=False)
    board = render.render_board(state, PLAIN)
    assert "Write copy" not in board
    assert "2 remaining" in board


def test_loading_and_offline_indicators() -> None:
    assert "Loading..." in render.render_board(TrackerState(current_user="Verma"), PLAIN)
    offline = render.render_board(_state(sync_status=SyncStatus.OFFLINE), PLAIN)
    assert "● Offline" in offline


def test_task_panel_and_empty_state() -> None:
    state = _state()
    assert render.render_task_panel(state) == render.EMPTY_PANEL

    panel = render.render_task_panel(reducers.select_task(state, "t3cccccccccc"), ["Verma", "Thor"])
    assert "Project:  Launch" in panel
    assert "Awaiting Review" in panel
    assert "Reviewer: Jerome" in panel
    assert "see doc" in panel

    # The selected task disappears: the panel falls back to its empty state.
    gone = reducers.remove_project(reducers.select_task(state, "t3cccccccccc"), "p1aaaaaaaaaa")
    assert render.render_task_panel(gone) == render.EMPTY_PANEL


def test_plain_theme_emits_no_escape_codes() -> None:
    assert "\x1b[" not in render.render_board(_state(), PLAIN)
