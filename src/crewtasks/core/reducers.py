# src/crewtasks/core/reducers.py

"""
Pure state transitions.

Every function takes a TrackerState (plus arguments) and returns a new
TrackerState. Functions return the same instance when nothing changes, which
lets the Store skip listener notifications.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from .models import Project, Task
from .state import SyncStatus, Tab, Toast, TrackerState

_R = TypeVar("_R", Project, Task)


# ---- helpers ----


def _index_of(items: Sequence[_R], record_id: str) -> int:
    for i, item in enumerate(items):
        if item.id == record_id:
            return i
    return -1


def _insert_ordered(items: tuple[_R, ...], record: _R) -> tuple[_R, ...]:
    """Insert keeping creation order; rows without a timestamp go last."""
    if record.created_at is None:
        return items + (record,)
    for i, item in enumerate(items):
        if item.created_at is not None and item.created_at > record.created_at:
            return items[:i] + (record,) + items[i:]
    return items + (record,)


def _selection_in_project(state: TrackerState, project_id: str) -> bool:
    task = state.find_task(state.selected_task_id)
    return task is not None and task.project_id == project_id


# ---- session / sync status ----


def login(state: TrackerState, name: str) -> TrackerState:
    # A new identity starts from a clean mirror.
    return TrackerState(current_user=name, sync_status=SyncStatus.SYNCING, loading=True)


def logout(state: TrackerState) -> TrackerState:
    return TrackerState(next_toast_id=state.next_toast_id)


def begin_sync(state: TrackerState) -> TrackerState:
    if state.sync_status == SyncStatus.SYNCING:
        return state
    return replace(state, sync_status=SyncStatus.SYNCING)


def load_snapshot(
    state: TrackerState, projects: Iterable[Project], tasks: Iterable[Task]
) -> TrackerState:
    return replace(
        state,
        projects=tuple(projects),
        tasks=tuple(tasks),
        sync_status=SyncStatus.ONLINE,
        loading=False,
    )


def sync_failed(state: TrackerState) -> TrackerState:
    return replace(state, sync_status=SyncStatus.OFFLINE, loading=False)


# ---- mirror: projects ----


def insert_project(state: TrackerState, project: Project) -> TrackerState:
    if _index_of(state.projects, project.id) >= 0:
        return state
    return replace(state, projects=state.projects + (project,))


def replace_project(state: TrackerState, project: Project) -> TrackerState:
    idx = _index_of(state.projects, project.id)
    if idx < 0 or state.projects[idx] == project:
        return state
    items = list(state.projects)
    items[idx] = project
    return replace(state, projects=tuple(items))


def patch_project(state: TrackerState, project_id: str, **changes: Any) -> TrackerState:
    current = state.find_project(project_id)
    if current is None:
        return state
    return replace_project(state, replace(current, **changes))


def remove_project(state: TrackerState, project_id: str) -> TrackerState:
    if _index_of(state.projects, project_id) < 0:
        return state
    return replace(state, projects=tuple(p for p in state.projects if p.id != project_id))


def delete_project_cascade(state: TrackerState, project_id: str) -> TrackerState:
    """Drop a project and every task under it; clear view state pointing into it."""
    clear_selection = _selection_in_project(state, project_id)
    projects = tuple(p for p in state.projects if p.id != project_id)
    tasks = tuple(t for t in state.tasks if t.project_id != project_id)
    if len(projects) == len(state.projects) and len(tasks) == len(state.tasks):
        return state
    return replace(
        state,
        projects=projects,
        tasks=tasks,
        selected_task_id=None if clear_selection else state.selected_task_id,
        editing_project_id=None if state.editing_project_id == project_id else state.editing_project_id,
        adding_task_to=None if state.adding_task_to == project_id else state.adding_task_to,
    )


def archive_project(state: TrackerState, project_id: str) -> TrackerState:
    if state.find_project(project_id) is None:
        return state
    clear_selection = _selection_in_project(state, project_id)
    state = patch_project(state, project_id, archived=True, expanded=False)
    if clear_selection:
        state = replace(state, selected_task_id=None)
    return state


def swap_placeholder_project(state: TrackerState, local_id: str, project: Project) -> TrackerState:
    """Replace a placeholder with the acknowledged row (unless its echo already landed)."""
    idx = _index_of(state.projects, local_id)
    if _index_of(state.projects, project.id) >= 0:
        return remove_project(state, local_id)
    if idx < 0:
        return insert_project(state, project)
    items = list(state.projects)
    items[idx] = project
    return replace(state, projects=tuple(items))


# ---- mirror: tasks ----


def insert_task(state: TrackerState, task: Task) -> TrackerState:
    if _index_of(state.tasks, task.id) >= 0:
        return state
    return replace(state, tasks=state.tasks + (task,))


def replace_task(state: TrackerState, task: Task) -> TrackerState:
    idx = _index_of(state.tasks, task.id)
    if idx < 0 or state.tasks[idx] == task:
        return state
    items = list(state.tasks)
    items[idx] = task
    return replace(state, tasks=tuple(items))


def patch_task(state: TrackerState, task_id: str, **changes: Any) -> TrackerState:
    current = state.find_task(task_id)
    if current is None:
        return state
    return replace_task(state, replace(current, **changes))


def remove_task(state: TrackerState, task_id: str) -> TrackerState:
    if _index_of(state.tasks, task_id) < 0:
        return state
    return replace(
        state,
        tasks=tuple(t for t in state.tasks if t.id != task_id),
        selected_task_id=None if state.selected_task_id == task_id else state.selected_task_id,
    )


def swap_placeholder_task(state: TrackerState, local_id: str, task: Task) -> TrackerState:
    idx = _index_of(state.tasks, local_id)
    if _index_of(state.tasks, task.id) >= 0:
        return remove_task(state, local_id)
    if idx < 0:
        return insert_task(state, task)
    items = list(state.tasks)
    items[idx] = task
    selected = task.id if state.selected_task_id == local_id else state.selected_task_id
    return replace(state, tasks=tuple(items), selected_task_id=selected)


# ---- view state ----


def select_task(state: TrackerState, task_id: str) -> TrackerState:
    if state.find_task(task_id) is None or state.selected_task_id == task_id:
        return state
    return replace(state, selected_task_id=task_id)


def clear_selection(state: TrackerState) -> TrackerState:
    if state.selected_task_id is None:
        return state
    return replace(state, selected_task_id=None)


def set_tab(state: TrackerState, tab: Tab) -> TrackerState:
    if state.active_tab == tab:
        return state
    return replace(state, active_tab=tab)


def start_editing_project(state: TrackerState, project_id: str) -> TrackerState:
    project = state.find_project(project_id)
    if project is None or project.archived:
        return state
    return replace(state, editing_project_id=project_id, editing_project_name=project.name)


def set_editing_name(state: TrackerState, name: str) -> TrackerState:
    if state.editing_project_id is None:
        return state
    return replace(state, editing_project_name=name)


def cancel_editing(state: TrackerState) -> TrackerState:
    if state.editing_project_id is None and not state.editing_project_name:
        return state
    return replace(state, editing_project_id=None, editing_project_name="")


def open_add_task(state: TrackerState, project_id: str) -> TrackerState:
    project = state.find_project(project_id)
    if project is None or project.archived:
        return state
    return replace(state, adding_task_to=project_id)


def cancel_add_task(state: TrackerState) -> TrackerState:
    if state.adding_task_to is None:
        return state
    return replace(state, adding_task_to=None)


def show_toast(state: TrackerState, message: str) -> TrackerState:
    toast = Toast(id=state.next_toast_id, message=message)
    return replace(state, toast=toast, next_toast_id=state.next_toast_id + 1)


def clear_toast(state: TrackerState, toast_id: int) -> TrackerState:
    if state.toast is None or state.toast.id != toast_id:
        return state
    return replace(state, toast=None)


# ---- rollback of optimistic writes ----


@dataclass(frozen=True, slots=True)
class PendingWrite:
    """
    Before/after copies of the rows one optimistic action touched.

    A side of None means the row did not exist on that side (created or removed).
    """

    projects: tuple[tuple[Project | None, Project | None], ...] = ()
    tasks: tuple[tuple[Task | None, Task | None], ...] = ()


def capture_write(
    before: TrackerState,
    after: TrackerState,
    *,
    project_ids: Iterable[str] = (),
    task_ids: Iterable[str] = (),
) -> PendingWrite:
    return PendingWrite(
        projects=tuple((before.find_project(i), after.find_project(i)) for i in project_ids),
        tasks=tuple((before.find_task(i), after.find_task(i)) for i in task_ids),
    )


def _revert_rows(items: tuple[_R, ...], pairs: Iterable[tuple[_R | None, _R | None]]) -> tuple[_R, ...]:
    for old, new in pairs:
        record_id = (old or new).id  # type: ignore[union-attr]
        idx = _index_of(items, record_id)
        current = items[idx] if idx >= 0 else None
        if new is None:
            # We removed it; bring it back unless something re-created it meanwhile.
            if current is None and old is not None:
                items = _insert_ordered(items, old)
        elif current == new:
            if old is None:
                items = items[:idx] + items[idx + 1 :]
            else:
                items = items[:idx] + (old,) + items[idx + 1 :]
        # Otherwise a newer remote value superseded ours: keep it.
    return items


def rollback(state: TrackerState, pending: PendingWrite) -> TrackerState:
    projects = _revert_rows(state.projects, pending.projects)
    tasks = _revert_rows(state.tasks, pending.tasks)
    if projects == state.projects and tasks == state.tasks:
        return state
    return replace(state, projects=projects, tasks=tasks)
