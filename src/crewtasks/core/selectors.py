# src/crewtasks/core/selectors.py

"""Read-only views derived from TrackerState (what the board and panel show)."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Project, Task, TaskStatus
from .state import Tab, TrackerState


@dataclass(frozen=True, slots=True)
class SelectedTaskView:
    task: Task
    project: Project

    @property
    def project_name(self) -> str:
        return self.project.name


def active_projects(state: TrackerState) -> tuple[Project, ...]:
    return tuple(p for p in state.projects if not p.archived)


def archived_projects(state: TrackerState) -> tuple[Project, ...]:
    return tuple(p for p in state.projects if p.archived)


def displayed_projects(state: TrackerState) -> tuple[Project, ...]:
    if state.active_tab == Tab.ARCHIVED:
        return archived_projects(state)
    return active_projects(state)


def tab_counts(state: TrackerState) -> dict[Tab, int]:
    archived = sum(1 for p in state.projects if p.archived)
    return {Tab.ACTIVE: len(state.projects) - archived, Tab.ARCHIVED: archived}


def project_tasks(state: TrackerState, project_id: str) -> tuple[Task, ...]:
    return tuple(t for t in state.tasks if t.project_id == project_id)


def visible_tasks(state: TrackerState, project: Project) -> tuple[Task, ...]:
    """Tasks shown under a project card; collapsed projects show none."""
    if not project.expanded:
        return ()
    return project_tasks(state, project.id)


def remaining_count(state: TrackerState, project_id: str) -> int:
    return sum(1 for t in state.tasks if t.project_id == project_id and t.status != TaskStatus.DONE)


def selected_task_view(state: TrackerState) -> SelectedTaskView | None:
    """
    Resolve the selected task against the current mirror.

    Returns None when nothing is selected or when the task or its project is no
    longer present (e.g. deleted by someone else).
    """
    task = state.find_task(state.selected_task_id)
    if task is None:
        return None
    project = state.find_project(task.project_id)
    if project is None:
        return None
    return SelectedTaskView(task=task, project=project)


def _resolve(ids: list[str], ref: str) -> str | None:
    ref = ref.strip()
    if not ref:
        return None
    if ref in ids:
        return ref
    matches = [i for i in ids if i.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def resolve_project_id(state: TrackerState, ref: str) -> str | None:
    """Exact id, else a unique id prefix."""
    return _resolve([p.id for p in state.projects], ref)


def resolve_task_id(state: TrackerState, ref: str) -> str | None:
    return _resolve([t.id for t in state.tasks], ref)
