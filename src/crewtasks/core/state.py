# src/crewtasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .models import Project, Task


class Tab(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class SyncStatus(StrEnum):
    SYNCING = "syncing"
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True, slots=True)
class Toast:
    id: int
    message: str


@dataclass(frozen=True, slots=True)
class TrackerState:
    """
    Everything the UI renders from.

    The mirror (projects/tasks) is a non-authoritative copy of the gateway's rows
    kept in creation order. The remaining fields are view state and never leave
    the client. Instances are immutable; use the functions in core.reducers to
    derive a new state.
    """

    current_user: str | None = None

    projects: tuple[Project, ...] = ()
    tasks: tuple[Task, ...] = ()

    selected_task_id: str | None = None
    active_tab: Tab = Tab.ACTIVE

    editing_project_id: str | None = None
    editing_project_name: str = ""
    adding_task_to: str | None = None

    toast: Toast | None = None
    next_toast_id: int = 1

    sync_status: SyncStatus = SyncStatus.SYNCING
    loading: bool = True

    @property
    def authenticated(self) -> bool:
        return self.current_user is not None

    def find_project(self, project_id: str | None) -> Project | None:
        if project_id is None:
            return None
        for p in self.projects:
            if p.id == project_id:
                return p
        return None

    def find_task(self, task_id: str | None) -> Task | None:
        if task_id is None:
            return None
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None
