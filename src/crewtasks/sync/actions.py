# src/crewtasks/sync/actions.py

from __future__ import annotations

"""
User actions (optimistic mutation protocol).

Every mutating action:
1) validates input (empty/whitespace input is silently ignored),
2) applies the change to the local mirror immediately,
3) issues the matching remote write,
4) on failure logs, shows a toast and (when rollback is enabled) restores the
   rows it touched, unless a newer remote value has replaced them meanwhile.

Creations show a placeholder row with a local id until the gateway returns the
stored row; the placeholder is then swapped for it (or dropped on failure).
There are no retries.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from ..core import reducers
from ..core.models import (
    LOCAL_ID_PREFIX,
    Collection,
    Project,
    Task,
    TaskStatus,
    is_local_id,
    status_updates,
)
from ..core.ports import DataGateway
from ..core.selectors import project_tasks
from ..core.state import Tab
from ..core.store import Reducer, Store
from .toasts import Toaster

logger = logging.getLogger(__name__)

DELETE_PROJECT_PROMPT = "Permanently delete this project and all its tasks? This cannot be undone."

Confirm = bool | Callable[[str], bool | Awaitable[bool]]

MSG_ADD_PROJECT_FAILED = "❌ Failed to add project"
MSG_ADD_TASK_FAILED = "❌ Failed to add task"
MSG_UPDATE_PROJECT_FAILED = "❌ Failed to update project"
MSG_DELETE_PROJECT_FAILED = "❌ Failed to delete project"
MSG_UPDATE_TASK_FAILED = "❌ Failed to update task"
MSG_DELETE_TASK_FAILED = "❌ Failed to delete task"


def _local_id() -> str:
    return f"{LOCAL_ID_PREFIX}{uuid4().hex}"


class TrackerActions:
    def __init__(
        self,
        store: Store,
        gateway: DataGateway,
        toaster: Toaster,
        *,
        default_reviewer: str = "Verma",
        rollback_on_failure: bool = True,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._toaster = toaster
        self.default_reviewer = default_reviewer
        self.rollback_on_failure = rollback_on_failure

    # ---- plumbing ----

    def _apply(
        self,
        reducer: Reducer,
        *args: Any,
        project_ids: tuple[str, ...] = (),
        task_ids: tuple[str, ...] = (),
        **changes: Any,
    ) -> reducers.PendingWrite:
        """Dispatch an optimistic change and remember the rows it touched."""
        before = self._store.state
        after = self._store.dispatch(reducer, *args, **changes)
        return reducers.capture_write(before, after, project_ids=project_ids, task_ids=task_ids)

    async def _commit(
        self,
        user: str,
        pending: reducers.PendingWrite,
        write: Callable[[], Awaitable[None]],
        *,
        failure: str,
        what: str,
    ) -> bool:
        try:
            await write()
            return True
        except Exception:
            logger.exception("Error during %s", what)
            if self._store.state.current_user != user:
                # Session changed while the write was in flight; nothing left to fix up.
                return False
            if self.rollback_on_failure:
                self._store.dispatch(reducers.rollback, pending)
            self._toaster.show(failure)
            return False

    def _editable_project(self, project_id: str) -> Project | None:
        project = self._store.state.find_project(project_id)
        if project is None or is_local_id(project.id):
            return None
        return project

    def _editable_task(self, task_id: str) -> tuple[Task, Project | None] | None:
        state = self._store.state
        task = state.find_task(task_id)
        if task is None or is_local_id(task.id):
            return None
        return task, state.find_project(task.project_id)

    # ---- view state (local only) ----

    def select_task(self, task_id: str) -> None:
        self._store.dispatch(reducers.select_task, task_id)

    def clear_selection(self) -> None:
        self._store.dispatch(reducers.clear_selection)

    def set_tab(self, tab: Tab) -> None:
        self._store.dispatch(reducers.set_tab, tab)

    def start_editing_project(self, project_id: str) -> None:
        self._store.dispatch(reducers.start_editing_project, project_id)

    def set_editing_name(self, name: str) -> None:
        self._store.dispatch(reducers.set_editing_name, name)

    def cancel_editing(self) -> None:
        self._store.dispatch(reducers.cancel_editing)

    def open_add_task(self, project_id: str) -> None:
        self._store.dispatch(reducers.open_add_task, project_id)

    def cancel_add_task(self) -> None:
        self._store.dispatch(reducers.cancel_add_task)

    # ---- projects ----

    async def add_project(self, name: str) -> Project | None:
        name = (name or "").strip()
        user = self._store.state.current_user
        if not name or user is None:
            return None

        local_id = _local_id()
        placeholder = Project(id=local_id, name=name, expanded=True, archived=False, added_by=user)
        self._store.dispatch(reducers.insert_project, placeholder)

        record = {"name": name, "expanded": True, "archived": False, "added_by": user}
        try:
            row = await self._gateway.insert(Collection.PROJECTS, record)
            project = Project.from_record(row)
        except Exception:
            logger.exception("Error adding project")
            if self._store.state.current_user == user:
                self._store.dispatch(reducers.remove_project, local_id)
                self._toaster.show(MSG_ADD_PROJECT_FAILED)
            return None

        if self._store.state.current_user == user:
            self._store.dispatch(reducers.swap_placeholder_project, local_id, project)
        return project

    async def save_project_name(self, project_id: str) -> bool:
        """Commit the in-progress rename (empty name just leaves edit mode)."""
        return await self.rename_project(project_id, self._store.state.editing_project_name)

    async def rename_project(self, project_id: str, name: str) -> bool:
        name = (name or "").strip()
        user = self._store.state.current_user
        project = self._editable_project(project_id)
        self._store.dispatch(reducers.cancel_editing)
        if not name or user is None or project is None or project.archived:
            return False
        if project.name == name:
            return True

        pending = self._apply(reducers.patch_project, project_id, name=name, project_ids=(project_id,))
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.update(Collection.PROJECTS, project_id, {"name": name}),
            failure=MSG_UPDATE_PROJECT_FAILED,
            what="rename project",
        )

    async def toggle_project(self, project_id: str) -> bool:
        state = self._store.state
        user = state.current_user
        if user is None or state.editing_project_id == project_id:
            return False
        project = self._editable_project(project_id)
        if project is None:
            return False

        expanded = not project.expanded
        pending = self._apply(reducers.patch_project, project_id, expanded=expanded, project_ids=(project_id,))
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.update(Collection.PROJECTS, project_id, {"expanded": expanded}),
            failure=MSG_UPDATE_PROJECT_FAILED,
            what="toggle project",
        )

    async def archive_project(self, project_id: str) -> bool:
        user = self._store.state.current_user
        project = self._editable_project(project_id)
        if user is None or project is None or project.archived:
            return False

        pending = self._apply(reducers.archive_project, project_id, project_ids=(project_id,))
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.update(
                Collection.PROJECTS, project_id, {"archived": True, "expanded": False}
            ),
            failure=MSG_UPDATE_PROJECT_FAILED,
            what="archive project",
        )

    async def restore_project(self, project_id: str) -> bool:
        user = self._store.state.current_user
        project = self._editable_project(project_id)
        if user is None or project is None or not project.archived:
            return False

        pending = self._apply(reducers.patch_project, project_id, archived=False, project_ids=(project_id,))
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.update(Collection.PROJECTS, project_id, {"archived": False}),
            failure=MSG_UPDATE_PROJECT_FAILED,
            what="restore project",
        )

    async def delete_project(self, project_id: str, confirm: Confirm) -> bool:
        """
        Permanently delete a project and its tasks.

        confirm is either a bool or a callable receiving the prompt text (sync or
        async); nothing happens unless it yields True.
        """
        state = self._store.state
        user = state.current_user
        project = self._editable_project(project_id)
        if user is None or project is None:
            return False

        if isinstance(confirm, bool):
            confirmed = confirm
        else:
            answer = confirm(DELETE_PROJECT_PROMPT)
            confirmed = bool(await answer) if inspect.isawaitable(answer) else bool(answer)
        if not confirmed:
            return False

        task_ids = tuple(t.id for t in project_tasks(self._store.state, project_id))
        pending = self._apply(
            reducers.delete_project_cascade,
            project_id,
            project_ids=(project_id,),
            task_ids=task_ids,
        )

        tasks_deleted = await self._commit(
            user,
            pending,
            lambda: self._gateway.delete(Collection.TASKS, column="project_id", value=project_id),
            failure=MSG_DELETE_PROJECT_FAILED,
            what="delete project tasks",
        )
        if not tasks_deleted:
            return False

        # The tasks are gone remotely by now; a failure here only brings the project back.
        return await self._commit(
            user,
            reducers.PendingWrite(projects=pending.projects),
            lambda: self._gateway.delete(Collection.PROJECTS, column="id", value=project_id),
            failure=MSG_DELETE_PROJECT_FAILED,
            what="delete project",
        )

    # ---- tasks ----

    async def add_task(self, project_id: str, text: str) -> Task | None:
        text = (text or "").strip()
        user = self._store.state.current_user
        project = self._editable_project(project_id)
        if not text or user is None or project is None or project.archived:
            return None

        local_id = _local_id()
        placeholder = Task(
            id=local_id,
            project_id=project_id,
            text=text,
            status=TaskStatus.ACTIVE,
            notes="",
            added_by=user,
            reviewer=None,
        )
        self._store.dispatch(reducers.insert_task, placeholder)
        self._store.dispatch(reducers.cancel_add_task)

        record = {
            "project_id": project_id,
            "text": text,
            "status": TaskStatus.ACTIVE.value,
            "notes": "",
            "added_by": user,
            "reviewer": None,
        }
        try:
            row = await self._gateway.insert(Collection.TASKS, record)
            task = Task.from_record(row)
        except Exception:
            logger.exception("Error adding task")
            if self._store.state.current_user == user:
                self._store.dispatch(reducers.remove_task, local_id)
                self._toaster.show(MSG_ADD_TASK_FAILED)
            return None

        if self._store.state.current_user == user:
            self._store.dispatch(reducers.swap_placeholder_task, local_id, task)
        return task

    async def cycle_status(self, task_id: str) -> TaskStatus | None:
        """Advance the status one step; returns the new status, or None if not allowed or the write failed."""
        user = self._store.state.current_user
        found = self._editable_task(task_id)
        if user is None or found is None:
            return None
        task, project = found
        if project is None or project.archived:
            return None

        updates = status_updates(task, self.default_reviewer)
        new_status: TaskStatus = updates["status"]
        reviewer: str | None = updates["reviewer"]

        pending = self._apply(
            reducers.patch_task, task_id, task_ids=(task_id,), status=new_status, reviewer=reviewer
        )
        ok = await self._commit(
            user,
            pending,
            lambda: self._gateway.update(
                Collection.TASKS, task_id, {"status": new_status.value, "reviewer": reviewer}
            ),
            failure=MSG_UPDATE_TASK_FAILED,
            what="cycle status",
        )
        return new_status if ok else None

    async def update_task_notes(self, task_id: str, notes: str) -> bool:
        user = self._store.state.current_user
        found = self._editable_task(task_id)
        if user is None or found is None:
            return False
        notes = notes or ""

        pending = self._apply(reducers.patch_task, task_id, task_ids=(task_id,), notes=notes)
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.update(Collection.TASKS, task_id, {"notes": notes}),
            failure=MSG_UPDATE_TASK_FAILED,
            what="update notes",
        )

    async def update_task_reviewer(self, task_id: str, reviewer: str) -> bool:
        reviewer = (reviewer or "").strip()
        user = self._store.state.current_user
        found = self._editable_task(task_id)
        if not reviewer or user is None or found is None:
            return False
        task, project = found
        if task.status != TaskStatus.REVIEW or (project is not None and project.archived):
            return False

        pending = self._apply(reducers.patch_task, task_id, task_ids=(task_id,), reviewer=reviewer)
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.update(Collection.TASKS, task_id, {"reviewer": reviewer}),
            failure=MSG_UPDATE_TASK_FAILED,
            what="update reviewer",
        )

    async def delete_task(self, task_id: str) -> bool:
        user = self._store.state.current_user
        found = self._editable_task(task_id)
        if user is None or found is None:
            return False
        _, project = found
        if project is not None and project.archived:
            return False

        pending = self._apply(reducers.remove_task, task_id, task_ids=(task_id,))
        return await self._commit(
            user,
            pending,
            lambda: self._gateway.delete(Collection.TASKS, column="id", value=task_id),
            failure=MSG_DELETE_TASK_FAILED,
            what="delete task",
        )
