# src/crewtasks/sync/reconcile.py

from __future__ import annotations

"""
Apply change-feed events to the local mirror.

Rules (per event kind):
- insert: append unless a row with that id is already present (idempotent);
          announce it when someone else created it. An echo of our own
          insert takes over its pending local placeholder.
- update: replace by id; unknown ids are ignored (late update after delete).
- delete: remove by id; unknown ids are ignored.

Only inserts are announced; updates and deletes are applied silently.
"""

import logging

from ..core import reducers
from ..core.models import ChangeEvent, ChangeKind, Collection, Project, Task, is_local_id
from ..core.state import TrackerState

logger = logging.getLogger(__name__)


def _actor(added_by: str | None) -> str:
    return added_by or "Someone"


def insert_notification(record: Project | Task, current_user: str | None) -> str | None:
    """Toast text for a row created by another user, or None for our own rows."""
    if record.added_by == current_user:
        return None
    if isinstance(record, Project):
        return f'📁 {_actor(record.added_by)} created "{record.name}"'
    return f"✨ {_actor(record.added_by)} added a new task"


def _own_placeholder(state: TrackerState, record: Project | Task, current_user: str | None) -> str | None:
    """Id of the pending placeholder this echoed row stands for, if we created it."""
    if current_user is None or record.added_by != current_user:
        return None
    if isinstance(record, Project):
        for p in state.projects:
            if is_local_id(p.id) and p.added_by == current_user and p.name == record.name:
                return p.id
        return None
    for t in state.tasks:
        if (
            is_local_id(t.id)
            and t.added_by == current_user
            and t.project_id == record.project_id
            and t.text == record.text
        ):
            return t.id
    return None


def reconcile(
    state: TrackerState, event: ChangeEvent, current_user: str | None
) -> tuple[TrackerState, str | None]:
    """Return (new_state, notification or None) for one change event."""
    record_id = event.record_id
    if record_id is None:
        logger.warning("Ignoring %s %s event without an id", event.collection, event.kind)
        return state, None

    if event.kind == ChangeKind.DELETE:
        if event.collection == Collection.PROJECTS:
            return reducers.remove_project(state, record_id), None
        return reducers.remove_task(state, record_id), None

    row = event.new or {}
    try:
        record: Project | Task = (
            Project.from_record(row) if event.collection == Collection.PROJECTS else Task.from_record(row)
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Ignoring malformed %s %s event: %r", event.collection, event.kind, row)
        return state, None

    if event.kind == ChangeKind.UPDATE:
        if isinstance(record, Project):
            return reducers.replace_project(state, record), None
        return reducers.replace_task(state, record), None

    if isinstance(record, Project):
        new_state = reducers.insert_project(state, record)
    else:
        new_state = reducers.insert_task(state, record)
    if new_state is state:
        logger.debug("Duplicate insert for %s id=%s ignored", event.collection, record_id)
        return state, None

    # Our echo beat the insert's reply: the row takes the placeholder's slot now.
    local_id = _own_placeholder(state, record, current_user)
    if local_id is not None:
        if isinstance(record, Project):
            return reducers.swap_placeholder_project(state, local_id, record), None
        return reducers.swap_placeholder_task(state, local_id, record), None
    return new_state, insert_notification(record, current_user)
