# src/crewtasks/core/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

LOCAL_ID_PREFIX = "local-"


class TaskStatus(StrEnum):
    """
    Task status.

    The four states form a fixed cycle driven by the status button:
    active -> priority -> review -> done -> active.
    """

    ACTIVE = "active"
    PRIORITY = "priority"
    REVIEW = "review"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except ValueError:
            return cls.ACTIVE

    def next(self) -> TaskStatus:
        idx = STATUS_ORDER.index(self)
        return STATUS_ORDER[(idx + 1) % len(STATUS_ORDER)]


STATUS_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.ACTIVE,
    TaskStatus.PRIORITY,
    TaskStatus.REVIEW,
    TaskStatus.DONE,
)


class Collection(StrEnum):
    PROJECTS = "projects"
    TASKS = "tasks"


class ChangeKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def is_local_id(record_id: str | None) -> bool:
    """True for placeholder ids of rows the gateway has not acknowledged yet."""
    return bool(record_id) and str(record_id).startswith(LOCAL_ID_PREFIX)


def _as_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "t", "yes"}
    return bool(raw)


def _opt_str(raw: Any) -> str | None:
    return None if raw is None else str(raw)


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    name: str
    expanded: bool = True
    archived: bool = False
    added_by: str | None = None
    created_at: str | None = None

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> Project:
        return cls(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            expanded=_as_bool(row.get("expanded"), True),
            archived=_as_bool(row.get("archived"), False),
            added_by=_opt_str(row.get("added_by")),
            created_at=_opt_str(row.get("created_at")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "expanded": self.expanded,
            "archived": self.archived,
            "added_by": self.added_by,
            "created_at": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    project_id: str
    text: str
    status: TaskStatus = TaskStatus.ACTIVE
    notes: str = ""
    added_by: str | None = None
    reviewer: str | None = None
    created_at: str | None = None

    @classmethod
    def from_record(cls, row: dict[str, Any]) -> Task:
        return cls(
            id=str(row["id"]),
            project_id=str(row.get("project_id")),
            text=str(row.get("text") or ""),
            status=TaskStatus.from_db(row.get("status")),
            notes=str(row.get("notes") or ""),
            added_by=_opt_str(row.get("added_by")),
            reviewer=row.get("reviewer") or None,
            created_at=_opt_str(row.get("created_at")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "text": self.text,
            "status": self.status.value,
            "notes": self.notes,
            "added_by": self.added_by,
            "reviewer": self.reviewer,
            "created_at": self.created_at,
        }


def status_updates(task: Task, default_reviewer: str) -> dict[str, Any]:
    """
    Field changes produced by one press of the status button.

    Entering review assigns the default reviewer only when none is set;
    every other transition keeps the current reviewer.
    """
    next_status = task.status.next()
    reviewer = task.reviewer
    if next_status == TaskStatus.REVIEW and not reviewer:
        reviewer = default_reviewer
    return {"status": next_status, "reviewer": reviewer}


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One notification from a collection's change feed."""

    collection: Collection
    kind: ChangeKind
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def record_id(self) -> str | None:
        row = self.old if self.kind == ChangeKind.DELETE else self.new
        if not row or row.get("id") is None:
            return None
        return str(row["id"])
