# tests/test_models.py

from __future__ import annotations

from dataclasses import replace

from crewtasks.core.models import (
    STATUS_ORDER,
    ChangeEvent,
    ChangeKind,
    Collection,
    Project,
    Task,
    TaskStatus,
    is_local_id,
    status_updates,
)


def test_four_cycles_return_every_status_to_itself() -> None:
    for start in STATUS_ORDER:
        status = start
        for _ in range(4):
            status = status.next()
        assert status == start


def test_cycle_order() -> None:
    assert TaskStatus.ACTIVE.next() == TaskStatus.PRIORITY
    assert TaskStatus.PRIORITY.next() == TaskStatus.REVIEW
    assert TaskStatus.REVIEW.next() == TaskStatus.DONE
    assert TaskStatus.DONE.next() == TaskStatus.ACTIVE


def test_from_db_falls_back_to_active() -> None:
    assert TaskStatus.from_db("review") == TaskStatus.REVIEW
    assert TaskStatus.from_db(None) == TaskStatus.ACTIVE
    assert TaskStatus.from_db("blocked") == TaskStatus.ACTIVE


def test_entering_review_assigns_default_reviewer_only_when_missing() -> None:
    task = Task(id="t1", project_id="p1", text="x", status=TaskStatus.PRIORITY)
    assert status_updates(task, "Verma") == {"status": TaskStatus.REVIEW, "reviewer": "Verma"}

    task = replace(task, reviewer="Thor")
    assert status_updates(task, "Verma") == {"status": TaskStatus.REVIEW, "reviewer": "Thor"}


def test_full_cycle_keeps_reviewer_after_leaving_review() -> None:
    task = Task(id="t1", project_id="p1", text="x")
    seen = []
    for _ in range(4):
        task = replace(task, **status_updates(task, "Verma"))
        seen.append((task.status, task.reviewer))

    assert seen == [
        (TaskStatus.PRIORITY, None),
        (TaskStatus.REVIEW, "Verma"),
        (TaskStatus.DONE, "Verma"),
        (TaskStatus.ACTIVE, "Verma"),
    ]


def test_project_from_record_coerces_integer_flags() -> None:
    project = Project.from_record(
        {"id": 7, "name": "Site", "expanded": 0, "archived": 1, "added_by": "Thor", "created_at": "2024"}
    )
    assert project == Project(id="7", name="Site", expanded=False, archived=True, added_by="Thor", created_at="2024")


def test_task_record_round_trip_uses_plain_status_string() -> None:
    task = Task(id="t1", project_id="p1", text="x", status=TaskStatus.DONE, notes="n", added_by="A")
    record = task.to_record()
    assert record["status"] == "done"
    assert Task.from_record(record) == task


def test_change_event_record_id() -> None:
    assert ChangeEvent(Collection.TASKS, ChangeKind.INSERT, new={"id": "a"}).record_id == "a"
    assert ChangeEvent(Collection.TASKS, ChangeKind.DELETE, old={"id": "b"}).record_id == "b"
    assert ChangeEvent(Collection.TASKS, ChangeKind.DELETE, new={"id": "c"}).record_id is None


def test_local_ids() -> None:
    assert is_local_id("local-123")
    assert not is_local_id("123")
    assert not is_local_id(None)
