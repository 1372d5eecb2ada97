# tests/test_actions.py

from __future__ import annotations

import asyncio

import pytest

from crewtasks.core.models import Collection, TaskStatus
from crewtasks.sync.actions import (
    DELETE_PROJECT_PROMPT,
    MSG_ADD_PROJECT_FAILED,
    MSG_DELETE_PROJECT_FAILED,
    MSG_UPDATE_TASK_FAILED,
)

from .fakes import InMemoryGateway, make_app


async def _board(app, gateway: InMemoryGateway, *, archived: bool = False) -> tuple[str, str]:
    project = gateway.seed(Collection.PROJECTS, name="Launch", added_by="Verma", archived=archived)
    task = gateway.seed(Collection.TASKS, project_id=project["id"], text="Write copy", added_by="Thor")
    await app.login("Verma")
    return project["id"], task["id"]


@pytest.mark.asyncio
async def test_add_project_swaps_placeholder_and_dedupes_echo(app, gateway) -> None:
    await app.login("Verma")

    project = await app.actions.add_project("  Launch  ")
    await app.engine.settle()

    assert project is not None
    assert [(p.id, p.name) for p in app.state.projects] == [(project.id, "Launch")]
    assert app.state.projects[0].expanded is True
    assert app.state.projects[0].added_by == "Verma"
    # Our own insert is not announced.
    assert app.state.toast is None


@pytest.mark.asyncio
async def test_empty_input_is_silently_ignored(app, gateway) -> None:
    project_id, _ = await _board(app, gateway)

    assert await app.actions.add_project("   ") is None
    assert await app.actions.add_task(project_id, "") is None
    assert await app.actions.update_task_reviewer(app.state.tasks[0].id, "  ") is False
    assert gateway.writes == []
    assert app.state.toast is None


@pytest.mark.asyncio
async def test_failed_insert_drops_placeholder_and_toasts(app, gateway) -> None:
    await app.login("Verma")
    gateway.fail.add("insert")

    assert await app.actions.add_project("Launch") is None

    assert app.state.projects == ()
    assert app.state.toast.message == MSG_ADD_PROJECT_FAILED


@pytest.mark.asyncio
async def test_failed_update_rolls_back(app, gateway) -> None:
    _, task_id = await _board(app, gateway)
    gateway.fail.add("update:tasks")

    status = await app.actions.cycle_status(task_id)

    assert status is None
    assert app.state.find_task(task_id).status == TaskStatus.ACTIVE
    assert app.state.toast.message == MSG_UPDATE_TASK_FAILED


@pytest.mark.asyncio
async def test_failed_update_keeps_optimistic_value_without_rollback(gateway, kv, settings) -> None:
    app = make_app(gateway, kv, settings, rollback_on_failure=False)
    try:
        _, task_id = await _board(app, gateway)
        gateway.fail.add("update")

        await app.actions.update_task_notes(task_id, "draft")

        assert app.state.find_task(task_id).notes == "draft"
        assert app.state.toast.message == MSG_UPDATE_TASK_FAILED
    finally:
        await app.close()


@pytest.mark.asyncio
async def test_toast_expires(app, gateway) -> None:
    await app.login("Verma")
    gateway.fail.add("insert")
    await app.actions.add_project("Launch")
    assert app.state.toast is not None

    await asyncio.sleep(0.15)
    assert app.state.toast is None


@pytest.mark.asyncio
async def test_cycle_writes_status_and_default_reviewer(app, gateway) -> None:
    _, task_id = await _board(app, gateway)

    statuses = [await app.actions.cycle_status(task_id) for _ in range(4)]
    await app.engine.settle()

    assert statuses == [TaskStatus.PRIORITY, TaskStatus.REVIEW, TaskStatus.DONE, TaskStatus.ACTIVE]
    patches = [w[2][1] for w in gateway.writes if w[0] == "update"]
    assert patches[1] == {"status": "review", "reviewer": "Verma"}
    assert patches[3] == {"status": "active", "reviewer": "Verma"}
    assert app.state.find_task(task_id).status == TaskStatus.ACTIVE


@pytest.mark.asyncio
async def test_existing_reviewer_is_kept_when_entering_review(app, gateway) -> None:
    project = gateway.seed(Collection.PROJECTS, name="Launch")
    task = gateway.seed(
        Collection.TASKS, project_id=project["id"], text="x", status="priority", reviewer="Jerome"
    )
    await app.login("Verma")

    assert await app.actions.cycle_status(task["id"]) == TaskStatus.REVIEW
    assert app.state.find_task(task["id"]).reviewer == "Jerome"


@pytest.mark.asyncio
async def test_reviewer_can_only_change_during_review(app, gateway) -> None:
    _, task_id = await _board(app, gateway)

    assert await app.actions.update_task_reviewer(task_id, "Thor") is False

    await app.actions.cycle_status(task_id)
    await app.actions.cycle_status(task_id)
    assert await app.actions.update_task_reviewer(task_id, " Thor ") is True
    assert app.state.find_task(task_id).reviewer == "Thor"


@pytest.mark.asyncio
async def test_archived_projects_are_read_only(app, gateway) -> None:
    project_id, task_id = await _board(app, gateway, archived=True)

    assert await app.actions.cycle_status(task_id) is None
    assert await app.actions.add_task(project_id, "More") is None
    assert await app.actions.delete_task(task_id) is False
    assert await app.actions.rename_project(project_id, "New") is False
    assert gateway.writes == []

    assert await app.actions.restore_project(project_id) is True
    assert app.state.find_project(project_id).archived is False


@pytest.mark.asyncio
async def test_archive_clears_selection(app, gateway) -> None:
    project_id, task_id = await _board(app, gateway)
    app.actions.select_task(task_id)

    assert await app.actions.archive_project(project_id) is True

    project = app.state.find_project(project_id)
    assert project.archived and not project.expanded
    assert app.state.selected_task_id is None
    assert gateway.writes[-1] == ("update", Collection.PROJECTS, (project_id, {"archived": True, "expanded": False}))


@pytest.mark.asyncio
async def test_delete_project_requires_confirmation(app, gateway) -> None:
    project_id, task_id = await _board(app, gateway)
    prompts: list[str] = []

    async def decline(prompt: str) -> bool:
        prompts.append(prompt)
        return False

    assert await app.actions.delete_project(project_id, decline) is False
    assert prompts == [DELETE_PROJECT_PROMPT]
    assert app.state.find_project(project_id) is not None
    assert gateway.writes == []

    app.actions.select_task(task_id)
    assert await app.actions.delete_project(project_id, lambda _prompt: True) is True
    await app.engine.settle()

    assert app.state.projects == () and app.state.tasks == ()
    assert app.state.selected_task_id is None
    assert [(w[0], w[1], w[2]) for w in gateway.writes] == [
        ("delete", Collection.TASKS, ("project_id", project_id)),
        ("delete", Collection.PROJECTS, ("id", project_id)),
    ]


@pytest.mark.asyncio
async def test_delete_project_failure_after_tasks_restores_project_only(app, gateway) -> None:
    project_id, _ = await _board(app, gateway)
    gateway.fail.add("delete:projects")

    assert await app.actions.delete_project(project_id, True) is False

    assert app.state.find_project(project_id) is not None
    assert app.state.tasks == ()
    assert app.state.toast.message == MSG_DELETE_PROJECT_FAILED


@pytest.mark.asyncio
async def test_toggle_is_ignored_while_renaming(app, gateway) -> None:
    project_id, _ = await _board(app, gateway)

    app.actions.start_editing_project(project_id)
    assert await app.actions.toggle_project(project_id) is False

    app.actions.set_editing_name("  Relaunch ")
    assert await app.actions.save_project_name(project_id) is True
    assert app.state.editing_project_id is None
    assert app.state.find_project(project_id).name == "Relaunch"

    assert await app.actions.toggle_project(project_id) is True
    assert app.state.find_project(project_id).expanded is False


@pytest.mark.asyncio
async def test_empty_rename_just_leaves_edit_mode(app, gateway) -> None:
    project_id, _ = await _board(app, gateway)
    app.actions.start_editing_project(project_id)
    app.actions.set_editing_name("   ")

    assert await app.actions.save_project_name(project_id) is False
    assert app.state.editing_project_id is None
    assert app.state.find_project(project_id).name == "Launch"
    assert gateway.writes == []


@pytest.mark.asyncio
async def test_add_task_closes_add_row_and_marks_author(app, gateway) -> None:
    project_id, _ = await _board(app, gateway)
    app.actions.open_add_task(project_id)

    task = await app.actions.add_task(project_id, " Ship it ")
    await app.engine.settle()

    assert app.state.adding_task_to is None
    assert task is not None and task.added_by == "Verma"
    assert [t.text for t in app.state.tasks] == ["Write copy", "Ship it"]
    assert gateway.writes[-1][2] == {
        "project_id": project_id,
        "text": "Ship it",
        "status": "active",
        "notes": "",
        "added_by": "Verma",
        "reviewer": None,
    }


@pytest.mark.asyncio
async def test_delete_task_clears_selection(app, gateway) -> None:
    _, task_id = await _board(app, gateway)
    app.actions.select_task(task_id)

    assert await app.actions.delete_task(task_id) is True
    assert app.state.selected_task_id is None
    assert app.state.find_task(task_id) is None


@pytest.mark.asyncio
async def test_failure_after_identity_switch_is_not_reported(app, gateway) -> None:
    _, task_id = await _board(app, gateway)
    gateway.fail.add("update")
    gateway.hold = asyncio.Event()

    pending = asyncio.create_task(app.actions.update_task_notes(task_id, "draft"))
    await asyncio.sleep(0)
    await app.login("Thor")
    gateway.hold.set()

    assert await pending is False
    assert app.state.current_user == "Thor"
    assert app.state.toast is None
