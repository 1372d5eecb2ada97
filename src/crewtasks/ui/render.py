# src/crewtasks/ui/render.py

"""Text rendering of the board, the task panel and toasts.

Pure functions of TrackerState; the console connector decides when to print.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..core import selectors
from ..core.models import STATUS_ORDER, Project, Task, TaskStatus, is_local_id
from ..core.state import SyncStatus, Tab, Toast, TrackerState
from .theme import PLAIN, Theme

STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.ACTIVE: "To Do",
    TaskStatus.PRIORITY: "Priority",
    TaskStatus.REVIEW: "Awaiting Review",
    TaskStatus.DONE: "Done",
}

STATUS_ICONS: dict[TaskStatus, str] = {
    TaskStatus.ACTIVE: "○",
    TaskStatus.PRIORITY: "🔥",
    TaskStatus.REVIEW: "⏳",
    TaskStatus.DONE: "✓",
}

SHORT_ID_LEN = 8

EMPTY_PANEL = "Click on a task to see details (/open <task>)."


def short_id(record_id: str) -> str:
    if is_local_id(record_id):
        return "pending"
    return record_id[:SHORT_ID_LEN]


def sync_indicator(status: SyncStatus, theme: Theme = PLAIN) -> str:
    if status == SyncStatus.ONLINE:
        return theme.ok("● Live")
    if status == SyncStatus.OFFLINE:
        return theme.error("● Offline")
    return theme.warn("● Syncing...")


def status_legend(theme: Theme = PLAIN) -> str:
    return "  ".join(theme.dim(f"{STATUS_ICONS[s]} {STATUS_LABELS[s]}") for s in STATUS_ORDER)


def render_tabs(state: TrackerState, theme: Theme = PLAIN) -> str:
    counts = selectors.tab_counts(state)
    parts = []
    for tab, label in ((Tab.ACTIVE, "Active"), (Tab.ARCHIVED, "Archived")):
        text = f"{label} ({counts[tab]})"
        parts.append(theme.bold(f"[{text}]") if state.active_tab == tab else f" {text} ")
    return "  ".join(parts)


def render_task_line(task: Task, state: TrackerState, theme: Theme = PLAIN) -> str:
    icon = STATUS_ICONS[task.status]

    if task.status == TaskStatus.DONE:
        text = theme.done(task.text)
    elif task.status == TaskStatus.PRIORITY:
        text = theme.priority(task.text)
    else:
        text = task.text

    badges: list[str] = []
    if task.added_by and task.added_by != state.current_user:
        badges.append(theme.dim(f"from {task.added_by}"))
    if task.notes:
        badges.append("📝")
    if task.status == TaskStatus.REVIEW and task.reviewer:
        badges.append(theme.review(f"→ {task.reviewer}"))

    line = f"{icon} {text}"
    if badges:
        line += "  " + " ".join(badges)
    line += "  " + theme.dim(f"#{short_id(task.id)}")

    if state.selected_task_id == task.id:
        line = theme.selected("›") + " " + line
    else:
        line = "  " + line
    return line


def render_project(project: Project, state: TrackerState, theme: Theme = PLAIN) -> list[str]:
    arrow = "▾" if project.expanded else "▸"
    remaining = selectors.remaining_count(state, project.id)

    if state.editing_project_id == project.id:
        name = theme.accent(f"✎ {state.editing_project_name or project.name}")
    else:
        name = theme.bold(project.name)

    header = f"{arrow} {name}  {theme.dim(f'{remaining} remaining')}  {theme.dim(f'#{short_id(project.id)}')}"
    if project.archived:
        header += "  " + theme.dim("(archived)")

    lines = [header]
    tasks = selectors.visible_tasks(state, project)
    for task in tasks:
        lines.append("  " + render_task_line(task, state, theme))
    if project.expanded and not tasks:
        lines.append("    " + theme.dim("No tasks yet."))
    if state.adding_task_to == project.id:
        lines.append("    " + theme.accent("+ new task: type /task add <text>"))
    return lines


def render_board(state: TrackerState, theme: Theme = PLAIN, *, app_name: str = "crewtasks") -> str:
    user = state.current_user or "?"
    lines = [
        f"{theme.bold(app_name)} · {user} · {sync_indicator(state.sync_status, theme)}",
        render_tabs(state, theme),
        status_legend(theme),
        "",
    ]

    if state.loading:
        lines.append(theme.dim("Loading..."))
        return "\n".join(lines)

    projects = selectors.displayed_projects(state)
    if not projects:
        if state.active_tab == Tab.ARCHIVED:
            lines.append(theme.dim("No archived projects."))
        else:
            lines.append(theme.dim("No projects yet. Create one with /project add <name>."))
        return "\n".join(lines)

    for project in projects:
        lines.extend(render_project(project, state, theme))
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def render_task_panel(state: TrackerState, reviewers: Sequence[str] = (), theme: Theme = PLAIN) -> str:
    view = selectors.selected_task_view(state)
    if view is None:
        return theme.dim(EMPTY_PANEL)

    task = view.task
    lines = [
        theme.bold(task.text),
        f"Project:  {view.project_name}" + (" (archived)" if view.project.archived else ""),
        f"Status:   {STATUS_ICONS[task.status]} {STATUS_LABELS[task.status]}",
        f"Added by: {task.added_by or 'Someone'}",
    ]
    if task.status == TaskStatus.REVIEW:
        lines.append(f"Reviewer: {task.reviewer or '-'}")
        if reviewers:
            lines.append(theme.dim("          choose: " + ", ".join(reviewers)))
    lines.append("Notes:")
    if task.notes:
        lines.extend(f"  {ln}" for ln in task.notes.splitlines() or [""])
    else:
        lines.append("  " + theme.dim("(none)"))
    lines.append(theme.dim(f"#{short_id(task.id)}"))
    return "\n".join(lines)


def render_toast(toast: Toast | None, theme: Theme = PLAIN) -> str:
    if toast is None:
        return ""
    if toast.message.startswith("❌"):
        return theme.error(toast.message)
    return theme.accent(toast.message)
