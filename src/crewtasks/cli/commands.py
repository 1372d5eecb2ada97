# src/crewtasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, cast

from ..core import selectors
from ..core.models import TaskStatus, is_local_id
from ..core.state import SyncStatus, Tab
from ..sync.actions import MSG_UPDATE_TASK_FAILED
from ..sync.session import TrackerApp
from ..ui import render
from ..ui.theme import PLAIN, Theme

CommandEmitter = Callable[[str], None]
ConfirmPrompt = Callable[[str], Awaitable[bool]]

logger = logging.getLogger(__name__)


async def _refuse(_prompt: str) -> bool:
    return False


@dataclass(slots=True)
class CommandIO:
    """What a command may use besides the app: printing, confirmation, styling."""

    emit: CommandEmitter = print
    confirm: ConfirmPrompt = _refuse
    theme: Theme = PLAIN


CommandReply = str | None | Awaitable[str | None]
CommandHandler2 = Callable[[TrackerApp, list[str]], CommandReply]
CommandHandler3 = Callable[[TrackerApp, list[str], CommandIO], CommandReply]
CommandHandler = CommandHandler2 | CommandHandler3


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /board, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        self._public: set[str] = set()

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        *,
        requires_login: bool = True,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        names = [key, *(a.lower() for a in aliases)]
        for alias in names[1:]:
            self._handlers[alias] = handler
        if not requires_login:
            self._public.update(names)

    async def handle(self, app: TrackerApp, line: str, io: CommandIO | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if name not in self._public and not app.state.authenticated:
            return "Not logged in. Use /login <name>."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            result: Any = h3(app, args, io or CommandIO())
        else:
            h2 = cast(CommandHandler2, handler)
            result = h2(app, args)

        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _text(args: list[str], start: int) -> str:
    return " ".join(args[start:]).strip()


def _project_ref(app: TrackerApp, ref: str | None) -> tuple[str | None, str | None]:
    """Resolve a project id or unique prefix; returns (id, error)."""
    if not ref:
        return None, "Missing project id."
    project_id = selectors.resolve_project_id(app.state, ref)
    if project_id is None:
        return None, f"No project matches '{ref}'."
    if is_local_id(project_id):
        return None, "That project is still being saved."
    return project_id, None


def _task_ref(app: TrackerApp, ref: str | None) -> tuple[str | None, str | None]:
    if not ref:
        return None, "Missing task id."
    task_id = selectors.resolve_task_id(app.state, ref)
    if task_id is None:
        return None, f"No task matches '{ref}'."
    if is_local_id(task_id):
        return None, "That task is still being saved."
    return task_id, None


def cmd_help(app: TrackerApp, args: list[str]) -> str:
    return registry.build_help()


async def cmd_login(app: TrackerApp, args: list[str]) -> str:
    """
    /login <name>  -> join (or switch identity)
    """
    name = _text(args, 0)
    if not name:
        return "Usage: /login <name>"
    if not await app.login(name):
        return "Usage: /login <name>"
    return f"Logged in as {app.state.current_user}."


async def cmd_logout(app: TrackerApp, args: list[str]) -> str:
    user = app.state.current_user
    await app.logout()
    return f"Logged out ({user}). Use /login <name> to join again."


def cmd_whoami(app: TrackerApp, args: list[str]) -> str:
    return f"You are {app.state.current_user}."


def cmd_board(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    return render.render_board(app.state, io.theme)


def cmd_tab(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    """
    /tab active | /tab archived
    """
    if not args:
        return f"Current tab: {app.state.active_tab}. Use /tab active or /tab archived."
    try:
        tab = Tab(args[0].lower())
    except ValueError:
        return "Usage: /tab active | /tab archived"
    app.actions.set_tab(tab)
    return render.render_board(app.state, io.theme)


async def cmd_project(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    """
    /project add <name>
    /project rename <project> <new name>
    """
    usage = "Usage: /project add <name> | /project rename <project> <new name>"
    if not args:
        return usage

    sub = args[0].lower()

    if sub in ("add", "new"):
        name = _text(args, 1)
        if not name:
            return usage
        project = await app.actions.add_project(name)
        if project is None:
            return "Project was not created."
        return f"Project '{project.name}' created (#{render.short_id(project.id)})."

    if sub in ("rename", "mv"):
        project_id, err = _project_ref(app, args[1] if len(args) > 1 else None)
        if err:
            return err
        project = app.state.find_project(project_id)
        if project is not None and project.archived:
            return "Archived projects cannot be renamed. /restore it first."
        app.actions.start_editing_project(project_id)
        app.actions.set_editing_name(_text(args, 2))
        if not await app.actions.save_project_name(project_id):
            return "Name unchanged."
        return f"Project renamed to '{_text(args, 2)}'."

    return usage


async def cmd_toggle(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    project_id, err = _project_ref(app, args[0] if args else None)
    if err:
        return err
    await app.actions.toggle_project(project_id)
    return render.render_board(app.state, io.theme)


async def cmd_archive(app: TrackerApp, args: list[str]) -> str:
    project_id, err = _project_ref(app, args[0] if args else None)
    if err:
        return err
    if not await app.actions.archive_project(project_id):
        return "Project was not archived."
    return "Project archived. See /tab archived."


async def cmd_restore(app: TrackerApp, args: list[str]) -> str:
    project_id, err = _project_ref(app, args[0] if args else None)
    if err:
        return err
    if not await app.actions.restore_project(project_id):
        return "Project was not restored."
    return "Project restored."


async def cmd_delete(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    """
    /delete <project> [--yes]
    """
    project_id, err = _project_ref(app, args[0] if args else None)
    if err:
        return err
    confirm: bool | ConfirmPrompt = True if "--yes" in args[1:] else io.confirm
    if not await app.actions.delete_project(project_id, confirm):
        return "Nothing deleted."
    return "Project deleted."


async def cmd_task(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    """
    /task add <project> <text>
    /task rm <task>
    /task cancel
    """
    usage = "Usage: /task add <project> <text> | /task rm <task> | /task cancel"
    if not args:
        return usage

    sub = args[0].lower()

    if sub in ("add", "new"):
        project_id, err = _project_ref(app, args[1] if len(args) > 1 else None)
        if err:
            return err
        project = app.state.find_project(project_id)
        if project is not None and project.archived:
            return "Archived projects are read-only."
        text = _text(args, 2)
        if not text:
            app.actions.open_add_task(project_id)
            return render.render_board(app.state, io.theme)
        task = await app.actions.add_task(project_id, text)
        if task is None:
            return "Task was not created."
        return f"Task added (#{render.short_id(task.id)})."

    if sub in ("rm", "del", "delete"):
        task_id, err = _task_ref(app, args[1] if len(args) > 1 else None)
        if err:
            return err
        if not await app.actions.delete_task(task_id):
            return "Task was not deleted."
        return "Task deleted."

    if sub == "cancel":
        app.actions.cancel_add_task()
        return "Cancelled."

    return usage


async def cmd_cycle(app: TrackerApp, args: list[str]) -> str:
    task_id, err = _task_ref(app, args[0] if args else None)
    if err:
        return err
    status = await app.actions.cycle_status(task_id)
    task = app.state.find_task(task_id)
    if status is None:
        project = app.state.find_project(task.project_id) if task is not None else None
        if project is not None and project.archived:
            return "Tasks in archived projects cannot change status."
        return MSG_UPDATE_TASK_FAILED
    if task is None:
        return "Task is gone."
    line = f"{render.STATUS_ICONS[task.status]} {render.STATUS_LABELS[task.status]}"
    if task.reviewer and task.status == TaskStatus.REVIEW:
        line += f" → {task.reviewer}"
    return line


async def cmd_notes(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    """
    /notes <task> <text>   (no text clears the notes)
    """
    task_id, err = _task_ref(app, args[0] if args else None)
    if err:
        return err
    notes = _text(args, 1).replace("\\n", "\n")
    if not await app.actions.update_task_notes(task_id, notes):
        return "Notes not saved."
    return "Notes saved." if notes else "Notes cleared."


async def cmd_reviewer(app: TrackerApp, args: list[str]) -> str:
    task_id, err = _task_ref(app, args[0] if args else None)
    if err:
        return err
    name = _text(args, 1)
    if not name:
        return "Usage: /reviewer <task> <name>  (" + ", ".join(app.reviewers) + ")"
    if not await app.actions.update_task_reviewer(task_id, name):
        return "Reviewer can only be set on tasks awaiting review."
    return f"Reviewer set to {name}."


def cmd_open(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    task_id, err = _task_ref(app, args[0] if args else None)
    if err:
        return err
    app.actions.select_task(task_id)
    return render.render_task_panel(app.state, app.reviewers, io.theme)


def cmd_close(app: TrackerApp, args: list[str]) -> str:
    app.actions.clear_selection()
    return "Panel closed."


async def cmd_sync(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    if not await app.refresh():
        return "Sync failed (offline). See the log for details."
    return render.render_board(app.state, io.theme)


def cmd_status(app: TrackerApp, args: list[str], io: CommandIO) -> str:
    state = app.state
    counts = selectors.tab_counts(state)
    label = {
        SyncStatus.ONLINE: "Live",
        SyncStatus.SYNCING: "Syncing...",
        SyncStatus.OFFLINE: "Offline",
    }[state.sync_status]
    return (
        "Status:\n"
        f"  User: {state.current_user}\n"
        f"  Sync: {label}\n"
        f"  Projects: {counts[Tab.ACTIVE]} active, {counts[Tab.ARCHIVED]} archived\n"
        f"  Tasks: {len(state.tasks)}\n"
        f"  Reviewers: {', '.join(app.reviewers)} (default {app.default_reviewer})"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"], requires_login=False)
registry.register("login", cmd_login, help_text="Join as <name> (or switch identity).", requires_login=False)
registry.register("logout", cmd_logout, help_text="Forget the saved name and stop syncing.")
registry.register("whoami", cmd_whoami, help_text="Show the current name.")
registry.register("board", cmd_board, help_text="Show the project board.", aliases=["b", "ls"])
registry.register("tab", cmd_tab, help_text="Switch tab: /tab active | /tab archived.")
registry.register("project", cmd_project, help_text="Projects: /project add <name> | rename <project> <name>.", aliases=["p"])
registry.register("toggle", cmd_toggle, help_text="Expand/collapse a project: /toggle <project>.")
registry.register("archive", cmd_archive, help_text="Archive a project: /archive <project>.")
registry.register("restore", cmd_restore, help_text="Restore an archived project: /restore <project>.")
registry.register("delete", cmd_delete, help_text="Delete a project and its tasks: /delete <project> [--yes].")
registry.register("task", cmd_task, help_text="Tasks: /task add <project> <text> | rm <task> | cancel.", aliases=["t"])
registry.register("cycle", cmd_cycle, help_text="Advance task status: /cycle <task>.", aliases=["c"])
registry.register("notes", cmd_notes, help_text="Set task notes: /notes <task> <text> (\\n for newline).")
registry.register("reviewer", cmd_reviewer, help_text="Set reviewer: /reviewer <task> <name>.")
registry.register("open", cmd_open, help_text="Show task details: /open <task>.", aliases=["o"])
registry.register("close", cmd_close, help_text="Close the task panel.")
registry.register("sync", cmd_sync, help_text="Refetch everything from the server.")
registry.register("status", cmd_status, help_text="Show sync status and counts.")
