# src/crewtasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import CommandIO, CommandRegistry
from ..cli.commands import registry as command_registry
from ..core.state import SyncStatus, TrackerState
from ..sync.session import TrackerApp
from ..ui import render
from ..ui.theme import PLAIN, Theme

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def _read_line(prompt: str) -> str:
    # input() blocks; keep the event loop (change feed, toasts) running meanwhile.
    return await asyncio.to_thread(input, prompt)


async def _confirm(prompt: str) -> bool:
    try:
        answer = await _read_line(f"{prompt} [y/N] ")
    except (EOFError, KeyboardInterrupt):
        return False
    return answer.strip().lower() in {"y", "yes"}


async def ask_for_name(app: TrackerApp) -> bool:
    """Prompt until a non-empty name is entered. Returns False on EOF/Ctrl+C."""
    while not app.state.authenticated:
        try:
            name = (await _read_line("Your name: ")).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return False
        if name:
            await app.login(name)
    return True


class _FeedPrinter:
    """Prints toasts and sync-status changes as they happen."""

    def __init__(self, theme: Theme) -> None:
        self._theme = theme
        self._toast_id: int | None = None
        self._sync: SyncStatus | None = None

    def __call__(self, state: TrackerState) -> None:
        toast = state.toast
        if toast is not None and toast.id != self._toast_id:
            self._toast_id = toast.id
            _print_ts(render.render_toast(toast, self._theme))

        if state.authenticated and state.sync_status != self._sync:
            previous, self._sync = self._sync, state.sync_status
            # The first transition is covered by the board printed after login.
            if previous is not None and state.sync_status != SyncStatus.SYNCING:
                _print_ts(render.sync_indicator(state.sync_status, self._theme))


async def run_console_loop(
    app: TrackerApp,
    *,
    theme: Theme = PLAIN,
    app_name: str = "crewtasks",
    registry: CommandRegistry = command_registry,
) -> None:
    logger.info("Console connector started (user=%s).", app.state.current_user)
    _print_ts(f"[{app_name}] Use /help for commands, /exit to quit.")

    if not await ask_for_name(app):
        logger.info("Console closed before login.")
        return

    print(render.render_board(app.state, theme, app_name=app_name), flush=True)

    io = CommandIO(emit=_print_ts, confirm=_confirm, theme=theme)
    unsubscribe = app.store.subscribe(_FeedPrinter(theme))
    try:
        while True:
            try:
                user_input = (await _read_line(f"{app.state.current_user or '?'}> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in EXIT_COMMANDS:
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                # Plain text goes to the project whose add-task row is open.
                project_id = app.state.adding_task_to
                if project_id is None:
                    print("Commands start with '/'. Use /help to list them.", flush=True)
                    continue
                user_input = f"/task add {project_id} {user_input}"

            try:
                reply = await registry.handle(app, user_input, io)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply:
                print(reply, flush=True)

            if not app.state.authenticated:
                if not await ask_for_name(app):
                    break
                print(render.render_board(app.state, theme, app_name=app_name), flush=True)
            elif user_input.lower().startswith("/login"):
                print(render.render_board(app.state, theme, app_name=app_name), flush=True)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
