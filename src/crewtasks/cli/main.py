# src/crewtasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the TrackerApp, resumes the saved identity
(or asks for a name) and runs the console REPL until /exit or EOF.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_app
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..sync.session import TrackerApp
from ..ui.theme import Theme

logger = logging.getLogger(__name__)


async def _shutdown(app: TrackerApp) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await app.close()
    except Exception:
        logger.exception("Failed to close the app cleanly.")


async def run(settings) -> None:
    app = create_app(settings=settings)
    try:
        if await app.resume():
            logger.info("Resumed session as %s", app.state.current_user)
        await run_console_loop(
            app,
            theme=Theme.detect(bool(getattr(settings, "color", True))),
            app_name=str(getattr(settings, "app_name", "crewtasks")),
        )
    finally:
        await _shutdown(app)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/crewtasks")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "crewtasks"))

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
