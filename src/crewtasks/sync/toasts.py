# src/crewtasks/sync/toasts.py

from __future__ import annotations

import asyncio
import logging

from ..core import reducers
from ..core.store import Store

logger = logging.getLogger(__name__)


class Toaster:
    """Shows one transient message at a time and clears it after a delay."""

    def __init__(self, store: Store, *, seconds: float = 3.0) -> None:
        self._store = store
        self._seconds = max(0.0, float(seconds))
        self._timers: list[asyncio.TimerHandle] = []

    def show(self, message: str) -> None:
        logger.info("Toast: %s", message)
        state = self._store.dispatch(reducers.show_toast, message)
        toast = state.toast
        if toast is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync caller): the toast stays until the next one replaces it.
            return

        now = loop.time()
        self._timers = [t for t in self._timers if not t.cancelled() and t.when() > now]
        self._timers.append(loop.call_later(self._seconds, self._expire, toast.id))

    def _expire(self, toast_id: int) -> None:
        self._store.dispatch(reducers.clear_toast, toast_id)

    def close(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
