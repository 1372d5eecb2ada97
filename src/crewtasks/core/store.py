# src/crewtasks/core/store.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .state import TrackerState

logger = logging.getLogger(__name__)

Listener = Callable[[TrackerState], None]
Reducer = Callable[..., TrackerState]


class Store:
    """
    Observable container for TrackerState.

    All mutation goes through dispatch(reducer, *args); listeners are called
    synchronously after every effective change. Everything runs on the event
    loop thread, so no locking is needed.
    """

    def __init__(self, state: TrackerState | None = None) -> None:
        self._state = state if state is not None else TrackerState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> TrackerState:
        return self._state

    def dispatch(self, reducer: Reducer, *args: Any, **kwargs: Any) -> TrackerState:
        new_state = reducer(self._state, *args, **kwargs)
        if new_state is self._state:
            return new_state
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Store listener failed (reducer=%s)", getattr(reducer, "__name__", reducer))
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
