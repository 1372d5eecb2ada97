# src/crewtasks/sync/identity.py

from __future__ import annotations

import logging

from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "crewtasks-user"


class IdentityStore:
    """
    The current display name, persisted under one fixed key.

    This is a trust-based label, not authentication: nothing is verified.
    """

    def __init__(self, kv: KeyValueStore, key: str = SESSION_USER_KEY) -> None:
        self._kv = kv
        self._key = key

    def load(self) -> str | None:
        name = (self._kv.get(self._key) or "").strip()
        return name or None

    def save(self, name: str) -> None:
        self._kv.set(self._key, name)
        logger.debug("Persisted session identity %r", name)

    def clear(self) -> None:
        self._kv.remove(self._key)
        logger.debug("Cleared session identity")
