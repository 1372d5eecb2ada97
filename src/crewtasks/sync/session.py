# src/crewtasks/sync/session.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core import reducers
from ..core.ports import DataGateway
from ..core.state import TrackerState
from ..core.store import Store
from .actions import TrackerActions
from .engine import SyncEngine
from .identity import IdentityStore
from .toasts import Toaster

logger = logging.getLogger(__name__)

DEFAULT_REVIEWERS: tuple[str, ...] = ("Verma", "Thor", "Jerome")


class TrackerApp:
    """
    One client: identity, local mirror, change feed and user actions.

    Unauthenticated -> login(name) -> authenticated (sync running)
    Authenticated   -> logout()     -> unauthenticated (mirror cleared)
    Logging in under another name tears the previous session down first.
    """

    def __init__(
        self,
        *,
        gateway: DataGateway,
        identity: IdentityStore,
        reviewers: Iterable[str] = DEFAULT_REVIEWERS,
        default_reviewer: str | None = None,
        toast_seconds: float = 3.0,
        rollback_on_failure: bool = True,
        store: Store | None = None,
    ) -> None:
        self.reviewers = tuple(reviewers) or DEFAULT_REVIEWERS
        self.default_reviewer = default_reviewer or self.reviewers[0]

        self.store = store if store is not None else Store()
        self.gateway = gateway
        self.identity = identity
        self.toaster = Toaster(self.store, seconds=toast_seconds)
        self.engine = SyncEngine(gateway, self.store, self.toaster)
        self.actions = TrackerActions(
            self.store,
            gateway,
            self.toaster,
            default_reviewer=self.default_reviewer,
            rollback_on_failure=rollback_on_failure,
        )

    @property
    def state(self) -> TrackerState:
        return self.store.state

    async def resume(self) -> bool:
        """Log back in with the persisted name, if any."""
        try:
            name = self.identity.load()
        except Exception:
            logger.exception("Failed to read persisted identity")
            return False
        if not name:
            return False
        return await self.login(name)

    async def login(self, name: str) -> bool:
        name = (name or "").strip()
        if not name:
            return False

        if self.state.current_user == name and self.engine.running:
            return True
        if self.engine.running:
            logger.info("Switching user %s -> %s", self.state.current_user, name)
            await self.engine.stop()

        try:
            self.identity.save(name)
        except Exception:
            logger.exception("Failed to persist identity %r", name)

        self.store.dispatch(reducers.login, name)
        logger.info("Logged in as %s", name)
        await self.engine.start()
        return True

    async def logout(self) -> None:
        user = self.state.current_user
        await self.engine.stop()
        try:
            self.identity.clear()
        except Exception:
            logger.exception("Failed to clear persisted identity")
        self.store.dispatch(reducers.logout)
        logger.info("Logged out (was %s)", user)

    async def refresh(self) -> bool:
        if not self.state.authenticated:
            return False
        if not self.engine.running:
            # The change feed never came up; reconnect from scratch.
            return await self.engine.start()
        return await self.engine.refresh()

    async def close(self) -> None:
        await self.engine.stop()
        self.toaster.close()
        try:
            await self.gateway.close()
        except Exception:
            logger.exception("Gateway close failed")
