# src/crewtasks/sync/engine.py

from __future__ import annotations

"""
Snapshot fetch + change-feed subscriptions for one authenticated session.

Flow on start():
- subscribe to both collections; handlers only enqueue ChangeEvents,
- fetch both snapshots (syncing -> online | offline),
- start a single consumer task that drains the queue into the mirror.

Events that arrive while a snapshot is in flight wait in the queue and are
applied on top of it; the consumer holds off while refresh() owns the
snapshot lock. Because inserts are idempotent and updates/deletes are keyed by
id, the echo of our own write can land before, after or between unrelated
events without corrupting the mirror.

If either subscription cannot be established the session goes offline with
nothing subscribed; start() (or /sync) tries again from scratch.
"""

import asyncio
import contextlib
import logging

from ..core import reducers
from ..core.models import ChangeEvent, Collection, Project, Task
from ..core.ports import DataGateway, Subscription
from ..core.state import TrackerState
from ..core.store import Store
from .reconcile import reconcile
from .toasts import Toaster

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(self, gateway: DataGateway, store: Store, toaster: Toaster) -> None:
        self._gateway = gateway
        self._store = store
        self._toaster = toaster
        self._subscriptions: list[Subscription] = []
        self._queue: asyncio.Queue[ChangeEvent] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._snapshot_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._queue is not None

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def start(self) -> bool:
        """Subscribe, load the snapshot and start the consumer. Returns False when offline."""
        if self.running:
            await self.stop()

        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._queue = queue

        def _enqueue(event: ChangeEvent) -> None:
            # Bound to this session's queue: handlers of a torn-down session feed nothing.
            queue.put_nowait(event)

        for collection in (Collection.PROJECTS, Collection.TASKS):
            try:
                sub = await self._gateway.subscribe(collection, _enqueue)
            except Exception:
                logger.exception("Subscribe failed collection=%s", collection)
                await self.stop()
                self._store.dispatch(reducers.sync_failed)
                return False
            self._subscriptions.append(sub)

        ok = await self.refresh()

        if self._queue is queue:
            self._consumer = asyncio.create_task(self._consume(queue), name="crewtasks-change-feed")
        return ok

    async def refresh(self) -> bool:
        """Replace the mirror with a fresh snapshot. Returns False when offline."""
        async with self._snapshot_lock:
            return await self._load_snapshot()

    async def _load_snapshot(self) -> bool:
        self._store.dispatch(reducers.begin_sync)

        results = await asyncio.gather(
            self._gateway.select(Collection.PROJECTS, order_by="created_at"),
            self._gateway.select(Collection.TASKS, order_by="created_at"),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for err in errors:
                logger.error("Error fetching data: %r", err, exc_info=err)
            self._store.dispatch(reducers.sync_failed)
            return False

        project_rows, task_rows = results
        try:
            projects = [Project.from_record(r) for r in project_rows]  # type: ignore[union-attr]
            tasks = [Task.from_record(r) for r in task_rows]  # type: ignore[union-attr]
        except Exception:
            logger.exception("Error decoding snapshot rows")
            self._store.dispatch(reducers.sync_failed)
            return False

        self._store.dispatch(reducers.load_snapshot, projects, tasks)
        logger.info("Snapshot loaded: %d projects, %d tasks", len(projects), len(tasks))
        return True

    def apply(self, event: ChangeEvent) -> None:
        """Reconcile one event into the store (and toast if it announces someone else's row)."""
        notes: list[str] = []

        def _reduce(state: TrackerState) -> TrackerState:
            new_state, note = reconcile(state, event, state.current_user)
            if note:
                notes.append(note)
            return new_state

        self._store.dispatch(_reduce)
        for note in notes:
            self._toaster.show(note)

    async def _consume(self, queue: asyncio.Queue[ChangeEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                async with self._snapshot_lock:
                    self.apply(event)
            except Exception:
                logger.exception("Failed to apply %s %s event", event.collection, event.kind)
            finally:
                queue.task_done()

    async def settle(self) -> None:
        """Wait until every queued event has been applied."""
        queue = self._queue
        if queue is not None and self._consumer is not None:
            await queue.join()

    async def stop(self) -> None:
        """Release subscriptions (each exactly once) and stop the consumer."""
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            try:
                await self._gateway.unsubscribe(sub)
            except Exception:
                logger.exception("Unsubscribe failed collection=%s", getattr(sub, "collection", "?"))

        consumer, self._consumer = self._consumer, None
        self._queue = None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
