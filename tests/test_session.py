# tests/test_session.py

from __future__ import annotations

import asyncio

import pytest

from crewtasks.core.models import Collection
from crewtasks.core.state import SyncStatus
from crewtasks.sync.identity import SESSION_USER_KEY

from .fakes import InMemoryGateway, MemoryKeyValueStore, make_app


class GatedGateway(InMemoryGateway):
    """Reads rows immediately but holds the reply until `gate` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.gate: asyncio.Event | None = None
        self.parked = 0

    async def select(self, collection: Collection, *, order_by: str = "created_at"):
        rows = await super().select(collection, order_by=order_by)
        if self.gate is not None:
            self.parked += 1
            await self.gate.wait()
        return rows


class RacingGateway(InMemoryGateway):
    """Delivers a remote insert while the task snapshot is still being fetched."""

    def __init__(self) -> None:
        super().__init__()
        self.raced = False

    async def select(self, collection: Collection, *, order_by: str = "created_at"):
        rows = await super().select(collection, order_by=order_by)
        if collection == Collection.TASKS and not self.raced:
            self.raced = True
            self.remote_insert(Collection.PROJECTS, name="Late", added_by="Thor")
        return rows


@pytest.mark.asyncio
async def test_login_persists_name_and_goes_live(app, gateway, kv) -> None:
    gateway.seed(Collection.PROJECTS, name="Launch")

    assert await app.login("  Verma ") is True

    assert kv.data[SESSION_USER_KEY] == "Verma"
    assert app.state.current_user == "Verma"
    assert app.state.sync_status == SyncStatus.ONLINE
    assert app.state.loading is False
    assert [p.name for p in app.state.projects] == ["Launch"]
    assert gateway.subscribe_calls == 2


@pytest.mark.asyncio
async def test_empty_name_does_not_log_in(app, gateway, kv) -> None:
    assert await app.login("   ") is False
    assert not app.state.authenticated
    assert kv.data == {}
    assert gateway.subscribe_calls == 0


@pytest.mark.asyncio
async def test_failed_fetch_applies_nothing(app, gateway) -> None:
    gateway.seed(Collection.PROJECTS, name="Launch")
    gateway.fail.add("select:tasks")

    await app.login("Verma")

    assert app.state.sync_status == SyncStatus.OFFLINE
    assert app.state.loading is False
    assert app.state.projects == ()

    gateway.fail.clear()
    assert await app.refresh() is True
    assert app.state.sync_status == SyncStatus.ONLINE
    assert len(app.state.projects) == 1


@pytest.mark.asyncio
async def test_logout_releases_subscriptions_exactly_once(app, gateway, kv) -> None:
    await app.login("Verma")
    await app.logout()
    await app.logout()

    assert gateway.unsubscribe_calls == 2
    assert gateway.subscriptions == []
    assert SESSION_USER_KEY not in kv.data
    assert not app.state.authenticated
    assert app.state.projects == ()


@pytest.mark.asyncio
async def test_switching_identity_tears_down_previous_session(app, gateway, kv) -> None:
    await app.login("Verma")
    await app.login("Thor")

    assert gateway.subscribe_calls == 4
    assert gateway.unsubscribe_calls == 2
    assert len(gateway.subscriptions) == 2
    assert kv.data[SESSION_USER_KEY] == "Thor"


@pytest.mark.asyncio
async def test_same_name_login_is_a_noop(app, gateway) -> None:
    await app.login("Verma")
    await app.login("Verma")
    assert gateway.subscribe_calls == 2


@pytest.mark.asyncio
async def test_resume_uses_persisted_name(gateway, settings) -> None:
    kv = MemoryKeyValueStore({SESSION_USER_KEY: " Thor "})
    app = make_app(gateway, kv, settings)
    try:
        assert await app.resume() is True
        assert app.state.current_user == "Thor"
    finally:
        await app.close()

    fresh = make_app(InMemoryGateway(), MemoryKeyValueStore(), settings)
    try:
        assert await fresh.resume() is False
        assert not fresh.state.authenticated
    finally:
        await fresh.close()


@pytest.mark.asyncio
async def test_events_during_snapshot_are_applied_after_it(kv, settings) -> None:
    gateway = RacingGateway()
    app = make_app(gateway, kv, settings)
    try:
        await app.login("Verma")
        await app.engine.settle()

        assert [p.name for p in app.state.projects] == ["Late"]
        assert app.state.toast.message == '📁 Thor created "Late"'
    finally:
        await app.close()


@pytest.mark.asyncio
async def test_remote_rows_are_announced_but_own_echo_is_not(app, gateway) -> None:
    await app.login("Verma")
    project = await app.actions.add_project("Mine")
    await app.engine.settle()
    assert app.state.toast is None

    gateway.remote_insert(Collection.TASKS, project_id=project.id, text="Theirs", added_by="Jerome")
    await app.engine.settle()

    assert app.state.toast.message == "✨ Jerome added a new task"
    assert [t.text for t in app.state.tasks] == ["Theirs"]


@pytest.mark.asyncio
async def test_close_stops_sync_and_closes_gateway(app, gateway) -> None:
    await app.login("Verma")
    await app.close()

    assert gateway.closed is True
    assert gateway.unsubscribe_calls == 2
    assert app.engine.running is False


@pytest.mark.asyncio
async def test_events_during_refresh_survive_the_snapshot(kv, settings) -> None:
    gateway = GatedGateway()
    app = make_app(gateway, kv, settings)
    try:
        await app.login("Verma")
        gateway.gate = asyncio.Event()
        refreshing = asyncio.create_task(app.refresh())
        while gateway.parked < 2:
            await asyncio.sleep(0)

        gateway.remote_insert(Collection.PROJECTS, name="Late", added_by="Thor")
        await asyncio.sleep(0.01)
        # Held back until the stale snapshot has been applied.
        assert app.state.projects == ()

        gateway.gate.set()
        assert await refreshing is True
        await app.engine.settle()

        assert [p.name for p in app.state.projects] == ["Late"]
        assert app.state.sync_status == SyncStatus.ONLINE
    finally:
        await app.close()


@pytest.mark.asyncio
async def test_failed_subscription_goes_offline_and_sync_reconnects(app, gateway) -> None:
    gateway.seed(Collection.PROJECTS, name="Launch")
    gateway.fail.add("subscribe:tasks")

    await app.login("Verma")

    assert app.state.sync_status == SyncStatus.OFFLINE
    assert app.state.loading is False
    assert app.engine.running is False
    assert gateway.subscriptions == []
    assert gateway.unsubscribe_calls == 1

    gateway.fail.clear()
    assert await app.refresh() is True

    assert app.state.sync_status == SyncStatus.ONLINE
    assert app.engine.subscription_count == 2
    assert [p.name for p in app.state.projects] == ["Launch"]

    gateway.remote_insert(Collection.TASKS, project_id=app.state.projects[0].id, text="Theirs", added_by="Thor")
    await app.engine.settle()
    assert [t.text for t in app.state.tasks] == ["Theirs"]
