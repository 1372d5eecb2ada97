# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from .fakes import InMemoryGateway, MemoryKeyValueStore, make_app


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the app.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="crewtasks",
        log_level="INFO",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        session_path=tmp_path / "session.json",
        sqlite_db_path=tmp_path / "crewtasks.sqlite3",
        # Remote store
        gateway="sqlite",
        supabase_url=None,
        supabase_key=None,
        poll_interval_seconds=0.01,
        change_retention_hours=24.0,
        # Behaviour
        toast_seconds=0.05,
        reviewers=["Verma", "Thor", "Jerome"],
        default_reviewer="Verma",
        rollback_on_failure=True,
        color=False,
    )


@pytest.fixture()
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest_asyncio.fixture()
async def app(gateway: InMemoryGateway, kv: MemoryKeyValueStore, settings: SimpleNamespace):
    """TrackerApp wired with the in-memory gateway; closed after the test."""
    tracker = make_app(gateway, kv, settings)
    yield tracker
    await tracker.close()
