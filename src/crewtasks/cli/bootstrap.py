# src/crewtasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the concrete gateway and identity store into a TrackerApp.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import DataGateway
from ..gateways.sqlite_gateway import SqliteGateway
from ..storage.kv_store import JsonFileKeyValueStore
from ..sync.identity import IdentityStore
from ..sync.session import TrackerApp

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.session_path.parent.mkdir(parents=True, exist_ok=True)
    settings.sqlite_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_gateway(settings) -> DataGateway:
    gateway_name = str(getattr(settings, "gateway", "sqlite")).lower()

    if gateway_name == "supabase":
        # Imported lazily: the supabase client is an optional extra.
        from ..gateways.supabase_gateway import SupabaseGateway

        if not settings.supabase_url or not settings.supabase_key:
            raise RuntimeError(
                "CREWTASKS_GATEWAY=supabase requires CREWTASKS_SUPABASE_URL and CREWTASKS_SUPABASE_KEY."
            )
        logger.info("Using Supabase gateway url=%s", settings.supabase_url)
        return SupabaseGateway(settings.supabase_url, settings.supabase_key)

    logger.info("Using SQLite gateway db=%s", settings.sqlite_db_path)
    return SqliteGateway(
        settings.sqlite_db_path,
        poll_interval_seconds=settings.poll_interval_seconds,
        change_retention_hours=settings.change_retention_hours,
    )


def create_app(*, settings=None, gateway: DataGateway | None = None) -> TrackerApp:
    """
    Create a TrackerApp from the provided settings.

    Keeping settings (and the gateway) injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if gateway is None:
        gateway = create_gateway(settings)

    return TrackerApp(
        gateway=gateway,
        identity=IdentityStore(JsonFileKeyValueStore(settings.session_path)),
        reviewers=settings.reviewers,
        default_reviewer=settings.default_reviewer,
        toast_seconds=settings.toast_seconds,
        rollback_on_failure=settings.rollback_on_failure,
    )
