# src/crewtasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time (Supabase credentials only when selected).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "CREWTASKS"

GATEWAYS = ("sqlite", "supabase")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    # Comma-separated; names may contain spaces.
    return [p.strip() for p in raw.split(",") if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    session_path: Path

    # ---- Remote store ----
    gateway: str
    sqlite_db_path: Path
    supabase_url: str | None
    supabase_key: str | None
    poll_interval_seconds: float
    change_retention_hours: float

    # ---- Behaviour ----
    toast_seconds: float
    reviewers: list[str]
    default_reviewer: str
    rollback_on_failure: bool

    # ---- Console ----
    color: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "crewtasks") or "crewtasks"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/crewtasks"))
        session_path = _env_path(_k("SESSION_PATH"), data_dir / "session.json")

        gateway = _env(_k("GATEWAY"), "sqlite").strip().lower()
        if gateway not in GATEWAYS:
            gateway = "sqlite"
        sqlite_db_path = _env_path(_k("SQLITE_DB_PATH"), data_dir / "crewtasks.sqlite3")
        supabase_url = _first_env(_k("SUPABASE_URL"), "SUPABASE_URL", default=None)
        supabase_key = _first_env(_k("SUPABASE_KEY"), "SUPABASE_KEY", "SUPABASE_ANON_KEY", default=None)
        poll_interval_seconds = max(0.05, _env_float(_k("POLL_INTERVAL_SECONDS"), 1.0))
        change_retention_hours = max(0.0, _env_float(_k("CHANGE_RETENTION_HOURS"), 24.0))

        toast_seconds = max(0.0, _env_float(_k("TOAST_SECONDS"), 3.0))
        reviewers = _env_list(_k("REVIEWERS"), ["Verma", "Thor", "Jerome"]) or ["Verma", "Thor", "Jerome"]
        default_reviewer = (_env(_k("DEFAULT_REVIEWER"), "") or "").strip() or reviewers[0]
        rollback_on_failure = _env_bool(_k("ROLLBACK_ON_FAILURE"), True)

        # NO_COLOR (https://no-color.org) wins unless explicitly overridden.
        color = _env_bool(_k("COLOR"), os.getenv("NO_COLOR") is None)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            session_path=session_path,
            gateway=gateway,
            sqlite_db_path=sqlite_db_path,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            poll_interval_seconds=poll_interval_seconds,
            change_retention_hours=change_retention_hours,
            toast_seconds=toast_seconds,
            reviewers=reviewers,
            default_reviewer=default_reviewer,
            rollback_on_failure=rollback_on_failure,
            color=color,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
