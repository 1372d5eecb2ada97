# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "CREWTASKS_APP_NAME": "Name shown in the board header (default: crewtasks).",
    "CREWTASKS_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "CREWTASKS_DATA_DIR": "Local data directory (default: .local/crewtasks).",
    "CREWTASKS_SESSION_PATH": "Saved display name (default: <data_dir>/session.json).",
    # Remote store
    "CREWTASKS_GATEWAY": "sqlite (default) or supabase.",
    "CREWTASKS_SQLITE_DB_PATH": "Shared SQLite file (default: <data_dir>/crewtasks.sqlite3).",
    "CREWTASKS_POLL_INTERVAL_SECONDS": "How often the SQLite change feed is polled (default: 1.0).",
    "CREWTASKS_CHANGE_RETENTION_HOURS": "Change-log rows older than this are pruned on open (default: 24, 0 keeps all).",
    "CREWTASKS_SUPABASE_URL": "Supabase project URL (falls back to SUPABASE_URL).",
    "CREWTASKS_SUPABASE_KEY": "Supabase anon key (falls back to SUPABASE_KEY / SUPABASE_ANON_KEY).",
    # Behaviour
    "CREWTASKS_TOAST_SECONDS": "How long a notification stays visible (default: 3).",
    "CREWTASKS_REVIEWERS": "Comma separated reviewer roster (default: Verma, Thor, Jerome).",
    "CREWTASKS_DEFAULT_REVIEWER": "Reviewer assigned when a task enters review (default: first roster entry).",
    "CREWTASKS_ROLLBACK_ON_FAILURE": "Revert optimistic changes when the server rejects them (default: true).",
    # Console
    "CREWTASKS_COLOR": "ANSI colors on a TTY (default: true unless NO_COLOR is set).",
}
