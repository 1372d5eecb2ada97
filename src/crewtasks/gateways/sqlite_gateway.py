# src/crewtasks/gateways/sqlite_gateway.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from ..core.models import ChangeEvent, ChangeKind, Collection
from ..core.ports import ChangeHandler, GatewayError, Record

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_COLUMNS: dict[Collection, tuple[str, ...]] = {
    Collection.PROJECTS: ("id", "name", "expanded", "archived", "added_by", "created_at"),
    Collection.TASKS: ("id", "project_id", "text", "status", "notes", "added_by", "reviewer", "created_at"),
}
_BOOL_COLUMNS = {"expanded", "archived"}
_READONLY_COLUMNS = {"id", "created_at"}
_DELETE_COLUMNS: dict[Collection, set[str]] = {
    Collection.PROJECTS: {"id"},
    Collection.TASKS: {"id", "project_id"},
}
_DEFAULTS: dict[Collection, dict[str, Any]] = {
    Collection.PROJECTS: {"expanded": True, "archived": False, "added_by": None},
    Collection.TASKS: {"status": "active", "notes": "", "added_by": None, "reviewer": None},
}
_REQUIRED: dict[Collection, tuple[str, ...]] = {
    Collection.PROJECTS: ("name",),
    Collection.TASKS: ("project_id", "text"),
}

_CHANGE_BATCH = 500


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _to_db(column: str, value: Any) -> Any:
    if value is None:
        return None
    if column in _BOOL_COLUMNS:
        return 1 if value else 0
    return str(value)


@dataclass(slots=True, eq=False)
class SqliteSubscription:
    collection: Collection
    handler: ChangeHandler
    cursor: int
    active: bool = True


class SqliteGateway:
    """
    Shared SQLite file used as the remote store.

    Every write appends to a `changes` log inside the same transaction. A polling
    loop turns new log rows into ChangeEvents for subscribers, so every process
    that opens the same file sees everyone's edits (its own included, as echoes).

    Thread-safety:
    - each operation opens its own SQLite connection
    - blocking calls run in a worker thread (asyncio.to_thread)
    """

    def __init__(
        self,
        db_path: str | Path = "crewtasks.sqlite3",
        *,
        poll_interval_seconds: float = 1.0,
        change_retention_hours: float = 24.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._poll_s = max(0.01, float(poll_interval_seconds))
        self._retention_s = max(0.0, float(change_retention_hours)) * 3600.0

        self._subs: list[SqliteSubscription] = []
        self._poller: asyncio.Task[None] | None = None

        self._ensure_schema()
        try:
            pruned = self._prune_changes()
        except sqlite3.Error:
            logger.warning("Change log pruning failed db=%s", self._db_path, exc_info=True)
            pruned = 0
        logger.info("SqliteGateway ready db=%s pruned_changes=%s", self._db_path, pruned)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    expanded INTEGER NOT NULL DEFAULT 1,
                    archived INTEGER NOT NULL DEFAULT 0,
                    added_by TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL REFERENCES projects(id),
                    text TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    notes TEXT NOT NULL DEFAULT '',
                    added_by TEXT,
                    reviewer TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS changes (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    record_id TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add columns older files may lack.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("SqliteGateway migration: added column %s.%s", table, name)

            add_col("projects", "expanded", "INTEGER NOT NULL DEFAULT 1")
            add_col("projects", "archived", "INTEGER NOT NULL DEFAULT 0")
            add_col("projects", "added_by", "TEXT")
            add_col("tasks", "notes", "TEXT NOT NULL DEFAULT ''")
            add_col("tasks", "added_by", "TEXT")
            add_col("tasks", "reviewer", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_projects_created ON projects(created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_changes_created ON changes(created_at)")

            conn.commit()
        finally:
            conn.close()

    def _prune_changes(self) -> int:
        if self._retention_s <= 0:
            return 0
        cutoff = time.time() - self._retention_s
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM changes WHERE created_at < ?", (cutoff,))
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(collection: Collection, row: sqlite3.Row) -> Record:
        out: Record = {}
        for col in _COLUMNS[collection]:
            val = row[col]
            out[col] = bool(val) if col in _BOOL_COLUMNS else val
        return out

    @staticmethod
    def _log_change(
        cur: sqlite3.Cursor,
        collection: Collection,
        kind: ChangeKind,
        record_id: str,
        payload: dict[str, Any],
    ) -> None:
        cur.execute(
            "INSERT INTO changes(collection, kind, record_id, payload, created_at) VALUES (?, ?, ?, ?, ?)",
            (collection.value, kind.value, record_id, json.dumps(payload, ensure_ascii=False), time.time()),
        )

    @staticmethod
    def _check_columns(collection: Collection, names: Any) -> None:
        unknown = set(names) - set(_COLUMNS[collection])
        if unknown:
            raise GatewayError(f"Unknown {collection.value} column(s): {', '.join(sorted(unknown))}")

    async def _run(self, what: str, fn: Callable[..., _T], *args: Any) -> _T:
        try:
            return await asyncio.to_thread(fn, *args)
        except GatewayError:
            raise
        except sqlite3.Error as exc:
            logger.warning("SqliteGateway %s failed: %r", what, exc)
            raise GatewayError(f"{what} failed: {exc}") from exc

    # ---- blocking operations ----

    def _select_sync(self, collection: Collection, order_by: str) -> list[Record]:
        if order_by not in _COLUMNS[collection]:
            raise GatewayError(f"Cannot order {collection.value} by {order_by!r}")
        conn = self._get_conn()
        try:
            cur = conn.execute(f"SELECT * FROM {collection.value} ORDER BY {order_by} ASC, rowid ASC")
            return [self._row_to_record(collection, r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _insert_sync(self, collection: Collection, record: Record) -> Record:
        self._check_columns(collection, record.keys())
        for col in _REQUIRED[collection]:
            val = record.get(col)
            if val is None or (isinstance(val, str) and not val.strip()):
                raise GatewayError(f"{collection.value}.{col} is required")

        row: Record = dict(_DEFAULTS[collection])
        row.update(record)
        row["id"] = str(record.get("id") or uuid.uuid4())
        row["created_at"] = _now_iso()

        cols = list(_COLUMNS[collection])
        placeholders = ", ".join("?" for _ in cols)
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                f"INSERT INTO {collection.value} ({', '.join(cols)}) VALUES ({placeholders})",
                [_to_db(c, row.get(c)) for c in cols],
            )
            stored = cur.execute(f"SELECT * FROM {collection.value} WHERE id = ?", (row["id"],)).fetchone()
            created = self._row_to_record(collection, stored)
            self._log_change(cur, collection, ChangeKind.INSERT, created["id"], {"new": created})
            conn.commit()
            logger.debug("Inserted %s id=%s", collection.value, created["id"])
            return created
        finally:
            conn.close()

    def _update_sync(self, collection: Collection, record_id: str, patch: Record) -> None:
        self._check_columns(collection, patch.keys())
        fields = [c for c in patch if c not in _READONLY_COLUMNS]
        if not fields:
            return

        assignments = ", ".join(f"{c} = ?" for c in fields)
        params = [_to_db(c, patch[c]) for c in fields]
        params.append(str(record_id))

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"UPDATE {collection.value} SET {assignments} WHERE id = ?", params)
            if cur.rowcount == 0:
                conn.commit()
                logger.debug("Update matched no %s row id=%s", collection.value, record_id)
                return
            stored = cur.execute(f"SELECT * FROM {collection.value} WHERE id = ?", (str(record_id),)).fetchone()
            updated = self._row_to_record(collection, stored)
            self._log_change(cur, collection, ChangeKind.UPDATE, updated["id"], {"new": updated})
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, collection: Collection, column: str, value: Any) -> int:
        if column not in _DELETE_COLUMNS[collection]:
            raise GatewayError(f"Cannot delete {collection.value} by {column!r}")
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            ids = [
                r["id"]
                for r in cur.execute(
                    f"SELECT id FROM {collection.value} WHERE {column} = ?", (str(value),)
                ).fetchall()
            ]
            if not ids:
                return 0
            cur.execute(f"DELETE FROM {collection.value} WHERE {column} = ?", (str(value),))
            for rid in ids:
                self._log_change(cur, collection, ChangeKind.DELETE, rid, {"old": {"id": rid}})
            conn.commit()
            logger.debug("Deleted %d %s row(s) where %s=%s", len(ids), collection.value, column, value)
            return len(ids)
        finally:
            conn.close()

    def _max_seq_sync(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COALESCE(MAX(seq), 0) FROM changes").fetchone()
            return int(n)
        finally:
            conn.close()

    def _changes_since_sync(self, seq: int) -> list[tuple[int, ChangeEvent]]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT seq, collection, kind, payload
                FROM changes
                WHERE seq > ?
                ORDER BY seq ASC
                    LIMIT ?
                """,
                (int(seq), _CHANGE_BATCH),
            ).fetchall()
        finally:
            conn.close()

        out: list[tuple[int, ChangeEvent]] = []
        for r in rows:
            try:
                payload = json.loads(r["payload"])
                event = ChangeEvent(
                    collection=Collection(r["collection"]),
                    kind=ChangeKind(r["kind"]),
                    new=payload.get("new"),
                    old=payload.get("old"),
                )
            except (ValueError, AttributeError):
                logger.warning("Skipping undecodable change seq=%s", r["seq"])
                continue
            out.append((int(r["seq"]), event))
        return out

    # ---- DataGateway API ----

    async def select(self, collection: Collection, *, order_by: str = "created_at") -> list[Record]:
        return await self._run("select", self._select_sync, collection, order_by)

    async def insert(self, collection: Collection, record: Record) -> Record:
        return await self._run("insert", self._insert_sync, collection, dict(record))

    async def update(self, collection: Collection, record_id: str, patch: Record) -> None:
        await self._run("update", self._update_sync, collection, record_id, dict(patch))

    async def delete(self, collection: Collection, *, column: str = "id", value: Any) -> None:
        await self._run("delete", self._delete_sync, collection, column, value)

    async def subscribe(self, collection: Collection, handler: ChangeHandler) -> SqliteSubscription:
        cursor = await self._run("subscribe", self._max_seq_sync)
        sub = SqliteSubscription(collection=collection, handler=handler, cursor=cursor)
        self._subs.append(sub)
        if self._poller is None or self._poller.done():
            self._poller = asyncio.create_task(self._poll_loop(), name="crewtasks-sqlite-feed")
        logger.debug("Subscribed to %s at seq=%s", collection.value, cursor)
        return sub

    async def unsubscribe(self, subscription: SqliteSubscription) -> None:
        subscription.active = False
        if subscription in self._subs:
            self._subs.remove(subscription)
            logger.debug("Unsubscribed from %s", subscription.collection.value)
        if not self._subs:
            await self._stop_poller()

    async def poll_once(self) -> int:
        """Deliver pending changes to active subscribers; returns how many events were handed out."""
        subs = [s for s in self._subs if s.active]
        if not subs:
            return 0

        delivered = 0
        while True:
            since = min(s.cursor for s in subs)
            batch = await self._run("poll", self._changes_since_sync, since)
            for seq, event in batch:
                for sub in subs:
                    if not sub.active or seq <= sub.cursor:
                        continue
                    sub.cursor = seq
                    if event.collection != sub.collection:
                        continue
                    try:
                        sub.handler(event)
                    except Exception:
                        logger.exception("Change handler failed collection=%s", sub.collection.value)
                    delivered += 1
            if len(batch) < _CHANGE_BATCH:
                return delivered

    async def _poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Change feed poll failed db=%s", self._db_path)
            await asyncio.sleep(self._poll_s)

    async def _stop_poller(self) -> None:
        poller, self._poller = self._poller, None
        if poller is None:
            return
        poller.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await poller

    async def close(self) -> None:
        for sub in self._subs:
            sub.active = False
        self._subs.clear()
        await self._stop_poller()
