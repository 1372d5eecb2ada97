# src/crewtasks/gateways/supabase_gateway.py

from __future__ import annotations

"""
Supabase-backed gateway (hosted Postgres + realtime change feed).

Optional: requires the `supabase` extra. Both tables must exist in the
`public` schema and be part of the realtime publication.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from ..core.models import ChangeEvent, ChangeKind, Collection
from ..core.ports import ChangeHandler, GatewayError, Record

logger = logging.getLogger(__name__)

_KINDS = {"INSERT": ChangeKind.INSERT, "UPDATE": ChangeKind.UPDATE, "DELETE": ChangeKind.DELETE}


def event_from_payload(collection: Collection, payload: Any) -> ChangeEvent | None:
    """
    Normalize a realtime postgres_changes payload.

    Accepts both the realtime client shape ({"data": {"type", "record", "old_record"}})
    and the wire shape ({"eventType", "new", "old"}). Returns None for anything else.
    """
    if not isinstance(payload, dict):
        return None

    data = payload.get("data")
    if isinstance(data, dict):
        kind = data.get("type")
        new = data.get("record")
        old = data.get("old_record")
    else:
        kind = payload.get("eventType") or payload.get("type")
        new = payload.get("new") or payload.get("record")
        old = payload.get("old") or payload.get("old_record")

    change_kind = _KINDS.get(str(kind or "").upper())
    if change_kind is None:
        return None

    return ChangeEvent(
        collection=collection,
        kind=change_kind,
        new=new if isinstance(new, dict) and new else None,
        old=old if isinstance(old, dict) and old else None,
    )


@dataclass(slots=True, eq=False)
class SupabaseSubscription:
    collection: Collection
    channel: Any


class SupabaseGateway:
    def __init__(self, url: str, key: str, *, schema: str = "public") -> None:
        if not url or not key:
            raise ValueError("Supabase gateway requires both url and key")
        self._url = url
        self._key = key
        self._schema = schema
        self._client: Any = None
        self._lock = asyncio.Lock()
        self._channel_seq = 0

    @staticmethod
    def _load_supabase() -> Any:
        """Import the async client factory with a friendly install hint on failure."""
        try:
            from supabase import acreate_client
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise RuntimeError(
                "Supabase gateway requires the supabase client. Install with: "
                'python -m pip install "crewtasks[supabase]"'
            ) from exc
        return acreate_client

    async def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                acreate_client = self._load_supabase()
                try:
                    self._client = await acreate_client(self._url, self._key)
                except Exception as exc:
                    raise GatewayError(f"Supabase connection failed: {exc}") from exc
                logger.info("Supabase client ready url=%s", self._url)
        return self._client

    async def select(self, collection: Collection, *, order_by: str = "created_at") -> list[Record]:
        client = await self._get_client()
        try:
            resp = await client.table(collection.value).select("*").order(order_by, desc=False).execute()
        except Exception as exc:
            raise GatewayError(f"select {collection.value} failed: {exc}") from exc
        return list(resp.data or [])

    async def insert(self, collection: Collection, record: Record) -> Record:
        client = await self._get_client()
        try:
            resp = await client.table(collection.value).insert(dict(record)).execute()
        except Exception as exc:
            raise GatewayError(f"insert {collection.value} failed: {exc}") from exc
        rows = resp.data or []
        if not rows:
            raise GatewayError(f"insert {collection.value} returned no row")
        return dict(rows[0])

    async def update(self, collection: Collection, record_id: str, patch: Record) -> None:
        client = await self._get_client()
        try:
            await client.table(collection.value).update(dict(patch)).eq("id", record_id).execute()
        except Exception as exc:
            raise GatewayError(f"update {collection.value} failed: {exc}") from exc

    async def delete(self, collection: Collection, *, column: str = "id", value: Any) -> None:
        client = await self._get_client()
        try:
            await client.table(collection.value).delete().eq(column, value).execute()
        except Exception as exc:
            raise GatewayError(f"delete {collection.value} failed: {exc}") from exc

    async def subscribe(self, collection: Collection, handler: ChangeHandler) -> SupabaseSubscription:
        client = await self._get_client()

        def _on_change(payload: Any) -> None:
            event = event_from_payload(collection, payload)
            if event is None:
                logger.warning("Ignoring unrecognized realtime payload for %s", collection.value)
                return
            handler(event)

        self._channel_seq += 1
        channel = client.channel(f"{collection.value}-changes-{self._channel_seq}")
        try:
            await channel.on_postgres_changes(
                "*", schema=self._schema, table=collection.value, callback=_on_change
            ).subscribe()
        except Exception as exc:
            raise GatewayError(f"subscribe {collection.value} failed: {exc}") from exc
        logger.debug("Realtime channel joined table=%s", collection.value)
        return SupabaseSubscription(collection=collection, channel=channel)

    async def unsubscribe(self, subscription: SupabaseSubscription) -> None:
        client = self._client
        if client is None:
            return
        try:
            await client.remove_channel(subscription.channel)
        except Exception as exc:
            raise GatewayError(f"unsubscribe {subscription.collection.value} failed: {exc}") from exc

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.remove_all_channels()
        except Exception:
            logger.warning("Supabase channel cleanup failed", exc_info=True)
