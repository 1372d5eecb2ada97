# src/crewtasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The sync layer depends on Protocols instead of concrete backends.
This keeps the remote store swappable (SQLite file, Supabase, in-memory fake)
and makes testing easier.
"""

from collections.abc import Callable
from typing import Any, Protocol

from .models import ChangeEvent, Collection

Record = dict[str, Any]
# One row as the gateway sees it: {"id": ..., "created_at": ..., <columns>}.

ChangeHandler = Callable[[ChangeEvent], None]


class GatewayError(RuntimeError):
    """Any failure reported by the remote data gateway (network, query, constraint)."""


class Subscription(Protocol):
    """Opaque handle returned by DataGateway.subscribe."""

    @property
    def collection(self) -> Collection: ...


class DataGateway(Protocol):
    """
    Remote store for both collections plus their change feeds.

    Contract:
    - select returns rows ordered ascending by order_by.
    - insert returns the stored row with server-assigned id and created_at.
    - update patches one row by id; a missing row is not an error.
    - delete removes every row where column == value (id or project_id).
    - subscribe delivers every later insert/update/delete of the collection,
      including changes made through this same gateway (echo events).

    All methods raise GatewayError on failure.
    """

    async def select(self, collection: Collection, *, order_by: str = "created_at") -> list[Record]: ...

    async def insert(self, collection: Collection, record: Record) -> Record: ...

    async def update(self, collection: Collection, record_id: str, patch: Record) -> None: ...

    async def delete(self, collection: Collection, *, column: str = "id", value: Any) -> None: ...

    async def subscribe(self, collection: Collection, handler: ChangeHandler) -> Subscription: ...

    async def unsubscribe(self, subscription: Subscription) -> None: ...

    async def close(self) -> None: ...


class KeyValueStore(Protocol):
    """Local persistent string store (holds the session display name)."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...
