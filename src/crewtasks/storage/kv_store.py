# src/crewtasks/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def _load_json(path: Path) -> dict[str, str]:
    raw = path.read_text("utf-8")
    val = json.loads(raw)
    if not isinstance(val, dict):
        raise ValueError("Expected JSON object")
    return {str(k): str(v) for k, v in val.items() if v is not None}


def _atomic_write_json(path: Path, data: dict[str, str]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(Exception):
        # Best-effort: not critical on Windows or restricted FS.
        os.chmod(path, 0o600)


class JsonFileKeyValueStore:
    """
    Tiny string key-value store backed by one JSON file.

    The file is re-read on every get so two clients on the same machine see each
    other's writes; an unreadable file behaves like an empty store.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            return _load_json(self._path)
        except Exception:
            logger.warning("Unreadable key-value file %s; treating as empty", self._path, exc_info=True)
            return {}

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write_json(self._path, data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        _atomic_write_json(self._path, data)
