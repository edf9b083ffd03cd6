from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol, Tuple
import json
import logging
import os


logger = logging.getLogger("sheets.storage")


@dataclass
class KVKey:
    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class StoreConnectError(RuntimeError):
    """Raised when a persistent backend cannot be reached at start-up."""


class KVStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def get_json(self, key: str) -> Optional[Any]: ...

    def get_with_metadata(self, key: str) -> Tuple[Optional[str], Dict[str, Any]]: ...

    def put(
        self,
        key: str,
        value: str,
        metadata: Optional[Dict[str, Any]] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None: ...

    def delete(self, key: str) -> bool: ...

    def list(self, prefix: str = "") -> List[KVKey]: ...


@dataclass
class _Entry:
    value: str
    metadata: Dict[str, Any]
    expires_at: Optional[datetime] = None


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _expiry(ttl_seconds: Optional[int]) -> Optional[datetime]:
    if not ttl_seconds:
        return None
    return _utc_now() + timedelta(seconds=int(ttl_seconds))


def _decode_json(key: str, raw: Optional[str]) -> Optional[Any]:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("KV value under %s is not valid JSON", key)
        return None


class InMemoryKVStore:
    """Thread-safe key-value store with per-key metadata and lazy expiry."""

    def __init__(self) -> None:
        self._data: Dict[str, _Entry] = {}
        self._lock = RLock()

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= _utc_now():
            self._data.pop(key, None)
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key)
            return entry.value if entry else None

    def get_json(self, key: str) -> Optional[Any]:
        return _decode_json(key, self.get(key))

    def get_with_metadata(self, key: str) -> Tuple[Optional[str], Dict[str, Any]]:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None, {}
            return entry.value, dict(entry.metadata)

    def put(
        self,
        key: str,
        value: str,
        metadata: Optional[Dict[str, Any]] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        with self._lock:
            self._data[key] = _Entry(
                value=value,
                metadata=dict(metadata or {}),
                expires_at=_expiry(ttl_seconds),
            )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def list(self, prefix: str = "") -> List[KVKey]:
        with self._lock:
            names = sorted(k for k in list(self._data.keys()) if k.startswith(prefix))
            out: List[KVKey] = []
            for name in names:
                entry = self._live(name)
                if entry is None:
                    continue
                out.append(KVKey(name=name, metadata=dict(entry.metadata)))
            return out

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


_store: KVStore | None = None


def get_kv_store() -> KVStore:
    global _store
    if _store is not None:
        return _store
    impl = os.getenv("SHEETS_KV_IMPL", "memory").lower()
    if impl == "mongo":
        from .kv_store_mongo import MongoKVStore

        try:
            _store = MongoKVStore()
            return _store
        except StoreConnectError as exc:
            logger.warning("Mongo KV store unavailable (%s); falling back to memory", exc)
    _store = InMemoryKVStore()
    return _store


def set_kv_store(store: KVStore | None) -> None:
    """Swap the process-wide store (tests and embedding apps)."""
    global _store
    _store = store

