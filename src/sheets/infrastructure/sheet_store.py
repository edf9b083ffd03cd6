from __future__ import annotations

from datetime import UTC, datetime
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol
import logging
import os
import uuid

from ..domain.models import Sheet
from .kv_store import StoreConnectError


logger = logging.getLogger("sheets.storage")


class SheetStore(Protocol):
    def create(self, user_id: str, title: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> Sheet: ...

    def get(self, sheet_id: str) -> Optional[Sheet]: ...

    def list_for_user(self, user_id: str, limit: int = 50) -> List[Sheet]: ...


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def new_sheet(user_id: str, title: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> Sheet:
    now = _now_iso()
    return Sheet(
        id=uuid.uuid4().hex,
        user_id=user_id,
        title=title,
        content=content,
        metadata=dict(metadata or {}),
        created_at=now,
        updated_at=now,
    )


class InMemorySheetStore:
    def __init__(self) -> None:
        self._sheets: Dict[str, Sheet] = {}
        self._by_user: Dict[str, List[str]] = {}
        self._lock = RLock()

    def create(self, user_id: str, title: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> Sheet:
        with self._lock:
            sheet = new_sheet(user_id, title, content, metadata)
            self._sheets[sheet.id] = sheet
            self._by_user.setdefault(user_id, []).append(sheet.id)
            return sheet.model_copy(deep=True)

    def get(self, sheet_id: str) -> Optional[Sheet]:
        with self._lock:
            sheet = self._sheets.get(sheet_id)
            return sheet.model_copy(deep=True) if sheet else None

    def list_for_user(self, user_id: str, limit: int = 50) -> List[Sheet]:
        with self._lock:
            ids = self._by_user.get(user_id, [])
            # Newest first; insertion order breaks timestamp ties
            ordered = [self._sheets[sid] for sid in reversed(ids) if sid in self._sheets]
            ordered.sort(key=lambda s: s.created_at, reverse=True)
            return [s.model_copy(deep=True) for s in ordered[: max(0, limit)]]


_store: SheetStore | None = None


def get_sheet_store() -> SheetStore:
    global _store
    if _store is not None:
        return _store
    impl = os.getenv("SHEETS_SHEET_STORE_IMPL", "memory").lower()
    if impl == "mongo":
        from .sheet_store_mongo import MongoSheetStore

        try:
            _store = MongoSheetStore()
            return _store
        except StoreConnectError as exc:
            logger.warning("Mongo sheet store unavailable (%s); falling back to memory", exc)
    _store = InMemorySheetStore()
    return _store


def set_sheet_store(store: SheetStore | None) -> None:
    global _store
    _store = store
