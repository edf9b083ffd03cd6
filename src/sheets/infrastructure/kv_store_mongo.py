from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Tuple
import logging
import os
import re

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..domain.errors import StoreUnavailableError
from .kv_store import KVKey, StoreConnectError, _decode_json, _expiry


logger = logging.getLogger("sheets.storage")


class MongoKVStore:
    """KV store backed by one Mongo collection keyed by ``_id``.

    Expired documents are removed by a TTL index on ``expires_at``; reads also
    filter on it because the TTL monitor only runs periodically.
    """

    def __init__(self, client: Optional[MongoClient] = None) -> None:
        mongo_url = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        mongo_db = os.getenv("MONGO_DB", "sheets")
        try:
            self._client = client or MongoClient(mongo_url, serverSelectionTimeoutMS=500)
            self._client.server_info()
            self._collection = self._client[mongo_db]["kv"]
            self._collection.create_index("expires_at", expireAfterSeconds=0)
        except PyMongoError as exc:
            raise StoreConnectError(str(exc)) from exc

    def _live_filter(self, extra: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(UTC)
        return {
            **extra,
            "$or": [{"expires_at": None}, {"expires_at": {"$gt": now}}],
        }

    def _find(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            return self._collection.find_one(self._live_filter({"_id": key}))
        except PyMongoError as exc:
            logger.warning("kv get failed for %s: %s", key, exc)
            raise StoreUnavailableError(f"Key-value store unavailable: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        doc = self._find(key)
        if not doc or doc.get("value") is None:
            return None
        return str(doc["value"])

    def get_json(self, key: str) -> Optional[Any]:
        return _decode_json(key, self.get(key))

    def get_with_metadata(self, key: str) -> Tuple[Optional[str], Dict[str, Any]]:
        doc = self._find(key)
        if not doc or doc.get("value") is None:
            return None, {}
        return str(doc["value"]), dict(doc.get("metadata") or {})

    def put(
        self,
        key: str,
        value: str,
        metadata: Optional[Dict[str, Any]] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        doc = {
            "value": value,
            "metadata": dict(metadata or {}),
            "expires_at": _expiry(ttl_seconds),
        }
        try:
            self._collection.replace_one({"_id": key}, doc, upsert=True)
        except PyMongoError as exc:
            raise StoreUnavailableError(f"Key-value store unavailable: {exc}") from exc

    def delete(self, key: str) -> bool:
        try:
            res = self._collection.delete_one({"_id": key})
        except PyMongoError as exc:
            raise StoreUnavailableError(f"Key-value store unavailable: {exc}") from exc
        return bool(res.deleted_count)

    def list(self, prefix: str = "") -> List[KVKey]:
        query = self._live_filter({"_id": {"$regex": "^" + re.escape(prefix)}})
        try:
            cursor = self._collection.find(query, {"metadata": 1}).sort("_id", 1)
            return [KVKey(name=str(doc["_id"]), metadata=dict(doc.get("metadata") or {})) for doc in cursor]
        except PyMongoError as exc:
            raise StoreUnavailableError(f"Key-value store unavailable: {exc}") from exc
