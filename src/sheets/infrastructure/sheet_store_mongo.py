from __future__ import annotations

from typing import Any, Dict, List, Optional
import os

from pymongo import DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from ..domain.errors import StoreUnavailableError
from ..domain.models import Sheet
from .kv_store import StoreConnectError
from .sheet_store import new_sheet


class MongoSheetStore:
    def __init__(self, client: Optional[MongoClient] = None) -> None:
        mongo_url = os.getenv("MONGO_URL", "mongodb://localhost:27017")
        mongo_db = os.getenv("MONGO_DB", "sheets")
        try:
            self._client = client or MongoClient(mongo_url, serverSelectionTimeoutMS=500)
            self._client.server_info()
            self._collection = self._client[mongo_db]["sheets"]
            self._collection.create_index("id", unique=True)
            self._collection.create_index([("user_id", 1), ("created_at", DESCENDING)])
        except PyMongoError as exc:
            raise StoreConnectError(str(exc)) from exc

    def create(self, user_id: str, title: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> Sheet:
        sheet = new_sheet(user_id, title, content, metadata)
        try:
            self._collection.insert_one(sheet.model_dump())
        except PyMongoError as exc:
            raise StoreUnavailableError(f"Sheet store unavailable: {exc}") from exc
        return sheet

    def get(self, sheet_id: str) -> Optional[Sheet]:
        try:
            doc = self._collection.find_one({"id": sheet_id})
        except PyMongoError as exc:
            raise StoreUnavailableError(f"Sheet store unavailable: {exc}") from exc
        return self._to_sheet(doc) if doc else None

    def list_for_user(self, user_id: str, limit: int = 50) -> List[Sheet]:
        try:
            cursor = self._collection.find({"user_id": user_id}).sort("created_at", DESCENDING).limit(max(0, limit))
            return [self._to_sheet(doc) for doc in cursor]
        except PyMongoError as exc:
            raise StoreUnavailableError(f"Sheet store unavailable: {exc}") from exc

    def _to_sheet(self, doc: Dict[str, Any]) -> Sheet:
        doc = dict(doc)
        doc.pop("_id", None)
        return Sheet(**doc)
