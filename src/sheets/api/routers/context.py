from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List
import json

from fastapi import APIRouter, Depends

from ...domain.models import ContextUpload, SessionUser
from ...infrastructure.kv_store import get_kv_store
from ...security.auth import get_current_user
from ...services.context_loader import user_namespace


router = APIRouter(prefix="/api/context", tags=["context"])

META_SUFFIX = ":meta"


@router.get("")
def list_context(user: SessionUser = Depends(get_current_user)) -> Dict[str, List[Dict[str, Any]]]:
    store = get_kv_store()
    prefix = user_namespace(user.id)
    files: List[Dict[str, Any]] = []
    for key in store.list(prefix):
        if key.name.endswith(META_SUFFIX):
            continue
        meta = store.get_json(f"{key.name}{META_SUFFIX}") or {}
        files.append({"path": key.name[len(prefix):], **meta})
    return {"files": files}


@router.post("/upload")
def upload_context(req: ContextUpload, user: SessionUser = Depends(get_current_user)) -> Dict[str, Any]:
    store = get_kv_store()
    key = f"{user_namespace(user.id)}{req.path}"
    meta = {
        **req.metadata,
        "uploadedAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "size": len(req.content),
    }
    store.put(key, req.content)
    store.put(f"{key}{META_SUFFIX}", json.dumps(meta))
    return {"success": True, "path": req.path}
