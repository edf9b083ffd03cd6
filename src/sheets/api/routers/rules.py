from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import PlainTextResponse

from ...domain.errors import NotFoundError, ValidationError
from ...infrastructure.kv_store import get_kv_store
from ...services.context_loader import RULES_NAMESPACE
from ...services.rule_tree import build_file_tree


router = APIRouter(prefix="/api", tags=["rules"])

AUTOCOMPLETE_LIMIT = 10


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _rule_key(path: str) -> str:
    return f"{RULES_NAMESPACE}{path}"


def _rule_paths() -> List[str]:
    return [k.name[len(RULES_NAMESPACE):] for k in get_kv_store().list(RULES_NAMESPACE)]


@router.get("/rules")
def list_rules() -> Dict[str, Any]:
    files = [
        {
            "path": key.name[len(RULES_NAMESPACE):],
            "size": key.metadata.get("size", 0),
            "modified": key.metadata.get("modified") or _now_iso(),
        }
        for key in get_kv_store().list(RULES_NAMESPACE)
    ]
    return build_file_tree(files)


@router.get("/rules/{path:path}", response_class=PlainTextResponse)
def get_rule(path: str) -> PlainTextResponse:
    content = get_kv_store().get(_rule_key(path))
    if content is None:
        raise NotFoundError("File not found")
    return PlainTextResponse(content)


@router.post("/rules")
def upload_rule(file: UploadFile = File(...), path: Optional[str] = Form(default=None)) -> Dict[str, Any]:
    target = (path or "").strip().strip("/") or (file.filename or "").strip()
    if not target:
        raise ValidationError("A file name or path is required")
    content = file.file.read().decode("utf-8", errors="replace")
    get_kv_store().put(
        _rule_key(target),
        content,
        metadata={"size": len(content), "modified": _now_iso()},
    )
    return {"success": True, "path": target}


@router.delete("/rules/{path:path}")
def delete_rule(path: str) -> Dict[str, Any]:
    get_kv_store().delete(_rule_key(path))
    return {"success": True}


@router.get("/autocomplete")
def autocomplete(q: str = Query(default="")) -> List[str]:
    needle = q.lower()
    return [p for p in _rule_paths() if needle in p.lower()][:AUTOCOMPLETE_LIMIT]
