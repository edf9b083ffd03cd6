from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from ...domain.errors import NotFoundError
from ...domain.models import Sheet, SheetCreate, SheetSaveResponse, SessionUser
from ...infrastructure.sheet_store import get_sheet_store
from ...security.auth import get_current_user
from ...services.markdown_render import render_markdown


router = APIRouter(prefix="/api/sheets", tags=["sheets"])

LIST_LIMIT = 50


def _load(sheet_id: str) -> Sheet:
    sheet = get_sheet_store().get(sheet_id)
    if sheet is None:
        raise NotFoundError("Sheet not found")
    return sheet


@router.get("")
def list_sheets(user: SessionUser = Depends(get_current_user)) -> Dict[str, List[Sheet]]:
    return {"sheets": get_sheet_store().list_for_user(user.id, limit=LIST_LIMIT)}


@router.post("/save", response_model=SheetSaveResponse)
def save_sheet(req: SheetCreate, user: SessionUser = Depends(get_current_user)) -> SheetSaveResponse:
    sheet = get_sheet_store().create(user.id, req.title, req.content, req.metadata)
    return SheetSaveResponse(id=sheet.id, success=True)


@router.get("/{sheet_id}")
def get_sheet(sheet_id: str) -> Dict[str, Sheet]:
    return {"sheet": _load(sheet_id)}


@router.get("/{sheet_id}/html", response_class=HTMLResponse)
def get_sheet_html(sheet_id: str) -> HTMLResponse:
    sheet = _load(sheet_id)
    return HTMLResponse(render_markdown(sheet.content))
