from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


BlockStatus = Literal["ok", "not_found", "error"]


@dataclass(frozen=True)
class ContentBlock:
    """Request-scoped text destined for the composed prompt.

    ``origin`` is the tag path or URL that produced the block; ``label`` and
    ``title`` form the delimiter header (``File: a/b.md``).
    """

    origin: str
    label: str
    title: str
    text: str
    status: BlockStatus = "ok"

    def render(self) -> str:
        return f"\n\n---\n{self.label}: {self.title}\n---\n{self.text}\n"


class GenerateRequest(BaseModel):
    prompt: str
    context: List[str] = Field(default_factory=list, description="Extra context paths to load")
    mode: Optional[str] = Field(default=None, description="Optional focus, e.g. audit or vision")


class AnalyzeRepoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo: str
    analysis_type: str = Field(default="overview", alias="analysisType")
    user_token: Optional[str] = Field(default=None, alias="userToken")


class SheetCreate(BaseModel):
    title: str = "Untitled sheet"
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Sheet(BaseModel):
    id: str
    user_id: str
    title: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class SheetSaveResponse(BaseModel):
    id: str
    success: bool = True


class ContextUpload(BaseModel):
    path: str = Field(min_length=1)
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SessionUser(BaseModel):
    """GitHub-backed session stored under ``auth:{token}``."""

    id: str
    login: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    github_token: Optional[str] = Field(default=None, alias="githubToken", exclude=True)

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class Command(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    modes: List[str] = []
