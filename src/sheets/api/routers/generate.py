from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ...config import env_flag
from ...domain.errors import ValidationError
from ...domain.models import AnalyzeRepoRequest, GenerateRequest, SessionUser
from ...infrastructure.kv_store import get_kv_store
from ...security.auth import get_optional_user
from ...services.completion_relay import CompletionRelay
from ...services.context_loader import context_namespaces, load_context
from ...services.extract import extract_tags, extract_urls, require_urls, tag_paths
from ...services.prompt_composer import build_messages, compose_prompt
from ...services.remote_fetcher import RemoteFetcher
from ...services.repo_analysis import GitHubRepoClient, build_analysis_messages, parse_github_repo


router = APIRouter(prefix="/api", tags=["generate"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _stream(relay: CompletionRelay) -> StreamingResponse:
    return StreamingResponse(relay.iter_bytes(), media_type="text/event-stream", headers=STREAM_HEADERS)


def _context_paths(prompt: str, explicit: List[str]) -> List[str]:
    paths = tag_paths(extract_tags(prompt))
    paths += [p.strip().lstrip("#") for p in explicit if p and p.strip()]
    return list(dict.fromkeys(paths))


@router.post("/generate")
def generate(req: GenerateRequest, user: Optional[SessionUser] = Depends(get_optional_user)) -> StreamingResponse:
    if not req.prompt.strip():
        raise ValidationError("Prompt is required")
    urls = extract_urls(req.prompt)
    if env_flag("SHEETS_REQUIRE_URL"):
        require_urls(urls)

    # Everything is loaded before the upstream call; the prompt is final once streaming starts
    context_blocks = load_context(
        _context_paths(req.prompt, req.context),
        get_kv_store(),
        context_namespaces(user.id if user else None),
    )
    url_blocks = RemoteFetcher().fetch_all(urls)
    composed = compose_prompt(req.prompt, context_blocks, url_blocks, mode=req.mode)

    relay = CompletionRelay(build_messages(composed))
    relay.open()
    return _stream(relay)


@router.post("/analyze-repo")
def analyze_repo(req: AnalyzeRepoRequest, user: Optional[SessionUser] = Depends(get_optional_user)) -> StreamingResponse:
    owner, name = parse_github_repo(req.repo)
    token = req.user_token or (user.github_token if user else None)
    data = GitHubRepoClient().fetch(owner, name, token)
    relay = CompletionRelay(build_analysis_messages(data, req.analysis_type))
    relay.open()
    return _stream(relay)
