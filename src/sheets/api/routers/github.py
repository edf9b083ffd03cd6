from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from ...domain.errors import AuthError, UpstreamConnectError
from ...domain.models import SessionUser
from ...infrastructure.kv_store import get_kv_store
from ...security.auth import (
    bearer_token,
    consume_oauth_state,
    create_session,
    get_current_user,
    issue_oauth_state,
    revoke_session,
)
from ...security.github_oauth import GitHubOAuthClient, GitHubOAuthConfig, authorize_url, session_record


router = APIRouter(prefix="/api/github", tags=["github"])


def _redirect(cfg: GitHubOAuthConfig, **params: str) -> RedirectResponse:
    return RedirectResponse(f"{cfg.app_url}?{urlencode(params)}", status_code=302)


@router.get("/auth")
def github_auth() -> Dict[str, str]:
    cfg = GitHubOAuthConfig.from_env()
    state = issue_oauth_state(get_kv_store())
    return {"authUrl": authorize_url(cfg, state)}


@router.get("/callback")
def github_callback(code: Optional[str] = Query(default=None), state: Optional[str] = Query(default=None)) -> RedirectResponse:
    client = GitHubOAuthClient()
    store = get_kv_store()
    if not consume_oauth_state(store, state):
        return _redirect(client.cfg, error="invalid_state")
    if not code:
        return _redirect(client.cfg, error="oauth_failed")
    try:
        access_token = client.exchange_code(code)
        if not access_token:
            return _redirect(client.cfg, error="oauth_failed")
        user = client.fetch_user(access_token)
    except UpstreamConnectError:
        return _redirect(client.cfg, error="oauth_failed")
    token = create_session(store, session_record(user, access_token))
    return _redirect(client.cfg, token=token)


@router.get("/user")
def github_user(user: SessionUser = Depends(get_current_user)) -> Dict[str, SessionUser]:
    return {"user": user}


@router.get("/repos")
def github_repos(user: SessionUser = Depends(get_current_user)) -> Dict[str, Any]:
    if not user.github_token:
        raise AuthError("Session has no GitHub access token")
    return {"repos": GitHubOAuthClient().list_repos(user.github_token)}


@router.post("/logout")
def github_logout(token: str = Depends(bearer_token)) -> Dict[str, bool]:
    return {"success": revoke_session(get_kv_store(), token)}
