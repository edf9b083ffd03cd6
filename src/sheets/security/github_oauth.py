from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode
import logging

import requests

from ..config import env_float, env_str
from ..domain.errors import UpstreamConnectError
from ..services.http import build_session


logger = logging.getLogger("sheets.auth")

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
API_URL = "https://api.github.com"


@dataclass
class GitHubOAuthConfig:
    client_id: str
    client_secret: str
    app_url: str
    scope: str = "repo,user"

    @property
    def redirect_uri(self) -> str:
        return f"{self.app_url}/api/github/callback"

    @staticmethod
    def from_env() -> "GitHubOAuthConfig":
        return GitHubOAuthConfig(
            client_id=env_str("GITHUB_CLIENT_ID", "") or "",
            client_secret=env_str("GITHUB_CLIENT_SECRET", "") or "",
            app_url=(env_str("APP_URL", "http://localhost:8000") or "").rstrip("/"),
            scope=env_str("GITHUB_OAUTH_SCOPE", "repo,user") or "repo,user",
        )


def authorize_url(cfg: GitHubOAuthConfig, state: str) -> str:
    query = urlencode(
        {
            "client_id": cfg.client_id,
            "redirect_uri": cfg.redirect_uri,
            "scope": cfg.scope,
            "state": state,
        }
    )
    return f"{AUTHORIZE_URL}?{query}"


class GitHubOAuthClient:
    def __init__(
        self,
        cfg: Optional[GitHubOAuthConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.cfg = cfg or GitHubOAuthConfig.from_env()
        self._session = session or build_session(pool_size=4)
        self._timeout = env_float("SHEETS_FETCH_TIMEOUT", 10.0)

    def exchange_code(self, code: str) -> Optional[str]:
        """Trade an authorization code for an access token; None if GitHub refuses."""
        try:
            resp = self._session.post(
                TOKEN_URL,
                json={
                    "client_id": self.cfg.client_id,
                    "client_secret": self.cfg.client_secret,
                    "code": code,
                    "redirect_uri": self.cfg.redirect_uri,
                },
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamConnectError(f"GitHub OAuth unreachable: {exc}") from exc
        if not resp.ok:
            logger.warning("GitHub token exchange failed with HTTP %s", resp.status_code)
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("GitHub token exchange returned a non-JSON body")
            return None
        if not isinstance(data, dict):
            logger.warning("GitHub token exchange returned an unexpected payload")
            return None
        token = data.get("access_token")
        if not token:
            logger.warning("GitHub token exchange rejected: %s", data.get("error", "unknown"))
            return None
        return str(token)

    def _api_get(self, path: str, token: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = self._session.get(
                f"{API_URL}{path}",
                headers={"Authorization": f"token {token}", "Accept": "application/vnd.github+json"},
                params=params,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamConnectError(f"GitHub API unreachable: {exc}") from exc
        if not resp.ok:
            raise UpstreamConnectError(f"GitHub API returned HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamConnectError(f"GitHub API returned a non-JSON body for {path}") from exc

    def fetch_user(self, token: str) -> Dict[str, Any]:
        user = self._api_get("/user", token)
        if not isinstance(user, dict):
            raise UpstreamConnectError("GitHub API returned an unexpected user payload")
        return user

    def list_repos(self, token: str) -> List[Dict[str, Any]]:
        repos = self._api_get("/user/repos", token, params={"per_page": 100, "sort": "updated"})
        if not isinstance(repos, list):
            raise UpstreamConnectError("GitHub API returned an unexpected repository list")
        return repos


def session_record(user: Dict[str, Any], access_token: str) -> Dict[str, Any]:
    return {
        "id": str(user.get("id")),
        "login": user.get("login") or "",
        "name": user.get("name"),
        "avatar": user.get("avatar_url"),
        "githubToken": access_token,
    }
