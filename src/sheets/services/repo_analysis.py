from __future__ import annotations

"""GitHub repository analysis: gather repo facts and build an analyst prompt."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import base64
import binascii
import logging
import re

import requests

from ..config import env_float
from ..domain.errors import NotFoundError, UpstreamConnectError, ValidationError
from .http import build_session


logger = logging.getLogger("sheets.fetch")

GITHUB_API = "https://api.github.com"
README_CHARS = 3000
TREE_FILES = 50

_REPO_RE = re.compile(r"^(?:https?://(?:www\.)?github\.com/)?([^/\s]+)/([^/\s#?]+)")

ANALYST_SYSTEM_PROMPT = (
    "You are an expert code analyst creating beautiful, comprehensive markdown sheets for developers. "
    "Focus on actionable insights, patterns, and practical recommendations. "
    "Use emojis, clear headings, and excellent formatting."
)

ANALYSIS_PROMPTS: Dict[str, str] = {
    "overview": "Provide a comprehensive overview including architecture, tech stack, and key features.",
    "security": "Conduct a security audit focusing on vulnerabilities, best practices, and recommendations.",
    "patterns": "Identify design patterns, architectural patterns, and coding best practices used.",
    "improvements": "Suggest specific improvements for code quality, performance, and maintainability.",
    "learning": "Extract key learning points and create a study guide for developers.",
    "comparison": "Compare this repository with modern best practices and suggest modernization strategies.",
}


@dataclass
class RepoData:
    info: Dict[str, Any]
    readme: Optional[str] = None
    files: List[str] = field(default_factory=list)


def parse_github_repo(value: str) -> Tuple[str, str]:
    match = _REPO_RE.match((value or "").strip())
    if not match:
        raise ValidationError("Invalid repository format; expected owner/repo or a GitHub URL")
    owner, name = match.group(1), match.group(2)
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return owner, name


class GitHubRepoClient:
    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None) -> None:
        self._session = session or build_session()
        self._timeout = timeout if timeout is not None else env_float("SHEETS_FETCH_TIMEOUT", 10.0)

    def _get(self, url: str, token: Optional[str], params: Optional[Dict[str, Any]] = None) -> requests.Response:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"token {token}"
        return self._session.get(url, headers=headers, params=params, timeout=self._timeout)

    def fetch(self, owner: str, name: str, token: Optional[str] = None) -> RepoData:
        base = f"{GITHUB_API}/repos/{owner}/{name}"
        try:
            resp = self._get(base, token)
        except requests.RequestException as exc:
            raise UpstreamConnectError(f"GitHub API unreachable: {exc}") from exc
        if resp.status_code == 404:
            raise NotFoundError(f"Repository {owner}/{name} not found")
        if not resp.ok:
            raise UpstreamConnectError(f"GitHub API returned HTTP {resp.status_code}")
        try:
            info = resp.json()
        except ValueError as exc:
            raise UpstreamConnectError("GitHub API returned a non-JSON body") from exc
        if not isinstance(info, dict):
            raise UpstreamConnectError("GitHub API returned an unexpected repository payload")
        branch = info.get("default_branch") or "main"
        return RepoData(
            info=info,
            readme=self._readme(base, token),
            files=self._files(base, branch, token),
        )

    def _readme(self, base: str, token: Optional[str]) -> Optional[str]:
        try:
            resp = self._get(f"{base}/readme", token)
            if not resp.ok:
                return None
            payload = resp.json()
            if not isinstance(payload, dict):
                return None
            encoded = payload.get("content") or ""
            return base64.b64decode(encoded).decode("utf-8", errors="replace")
        except (requests.RequestException, ValueError, binascii.Error) as exc:
            logger.info("README unavailable for %s: %s", base, exc)
            return None

    def _files(self, base: str, branch: str, token: Optional[str]) -> List[str]:
        try:
            resp = self._get(f"{base}/git/trees/{branch}", token, params={"recursive": 1})
            if not resp.ok:
                return []
            payload = resp.json()
            tree = (payload.get("tree") if isinstance(payload, dict) else None) or []
        except (requests.RequestException, ValueError) as exc:
            logger.info("File tree unavailable for %s: %s", base, exc)
            return []
        return [str(f.get("path")) for f in tree if isinstance(f, dict) and f.get("type") == "blob"][:TREE_FILES]


def build_analysis_prompt(data: RepoData, analysis_type: str) -> str:
    info = data.info
    lines: List[str] = [
        f"# Repository Analysis: {info.get('full_name', 'unknown')}",
        "",
        f"Description: {info.get('description') or 'No description'}",
        f"Language: {info.get('language') or 'Unknown'}",
        f"Stars: {info.get('stargazers_count', 0)} | Forks: {info.get('forks_count', 0)}",
        "",
    ]
    if data.readme:
        lines += ["## README Content", data.readme[:README_CHARS] + "...", ""]
    if data.files:
        lines.append("## File Structure")
        lines += [f"- {path}" for path in data.files]
        lines.append("")
    kind = analysis_type if analysis_type in ANALYSIS_PROMPTS else "overview"
    lines += [
        "",
        f"Analysis Type: {kind}",
        ANALYSIS_PROMPTS[kind],
        "",
        "Generate a beautiful, comprehensive markdown sheet with emojis, clear sections, and actionable insights.",
    ]
    return "\n".join(lines)


def build_analysis_messages(data: RepoData, analysis_type: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": ANALYST_SYSTEM_PROMPT},
        {"role": "user", "content": build_analysis_prompt(data, analysis_type)},
    ]
