from __future__ import annotations

"""Fetch the content behind URLs found in a prompt.

GitHub links get special handling: a ``/blob/`` link is rewritten to the
raw-content host, a bare ``owner/repo`` link resolves to its README on the
default branch. Everything else is fetched as-is and truncated.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlparse
import logging

import requests

from ..config import env_float, env_int, env_str
from ..domain.errors import FetchError
from ..domain.models import ContentBlock
from ..observability.metrics import FETCH_TOTAL
from .http import build_session


logger = logging.getLogger("sheets.fetch")

GITHUB_HOSTS = ("github.com", "www.github.com")
RAW_GITHUB_BASE = "https://raw.githubusercontent.com"
UNABLE_TO_FETCH = "[Unable to fetch content]"


@dataclass
class FetcherConfig:
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_chars: int = 5000
    default_branch: str = "main"

    @staticmethod
    def from_env() -> "FetcherConfig":
        return FetcherConfig(
            connect_timeout=env_float("SHEETS_FETCH_CONNECT_TIMEOUT", 5.0),
            read_timeout=env_float("SHEETS_FETCH_TIMEOUT", 10.0),
            max_chars=env_int("SHEETS_FETCH_MAX_CHARS", 5000),
            default_branch=env_str("SHEETS_GITHUB_DEFAULT_BRANCH", "main") or "main",
        )


def is_github_url(url: str) -> bool:
    return urlparse(url).netloc.lower() in GITHUB_HOSTS


def github_blob_to_raw(url: str) -> Optional[Tuple[str, str]]:
    """Map ``github.com/o/r/blob/<branch>/<path>`` to ``(raw_url, path)``."""
    parsed = urlparse(url)
    if parsed.netloc.lower() not in GITHUB_HOSTS:
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 5 or parts[2] != "blob":
        return None
    owner, repo, _, branch = parts[:4]
    file_path = "/".join(parts[4:])
    return f"{RAW_GITHUB_BASE}/{owner}/{repo}/{branch}/{file_path}", file_path


def github_repo(url: str) -> Optional[Tuple[str, str]]:
    """Return ``(owner, repo)`` for a bare repository URL, else None."""
    parsed = urlparse(url)
    if parsed.netloc.lower() not in GITHUB_HOSTS:
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) != 2:
        return None
    owner, repo = parts
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


class RemoteFetcher:
    def __init__(self, session: Optional[requests.Session] = None, config: Optional[FetcherConfig] = None) -> None:
        self._session = session or build_session()
        self._config = config or FetcherConfig.from_env()

    @property
    def _timeout(self) -> Tuple[float, float]:
        return (self._config.connect_timeout, self._config.read_timeout)

    def fetch_all(self, urls: Iterable[str]) -> List[ContentBlock]:
        """Fetch each URL in order; a failure only affects its own block."""
        blocks: List[ContentBlock] = []
        for url in urls:
            try:
                block = self.fetch(url)
            except FetchError as exc:
                logger.info("fetch failed for %s: %s", exc.origin, exc.reason)
                FETCH_TOTAL.labels(kind="url", outcome="not_found" if exc.not_found else "error").inc()
                label = "GitHub URL" if is_github_url(url) else "URL"
                block = ContentBlock(
                    origin=url,
                    label=label,
                    title=url,
                    text=f"Error fetching: {exc.reason}",
                    status="not_found" if exc.not_found else "error",
                )
            else:
                FETCH_TOTAL.labels(kind="url", outcome=block.status).inc()
            blocks.append(block)
        return blocks

    def fetch(self, url: str) -> ContentBlock:
        blob = github_blob_to_raw(url)
        if blob is not None:
            raw_url, file_path = blob
            text = self._get_text(url, raw_url)
            return ContentBlock(origin=url, label="GitHub File", title=file_path, text=text)

        repo = github_repo(url)
        if repo is not None:
            return self._fetch_readme(url, *repo)

        text = self._get_text(url, url)
        return ContentBlock(origin=url, label="URL", title=url, text=text[: self._config.max_chars])

    def _fetch_readme(self, url: str, owner: str, repo: str) -> ContentBlock:
        readme_url = f"{RAW_GITHUB_BASE}/{owner}/{repo}/{self._config.default_branch}/README.md"
        try:
            resp = self._session.get(readme_url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise FetchError(url, str(exc)) from exc
        if not resp.ok:
            logger.info("README not available for %s/%s (HTTP %s)", owner, repo, resp.status_code)
            return ContentBlock(origin=url, label="GitHub URL", title=url, text=UNABLE_TO_FETCH, status="not_found")
        return ContentBlock(origin=url, label="GitHub Repository", title=f"{owner}/{repo}", text=resp.text)

    def _get_text(self, origin: str, target: str) -> str:
        try:
            resp = self._session.get(target, timeout=self._timeout)
        except requests.RequestException as exc:
            raise FetchError(origin, str(exc)) from exc
        if not resp.ok:
            raise FetchError(origin, f"HTTP {resp.status_code}", not_found=resp.status_code in (404, 410))
        return resp.text
