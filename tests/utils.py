from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests


class FakeResponse:
    """Stand-in for ``requests.Response`` covering what the services touch."""

    def __init__(
        self,
        status_code: int = 200,
        text: str = "",
        json_data: Any = None,
        lines: Optional[Iterable[bytes]] = None,
        fail_after: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self._json = json_data
        self._lines = list(lines or [])
        self._fail_after = fail_after
        self.closed = False

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no json body")
        return self._json

    def iter_lines(self, chunk_size=None):
        for idx, line in enumerate(self._lines):
            if self._fail_after is not None and idx == self._fail_after:
                raise requests.exceptions.ChunkedEncodingError("connection reset")
            yield line
        if self._fail_after is not None and self._fail_after >= len(self._lines):
            raise requests.exceptions.ChunkedEncodingError("connection reset")

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Routes GET/POST by exact URL; an Exception value is raised instead of returned."""

    def __init__(
        self,
        get: Optional[Dict[str, Any]] = None,
        post: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.get_routes = dict(get or {})
        self.post_routes = dict(post or {})
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def _dispatch(self, routes: Dict[str, Any], method: str, url: str, kwargs: Dict[str, Any]) -> Any:
        self.calls.append((method, url, kwargs))
        result = routes.get(url)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return FakeResponse(status_code=404, text="Not Found")
        return result

    def get(self, url: str, **kwargs: Any) -> Any:
        return self._dispatch(self.get_routes, "GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> Any:
        return self._dispatch(self.post_routes, "POST", url, kwargs)

    def urls(self, method: str = "GET") -> List[str]:
        return [url for m, url, _ in self.calls if m == method]


def sse(*deltas: str, done: bool = True) -> List[bytes]:
    """Encode deltas the way an OpenAI-compatible stream frames them."""
    import json

    lines = [
        b"data: " + json.dumps({"choices": [{"delta": {"content": d}}]}).encode("utf-8")
        for d in deltas
    ]
    if done:
        lines.append(b"data: [DONE]")
    return lines


def login(user_id: str = "42", login_name: str = "octocat", github_token: str = "gh-token") -> Dict[str, str]:
    """Create a session directly in the KV store and return auth headers."""
    from src.sheets.infrastructure.kv_store import get_kv_store
    from src.sheets.security.auth import create_session

    token = create_session(
        get_kv_store(),
        {"id": user_id, "login": login_name, "name": "The Octocat", "avatar": None, "githubToken": github_token},
    )
    return {"Authorization": f"Bearer {token}"}
