from __future__ import annotations

"""Streaming relay between the browser and an OpenAI-compatible completion API.

Lifecycle::

    IDLE -> REQUESTING -> STREAMING -> COMPLETED
                 |             |
                 +--> FAILED <-+

``open()`` covers the first two transitions and raises
``UpstreamConnectError`` before any byte is sent downstream, so callers can
still answer with a JSON error. ``iter_bytes()`` then forwards each text delta
as soon as its ``data:`` line arrives. A mid-stream failure appends a visible
``Error:`` marker instead of truncating silently. Closing the generator (the
client went away) closes the upstream response.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union
import json
import logging
import time

import requests

from ..config import env_float, env_int, env_str
from ..domain.errors import UpstreamConnectError, UpstreamStreamError
from ..observability.metrics import RELAY_DURATION, RELAY_STREAMS
from .http import build_session


LOG = logging.getLogger("sheets.llm")

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class RelayState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RelayConfig:
    api_key: Optional[str]
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "moonshotai/kimi-k2"
    temperature: float = 0.7
    max_tokens: int = 8000
    connect_timeout: float = 5.0
    read_timeout: float = 60.0
    referer: str = "https://sheets.dev"
    title: str = "Sheets Developer Tool"

    @staticmethod
    def from_env() -> "RelayConfig":
        return RelayConfig(
            api_key=env_str("OPENROUTER_API_KEY"),
            base_url=(env_str("SHEETS_LLM_BASE_URL", "https://openrouter.ai/api/v1") or "").rstrip("/"),
            model=env_str("SHEETS_LLM_MODEL", "moonshotai/kimi-k2") or "moonshotai/kimi-k2",
            temperature=env_float("SHEETS_LLM_TEMPERATURE", 0.7),
            max_tokens=env_int("SHEETS_LLM_MAX_TOKENS", 8000),
            connect_timeout=env_float("SHEETS_LLM_CONNECT_TIMEOUT", 5.0),
            read_timeout=env_float("SHEETS_LLM_READ_TIMEOUT", 60.0),
            referer=env_str("SHEETS_APP_REFERER", "https://sheets.dev") or "https://sheets.dev",
            title=env_str("SHEETS_APP_TITLE", "Sheets Developer Tool") or "Sheets Developer Tool",
        )


def parse_event_line(line: Union[bytes, str]) -> Optional[str]:
    """Extract the text delta carried by one event-stream line.

    Returns None for non-data lines, the ``[DONE]`` sentinel, malformed JSON
    and payloads without content. An upstream ``error`` payload raises
    ``UpstreamStreamError``.
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        return None
    data = line[len(DATA_PREFIX):].strip()
    if not data or data == DONE_SENTINEL:
        return None
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    if parsed.get("error"):
        err = parsed["error"]
        message = err.get("message") if isinstance(err, dict) else str(err)
        raise UpstreamStreamError(str(message or "Upstream error"))
    choices = parsed.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    if isinstance(content, str) and content:
        return content
    return None


class CompletionRelay:
    def __init__(
        self,
        messages: List[Dict[str, str]],
        config: Optional[RelayConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.messages = messages
        self.config = config or RelayConfig.from_env()
        self._session = session or build_session(pool_size=4)
        self._response: Optional[requests.Response] = None
        self.state = RelayState.IDLE

    def _payload(self) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": self.messages,
            "stream": True,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "HTTP-Referer": self.config.referer,
            "X-Title": self.config.title,
        }

    def _fail_connect(self, message: str) -> UpstreamConnectError:
        self.state = RelayState.FAILED
        RELAY_STREAMS.labels(outcome="connect_failed").inc()
        LOG.warning("relay_upstream_connect_failed", extra={"model": self.config.model, "err": message})
        return UpstreamConnectError(message)

    def open(self) -> None:
        if self.state is not RelayState.IDLE:
            raise RuntimeError(f"Relay already used (state={self.state.value})")
        if not self.config.api_key:
            raise self._fail_connect("Completion API key is not configured")
        self.state = RelayState.REQUESTING
        LOG.debug("relay_request", extra={"model": self.config.model, "base_url": self.config.base_url})
        try:
            resp = self._session.post(
                f"{self.config.base_url}/chat/completions",
                json=self._payload(),
                headers=self._headers(),
                timeout=(self.config.connect_timeout, self.config.read_timeout),
                stream=True,
            )
        except requests.RequestException as exc:
            raise self._fail_connect(f"Completion API unreachable: {exc}") from exc
        if not resp.ok:
            detail = ""
            try:
                detail = resp.text[:200]
            except requests.RequestException:
                detail = ""
            finally:
                resp.close()
            raise self._fail_connect(f"Completion API returned HTTP {resp.status_code}: {detail}".rstrip(": "))
        self._response = resp
        self.state = RelayState.STREAMING

    def iter_bytes(self) -> Iterator[bytes]:
        if self.state is not RelayState.STREAMING or self._response is None:
            raise RuntimeError("Relay is not streaming; call open() first")
        resp = self._response
        outcome = "cancelled"
        started = time.perf_counter()
        try:
            try:
                # chunk_size=None hands lines over as soon as the socket delivers them
                for raw_line in resp.iter_lines(chunk_size=None):
                    if not raw_line:
                        continue
                    delta = parse_event_line(raw_line)
                    if delta:
                        yield delta.encode("utf-8")
            except (requests.RequestException, UpstreamStreamError) as exc:
                self.state = RelayState.FAILED
                outcome = "failed"
                LOG.warning("relay_stream_failed", extra={"model": self.config.model, "err": str(exc)})
                yield f"\n\nError: {exc}".encode("utf-8")
                return
            self.state = RelayState.COMPLETED
            outcome = "completed"
        finally:
            if outcome == "cancelled":
                self.state = RelayState.FAILED
                LOG.info("relay_stream_cancelled", extra={"model": self.config.model})
            resp.close()
            RELAY_STREAMS.labels(outcome=outcome).inc()
            RELAY_DURATION.labels(outcome=outcome).observe(time.perf_counter() - started)
