from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter


USER_AGENT = "sheets/0.1"


def build_session(pool_size: int = 10) -> requests.Session:
    """Pooled session for outbound calls.

    Retries are disabled: a failed fetch or upstream call is reported once,
    never replayed.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0, pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": USER_AGENT})
    return session
