from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..domain.errors import StoreUnavailableError
from ..domain.models import ContentBlock
from ..infrastructure.kv_store import KVStore
from ..observability.metrics import FETCH_TOTAL


logger = logging.getLogger("sheets.fetch")

RULES_NAMESPACE = "file:"


def user_namespace(user_id: str) -> str:
    return f"context:{user_id}:"


def context_namespaces(user_id: Optional[str] = None) -> List[str]:
    namespaces = [RULES_NAMESPACE]
    if user_id:
        namespaces.append(user_namespace(user_id))
    return namespaces


def load_context(
    paths: Iterable[str],
    store: KVStore,
    namespaces: Sequence[str] = (RULES_NAMESPACE,),
) -> List[ContentBlock]:
    """Resolve each path to a ``File:`` block, in input order.

    The first namespace holding the path wins. Misses are skipped silently;
    a storage outage for one path becomes an inline error block instead of
    failing the request.
    """
    blocks: List[ContentBlock] = []
    for path in paths:
        content: Optional[str] = None
        try:
            for ns in namespaces:
                content = store.get(f"{ns}{path}")
                if content is not None:
                    break
        except StoreUnavailableError as exc:
            logger.warning("context lookup failed for %s: %s", path, exc)
            FETCH_TOTAL.labels(kind="context", outcome="error").inc()
            blocks.append(
                ContentBlock(origin=path, label="File", title=path, text=f"Error loading: {exc}", status="error")
            )
            continue
        if content is None:
            FETCH_TOTAL.labels(kind="context", outcome="miss").inc()
            continue
        FETCH_TOTAL.labels(kind="context", outcome="ok").inc()
        blocks.append(ContentBlock(origin=path, label="File", title=path, text=content))
    return blocks
