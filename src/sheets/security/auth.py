from __future__ import annotations

"""Opaque bearer-token sessions.

A session is a JSON document stored in the key-value store under
``auth:{token}`` with a 30-day TTL; OAuth ``state`` values live under
``oauth:{state}`` for 10 minutes. Tokens are random and carry no claims, so
revoking one is a single delete.
"""

from typing import Any, Dict, Optional
import json
import logging
import secrets

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import AuthError
from ..domain.models import SessionUser
from ..infrastructure.kv_store import KVStore, get_kv_store


logger = logging.getLogger("sheets.auth")
bearer_scheme = HTTPBearer(auto_error=False)

SESSION_PREFIX = "auth:"
OAUTH_STATE_PREFIX = "oauth:"
SESSION_TTL_SECONDS = 86400 * 30
OAUTH_STATE_TTL_SECONDS = 600


def new_token() -> str:
    return secrets.token_urlsafe(32)


def create_session(store: KVStore, user: Dict[str, Any]) -> str:
    token = new_token()
    store.put(f"{SESSION_PREFIX}{token}", json.dumps(user), ttl_seconds=SESSION_TTL_SECONDS)
    return token


def lookup_session(store: KVStore, token: str) -> Optional[SessionUser]:
    if not token:
        return None
    data = store.get_json(f"{SESSION_PREFIX}{token}")
    if not isinstance(data, dict):
        return None
    try:
        return SessionUser.model_validate(data)
    except PydanticValidationError:
        logger.warning("Discarding malformed session record")
        return None


def revoke_session(store: KVStore, token: str) -> bool:
    return store.delete(f"{SESSION_PREFIX}{token}")


def issue_oauth_state(store: KVStore) -> str:
    state = new_token()
    store.put(f"{OAUTH_STATE_PREFIX}{state}", "pending", ttl_seconds=OAUTH_STATE_TTL_SECONDS)
    return state


def consume_oauth_state(store: KVStore, state: Optional[str]) -> bool:
    """Validate and delete a pending OAuth state; each state works once."""
    if not state:
        return False
    key = f"{OAUTH_STATE_PREFIX}{state}"
    if store.get(key) is None:
        return False
    store.delete(key)
    return True


def bearer_token(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    if creds is None or not creds.credentials:
        raise AuthError()
    return creds.credentials


def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[SessionUser]:
    if creds is None or not creds.credentials:
        return None
    return lookup_session(get_kv_store(), creds.credentials)


def get_current_user(user: Optional[SessionUser] = Depends(get_optional_user)) -> SessionUser:
    """Resolve the session behind the bearer token or fail with 401."""
    if user is None:
        raise AuthError()
    return user
