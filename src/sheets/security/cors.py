from __future__ import annotations

"""Permissive CORS applied to every response.

Preflight (and any other ``OPTIONS``) requests are answered here with an empty
200 and never reach a router.
"""

from typing import Awaitable, Callable, Dict, Optional

from starlette.requests import Request
from starlette.responses import Response


ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"


def cors_headers(origin: Optional[str]) -> Dict[str, str]:
    headers = {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
    }
    if origin:
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"
    return headers


def cors_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.method == "OPTIONS":
            response: Response = Response(status_code=200)
        else:
            response = await call_next(request)
        for name, value in cors_headers(request.headers.get("origin")).items():
            response.headers.setdefault(name, value)
        return response

    return middleware
