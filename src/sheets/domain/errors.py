from __future__ import annotations

"""Error taxonomy for the Sheets API.

Request-level errors (validation, upstream connect, not found, auth) are
rendered as ``{"error": message}`` JSON by the handlers registered in
``api.main``. ``FetchError`` and ``UpstreamStreamError`` never reach HTTP:
the former becomes inline text in the composed prompt, the latter a trailing
marker in an already-committed stream.
"""

from typing import Optional


class SheetsError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(SheetsError):
    status_code = 400


class NoUrlError(ValidationError):
    def __init__(self, message: str = "Prompt must include at least one URL") -> None:
        super().__init__(message)


class UpstreamConnectError(SheetsError):
    status_code = 502


class UpstreamStreamError(SheetsError):
    status_code = 502


class NotFoundError(SheetsError):
    status_code = 404


class AuthError(SheetsError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class StoreUnavailableError(SheetsError):
    status_code = 503


class FetchError(SheetsError):
    """A single URL or context entry could not be loaded.

    ``not_found`` separates a definitive miss (HTTP 404/410) from a
    transient failure that a caller may choose to retry.
    """

    def __init__(self, origin: str, reason: str, not_found: bool = False) -> None:
        super().__init__(reason)
        self.origin = origin
        self.reason = reason
        self.not_found = not_found
