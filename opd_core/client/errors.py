# opd_core/client/errors.py
"""
Client-side error taxonomy. Each API failure surfaces as one of these with the
server's banner message, so UIs can show `str(exc)` as-is.
"""
from __future__ import annotations

from typing import Any


class ApiError(Exception):
    status_code: int | None = None

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: Any = None,
        request_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.code = code
        self.details = details
        self.request_id = request_id


class ValidationFailed(ApiError):
    status_code = 400


class AuthorizationError(ApiError):
    """401 (session gone) or 403 (wrong role)."""


class NotFound(ApiError):
    status_code = 404


class BusinessRuleConflict(ApiError):
    status_code = 409


class ServerError(ApiError):
    pass


class NetworkError(ApiError):
    """No usable response: connection refused, timeout, non-JSON gateway page."""


_BY_STATUS = {
    400: ValidationFailed,
    401: AuthorizationError,
    403: AuthorizationError,
    404: NotFound,
    409: BusinessRuleConflict,
}


def error_from_response(response) -> ApiError:
    try:
        body = response.json()
    except ValueError:
        body = None

    error = body.get("error") if isinstance(body, dict) else None
    error = error if isinstance(error, dict) else {}

    message = (
        (body.get("msg") if isinstance(body, dict) else None)
        or error.get("message")
        or (body.get("detail") if isinstance(body, dict) else None)
        or f"Request failed with status {response.status_code}."
    )

    cls = _BY_STATUS.get(response.status_code)
    if cls is None:
        cls = ServerError if response.status_code >= 500 else ApiError

    return cls(
        str(message),
        status_code=response.status_code,
        code=error.get("code"),
        details=error.get("details"),
        request_id=error.get("request_id") or response.headers.get("X-Request-ID"),
    )
