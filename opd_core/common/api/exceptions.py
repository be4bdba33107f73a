# opd_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    NotAuthenticated,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from opd_core.common.errors import BusinessRuleViolation, DomainError, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope.

    "msg" duplicates error.message for dashboards that only display a banner.
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        },
        "msg": message,
    }


class ResourceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


def _domain_status(exc: DomainError) -> int:
    if isinstance(exc, ValidationFailed):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_409_CONFLICT


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def _unwrap_detail(data: Any) -> tuple[str, Any]:
    """
    Message + details rules:
    1) {"detail": "..."} -> message=detail, details=None
    2) {"detail": "...", ...} -> message=detail, details={...without detail}
       (a nested "details" key is lifted as-is)
    3) otherwise -> message="Request failed.", details=data
    """
    if isinstance(data, dict) and "detail" in data:
        message = data.get("detail")
        if isinstance(message, list) and len(message) == 1:
            message = message[0]
        rest = {k: v for k, v in data.items() if k != "detail"}
        if set(rest) == {"details"}:
            return str(message), rest["details"]
        return str(message), rest or None

    if isinstance(data, dict) and len(data) == 1:
        # Single-field validation error: surface the first message as the banner text.
        field, errors = next(iter(data.items()))
        if isinstance(errors, list) and errors and not isinstance(errors[0], (dict, list)):
            if field == "non_field_errors":
                return str(errors[0]), data
            return f"{field}: {errors[0]}", data

    return "Request failed.", data


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    # Service-layer errors keep their own code and raw details.
    if isinstance(exc, DomainError):
        if isinstance(exc, BusinessRuleViolation):
            logger.warning("Business rule blocked request: %s (%s)", exc.message, exc.code)
        return Response(
            build_error_envelope(request=request, code=exc.code, message=exc.message, details=exc.details),
            status=_domain_status(exc),
        )

    if isinstance(exc, ObjectDoesNotExist):
        exc = ResourceNotFound()
    elif isinstance(exc, DjangoValidationError):
        exc = ValidationError(getattr(exc, "message_dict", None) or {"detail": exc.messages})

    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.error("Unhandled API error", exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)
    message, details = _unwrap_detail(response.data)

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
