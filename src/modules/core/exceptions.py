"""DRF exception handler producing the standardized error envelope.

Every error response has the shape::

    {
        "type": "validation_error" | "client_error" | "server_error",
        "errors": [{"code": ..., "detail": ..., "attr": ...}],
        "context": {...}          # domain errors only
    }

Domain errors raised by services propagate out of the views untouched and
are rendered here from their ``code`` / ``status_code`` / ``context``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import PermissionDenied
from django.http import Http404
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from shared.domain.exceptions import DomainError, ValidationFailed

logger = structlog.get_logger(__name__)


def api_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    if isinstance(exc, PydanticValidationError):
        return _render_pydantic(exc)

    if isinstance(exc, DomainError):
        return _render_domain(exc, context)

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)
    if response is None:
        # Unhandled: let Django turn it into a 500.
        return None

    error_type = (
        "validation_error"
        if isinstance(exc, exceptions.ValidationError)
        else "client_error"
        if response.status_code < 500
        else "server_error"
    )
    response.data = {
        "type": error_type,
        "errors": _flatten(exc),
    }
    return response


def _render_domain(exc: DomainError, context: Dict[str, Any]) -> Response:
    view = context.get("view")
    logger.warning(
        "api.domain_error",
        code=exc.code,
        status_code=exc.status_code,
        view=view.__class__.__name__ if view is not None else None,
        **{key: str(val) for key, val in exc.context.items()},
    )
    body = exc.as_dict()
    return Response(
        {
            "type": "validation_error" if isinstance(exc, ValidationFailed) else "client_error",
            "errors": [
                {
                    "code": body["code"],
                    "detail": body["detail"],
                    "attr": body["context"].get("field"),
                }
            ],
            "context": body["context"],
        },
        status=exc.status_code,
    )


def _render_pydantic(exc: PydanticValidationError) -> Response:
    errors = [
        {
            "code": ValidationFailed.code,
            "detail": error["msg"],
            "attr": ".".join(str(part) for part in error["loc"]) or None,
        }
        for error in exc.errors()
    ]
    return Response(
        {"type": "validation_error", "errors": errors, "context": {}},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _flatten(exc: exceptions.APIException) -> List[Dict[str, Any]]:
    detail = exc.detail
    if isinstance(detail, (dict, list)):
        return list(_walk(detail, attr=None))
    return [{"code": getattr(detail, "code", exc.default_code), "detail": str(detail), "attr": None}]


def _walk(detail: Any, attr: Optional[str]):
    if isinstance(detail, dict):
        for key, value in detail.items():
            child = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                child = attr
            yield from _walk(value, child)
    elif isinstance(detail, list):
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                yield from _walk(value, f"{attr}.{index}" if attr else str(index))
            else:
                yield from _walk(value, attr)
    else:
        yield {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": attr,
        }
