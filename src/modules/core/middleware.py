import re
import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger()

# Client-supplied ids end up in every log line; anything else is replaced.
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_correlation_id(request: HttpRequest) -> str:
    """``X-Request-ID`` (or ``X-Correlation-ID``) when well-formed, else a new UUID4."""
    candidate = request.META.get("HTTP_X_REQUEST_ID") or request.META.get(
        "HTTP_X_CORRELATION_ID", ""
    )
    if candidate and _SAFE_ID.match(candidate):
        return candidate
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Bind a correlation ID to every log line emitted while serving a request.

    The ID is echoed back in the ``X-Request-ID`` response header so clients
    can quote it when reporting a failed checkout or offer action.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = resolve_correlation_id(request)
        token = correlation_id_var.set(cid)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        logger.info("request_started", method=request.method, path=request.get_full_path())
        try:
            response = self.get_response(request)
            logger.info(
                "request_finished",
                method=request.method,
                path=request.get_full_path(),
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 2),
            )
            response["X-Request-ID"] = cid
            return response
        finally:
            correlation_id_var.reset(token)
