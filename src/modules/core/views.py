import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.actor import Actor

logger = structlog.get_logger()


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


def _service_status(name: str, check: Callable[[], None]) -> Dict[str, Any]:
    started = time.monotonic()
    try:
        check()
    except Exception as exc:  # noqa: BLE001 - reported as "down"
        logger.error("health_check.service_down", service=name, error=str(exc))
        return {"status": "down"}
    return {
        "status": "up",
        "response_time_ms": round((time.monotonic() - started) * 1000, 2),
    }


def _outbox_backlog() -> Dict[str, int]:
    return {
        "pending": OutboxEvent.objects.filter(status=EventStatus.PENDING).count(),
        "failed": OutboxEvent.objects.filter(
            status=EventStatus.FAILED,
            retry_count__gte=settings.OUTBOX_MAX_RETRIES,
        ).count(),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    """Public liveness check.

    Database and cache decide the status code; the outbox backlog is
    informational only and never fails the check.
    """
    services = {
        "database": _service_status("database", _check_database),
        "cache": _service_status("cache", _check_cache),
    }
    healthy = all(service["status"] == "up" for service in services.values())
    if services["database"]["status"] == "up":
        services["outbox"] = _outbox_backlog()

    status = "healthy" if healthy else "unhealthy"
    logger.info("health_check.completed", status=status)
    return JsonResponse(
        {"status": status, "timestamp": timezone.now().isoformat(), "services": services},
        status=200 if healthy else 503,
    )


class MeView(APIView):
    """Identity and marketplace roles of the authenticated user."""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        actor = Actor.from_user(request.user)
        return Response(
            {
                "id": str(actor.id),
                "username": request.user.get_username(),
                "roles": sorted(actor.roles),
            }
        )
