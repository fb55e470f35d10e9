"""Notification delivery backends.

``NOTIFICATION_SENDER`` holds the dotted path of the class used by the
outbox dispatcher.  Delivery errors propagate to the dispatcher, which marks
the outbox row as failed.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

from modules.notifications.dtos import NotificationRequest

logger = structlog.get_logger(__name__)


class INotificationSender(Protocol):
    def send(self, request: NotificationRequest) -> None: ...


class LoggingNotificationSender:
    """Default sender: writes each request to the structured log."""

    def send(self, request: NotificationRequest) -> None:
        logger.info(
            "notification.sent",
            notification_type=request.notification_type,
            template_key=request.template_key,
            recipient_count=len(request.recipients),
            related_entity_type=request.related_entity_type,
            related_entity_id=request.related_entity_id,
            out_of_band=request.out_of_band,
        )


def get_notification_sender() -> INotificationSender:
    return import_string(settings.NOTIFICATION_SENDER)()
