"""Notification emission service.

``notify`` never delivers anything itself: it validates a
``NotificationRequest`` and writes it to the outbox in the caller's
transaction.  A rolled-back order or offer therefore never notifies anyone,
and a delivery failure can never undo a committed business change.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.contrib.auth import get_user_model
from django.db.models import Q

from modules.core.models import OutboxTopic
from modules.core.outbox import enqueue
from modules.notifications.dtos import NotificationRequest

logger = structlog.get_logger(__name__)


class NotificationService:
    def notify(
        self,
        recipients: Iterable[Any],
        notification_type: str,
        template_key: str,
        template_args: Optional[Dict[str, Any]] = None,
        related_entity: Optional[Dict[str, Any]] = None,
        out_of_band: bool = False,
    ) -> Optional[NotificationRequest]:
        """Enqueue a notification for ``recipients`` (user ids).

        Returns ``None`` (and enqueues nothing) when there is nobody to notify.
        """
        ids = _unique_ids(recipients)
        if not ids:
            logger.debug("notification.skipped_no_recipients", template_key=template_key)
            return None

        related_entity = related_entity or {}
        request = NotificationRequest(
            recipients=ids,
            notification_type=notification_type,
            template_key=template_key,
            template_args=template_args or {},
            related_entity_id=_str_or_none(related_entity.get("id")),
            related_entity_type=related_entity.get("type"),
            out_of_band=out_of_band,
        )
        enqueue(
            event_type=f"notification.{request.notification_type.value}",
            aggregate_id=request.related_entity_id or "",
            payload=request.model_dump(mode="json"),
            topic=OutboxTopic.NOTIFICATIONS,
        )
        logger.info(
            "notification.enqueued",
            template_key=template_key,
            recipient_count=len(ids),
            related_entity_id=request.related_entity_id,
        )
        return request

    def notify_admins(
        self,
        notification_type: str,
        template_key: str,
        template_args: Optional[Dict[str, Any]] = None,
        related_entity: Optional[Dict[str, Any]] = None,
        out_of_band: bool = False,
    ) -> Optional[NotificationRequest]:
        return self.notify(
            self.admin_ids(),
            notification_type,
            template_key,
            template_args,
            related_entity,
            out_of_band,
        )

    @staticmethod
    def admin_ids() -> List[Any]:
        User = get_user_model()
        return list(
            User.objects.filter(
                Q(is_staff=True) | Q(is_superuser=True) | Q(groups__name="admin"),
                is_active=True,
            )
            .distinct()
            .values_list("pk", flat=True)
        )


def _unique_ids(recipients: Iterable[Any]) -> List[str]:
    seen: List[str] = []
    for recipient in recipients:
        if recipient is None:
            continue
        value = str(recipient)
        if value not in seen:
            seen.append(value)
    return seen


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)
