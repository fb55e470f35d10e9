"""Asynchronous tasks of the core module."""

from __future__ import annotations

from typing import Optional

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import OutboxEvent, OutboxTopic
from modules.notifications.dtos import NotificationRequest
from modules.notifications.senders import INotificationSender, get_notification_sender
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.dispatch_outbox")
def dispatch_outbox(batch_size: Optional[int] = None) -> dict:
    """Deliver pending outbox rows in creation order.

    Notification rows go to the configured sender; every other topic is
    rebuilt into its ``DomainEvent`` and published on the in-process bus.
    A failing row is marked FAILED (and retried on a later run until
    ``OUTBOX_MAX_RETRIES``); it never blocks the rest of the batch.
    """
    limit = batch_size or settings.OUTBOX_BATCH_SIZE
    sender = get_notification_sender()
    published = failed = 0

    with transaction.atomic():
        rows = list(
            OutboxEvent.objects.select_for_update(skip_locked=True)
            .dispatchable(settings.OUTBOX_MAX_RETRIES)[:limit]
        )
        for row in rows:
            log = logger.bind(
                outbox_id=str(row.id), event_type=row.event_type, topic=row.topic
            )
            try:
                with transaction.atomic():
                    _dispatch(row, sender)
            except Exception as exc:  # noqa: BLE001 - recorded on the row
                row.mark_as_failed(str(exc))
                failed += 1
                log.warning("outbox.dispatch_failed", error=str(exc), retry_count=row.retry_count)
            else:
                row.mark_as_published()
                published += 1

    logger.info("outbox.dispatch_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}


def _dispatch(row: OutboxEvent, sender: INotificationSender) -> None:
    if row.topic == OutboxTopic.NOTIFICATIONS:
        sender.send(NotificationRequest.model_validate(row.payload))
        return

    event_class = DomainEvent.lookup(row.event_type)
    if event_class is None:
        raise LookupError(f"Unknown event type {row.event_type!r}.")
    event_bus.publish(event_class.from_payload(row.payload))
