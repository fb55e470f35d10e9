"""Helpers that write rows to the transactional outbox.

Callers must already be inside ``transaction.atomic()``: the outbox row
commits or rolls back together with the business change that produced it.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

import structlog

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent, DomainEventMixin

logger = structlog.get_logger(__name__)


def enqueue(event_type: str, aggregate_id: Any, payload: Dict[str, Any], topic: str) -> OutboxEvent:
    return OutboxEvent.objects.create(
        event_type=event_type,
        aggregate_id=str(aggregate_id),
        payload=json.loads(json.dumps(_normalize_for_json(payload))),
        topic=topic,
    )


def record_event(event: DomainEvent, topic: str) -> OutboxEvent:
    return enqueue(event.event_name, event.aggregate_id, serialize_event(event), topic)


def record_domain_events(entity: DomainEventMixin, topic: str) -> List[OutboxEvent]:
    """Move the entity's pending domain events onto the outbox."""
    rows = [record_event(event, topic) for event in entity.domain_events]
    entity.clear_domain_events()
    if rows:
        logger.debug("outbox.events_recorded", topic=topic, count=len(rows))
    return rows


def serialize_event(event: DomainEvent) -> Dict[str, Any]:
    return _normalize_for_json(asdict(event))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
