"""Django ORM implementation of the Order repository.

Concurrency control on status changes uses ``select_for_update()``; the
service locks the order row before validating any transition.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.models import OutboxTopic
from modules.core.outbox import record_domain_events
from modules.orders.models import Order, OrderItem, OrderTrackingEvent
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_RELATIONS = ("items__variation", "items__product", "tracking_events")


class OrderDjangoRepository(IOrderRepository):
    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            buyer_id=data["buyer_id"],
            currency=data["currency"],
            exchange_rate_used=data["exchange_rate_used"],
            idempotency_key=data.get("idempotency_key"),
        )
        order.copy_shipping_address(data["shipping_address"])
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                variation_id=item_data["variation_id"],
                quantity=item_data["quantity"],
                price_paid=item_data["price_paid"],
            )
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Order with items and tracking prefetched; ``None`` for bad ids."""
        try:
            return Order.objects.prefetch_related(*_RELATIONS).filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related(*_RELATIONS)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return Order.objects.prefetch_related(*_RELATIONS).filter(idempotency_key=key).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = Order.objects.prefetch_related(*_RELATIONS)
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def queryset(self):
        """Unevaluated queryset for the API's filter backends."""
        return Order.objects.prefetch_related(*_RELATIONS)

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist the order and move its domain events to the outbox."""
        entity.save()
        events = record_domain_events(entity, OutboxTopic.ORDERS)
        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def add_tracking_event(
        self,
        order: Order,
        status: str,
        previous_status: Optional[str] = None,
        actor_id: Any = None,
        notes: str = "",
        location: str = "",
    ) -> OrderTrackingEvent:
        event = OrderTrackingEvent(
            order=order,
            status=status,
            previous_status=previous_status,
            actor_id=actor_id,
            notes=notes,
            location=location,
        )
        event.save()
        logger.info(
            "order.tracking_added",
            order_id=str(order.id),
            previous_status=previous_status,
            status=status,
        )
        return event
