"""Unit tests for domain event collection, registry and outbox round trip."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.outbox import serialize_event
from modules.offers.events import OfferStatusChanged
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCreated
from modules.orders.models import Order
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


def test_order_registers_and_clears_domain_events():
    order = Order(
        buyer_id=1,
        status=OrderStatus.PENDING_ADMIN_APPROVAL,
        total_amount=Decimal("0.00"),
    )
    assert order.domain_events == []

    event = OrderCreated(
        aggregate_id=order.id, order_number="ORD-1", total_amount="10.00", currency="FC"
    )
    order.add_domain_event(event)

    assert order.domain_events == [event]
    assert event.event_name == "OrderCreated"

    order.clear_domain_events()
    assert order.domain_events == []


def test_subclasses_are_registered_by_name():
    assert DomainEvent.lookup("OrderCreated") is OrderCreated
    assert DomainEvent.lookup("OfferStatusChanged") is OfferStatusChanged
    assert DomainEvent.lookup("NoSuchEvent") is None


def test_event_survives_outbox_serialization():
    original = OfferStatusChanged(
        aggregate_id=uuid4(), old_status="pending", new_status="accepted", accepted_price="90.00"
    )
    rebuilt = OfferStatusChanged.from_payload(serialize_event(original))

    assert rebuilt == original


class _Recorder:
    def __init__(self):
        self.seen = []

    def handle(self, event):
        self.seen.append(event)


def test_bus_delivers_to_exact_type_once():
    bus = InMemoryEventBus()
    recorder = _Recorder()
    bus.subscribe(OrderCreated, recorder)
    bus.subscribe(OrderCreated, recorder)

    event = OrderCreated(aggregate_id=uuid4(), order_number="ORD-2", total_amount="1.00", currency="USD")
    assert bus.publish(event) == 1
    assert recorder.seen == [event]
    assert bus.publish(OfferStatusChanged(aggregate_id=uuid4(), old_status="a", new_status="b")) == 0
