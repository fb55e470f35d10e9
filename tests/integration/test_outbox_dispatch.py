"""Outbox dispatcher: event bus delivery, sender failures and retries."""

from __future__ import annotations

import pytest

from modules.carts.dtos import AddCartItemDTO
from modules.core.models import EventStatus, OutboxEvent, OutboxTopic
from modules.core.tasks import dispatch_outbox
from modules.orders.dtos import CreateOrderDTO
from modules.orders.events import OrderCreated
from modules.orders.handlers import order_created_handler

pytestmark = pytest.mark.integration


class _RecordingSender:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, request):
        if self.fail:
            raise ConnectionError("SMS gateway unreachable")
        self.sent.append(request)


@pytest.fixture()
def sender(monkeypatch):
    sender = _RecordingSender()
    monkeypatch.setattr("modules.core.tasks.get_notification_sender", lambda: sender)
    return sender


@pytest.fixture()
def placed_order(cart_service, order_service, buyer, address, make_variation):
    variation = make_variation(price="40.00", stock=5)
    cart_service.add_item(buyer, AddCartItemDTO(variation_id=variation.id, quantity=1))
    return order_service.create(buyer, CreateOrderDTO(shipping_address_id=address.id))


def _notification_row():
    return OutboxEvent.objects.create(
        event_type="notification.system",
        aggregate_id="",
        topic=OutboxTopic.NOTIFICATIONS,
        payload={
            "recipients": ["1"],
            "notification_type": "system",
            "template_key": "notifications.system.ping",
        },
    )


class TestDelivery:
    def test_rebuilds_domain_events_for_handlers(self, sender, placed_order, monkeypatch):
        received = []
        monkeypatch.setattr(order_created_handler, "handle", received.append)

        result = dispatch_outbox()

        assert result["failed"] == 0
        assert result["published"] == OutboxEvent.objects.count()
        assert not OutboxEvent.objects.exclude(status=EventStatus.PUBLISHED).exists()
        (event,) = received
        assert isinstance(event, OrderCreated)
        assert event.aggregate_id == placed_order.id
        assert event.total_amount == "40.00"

    def test_notifications_reach_the_sender(self, sender, placed_order):
        dispatch_outbox()

        templates = {request.template_key for request in sender.sent}
        assert "notifications.order.placed" in templates
        assert "notifications.low_stock" not in templates

    def test_batch_size_limits_one_run(self, sender):
        for _ in range(3):
            _notification_row()

        assert dispatch_outbox(batch_size=2) == {"published": 2, "failed": 0}
        assert OutboxEvent.objects.filter(status=EventStatus.PENDING).count() == 1


class TestFailures:
    def test_failed_row_does_not_block_the_batch(self, sender, placed_order, monkeypatch):
        def explode(event):
            raise RuntimeError("projection store down")

        monkeypatch.setattr(order_created_handler, "handle", explode)

        result = dispatch_outbox()

        failed = OutboxEvent.objects.get(status=EventStatus.FAILED)
        assert failed.event_type == "OrderCreated"
        assert failed.retry_count == 1
        assert failed.error_message == "projection store down"
        assert result["failed"] == 1
        assert result["published"] == OutboxEvent.objects.filter(status=EventStatus.PUBLISHED).count()

    def test_failed_row_is_retried_later(self, sender):
        row = _notification_row()
        sender.fail = True
        dispatch_outbox()
        sender.fail = False

        assert dispatch_outbox() == {"published": 1, "failed": 0}
        row.refresh_from_db()
        assert row.status == EventStatus.PUBLISHED
        assert row.retry_count == 1
        assert row.error_message is None

    def test_exhausted_rows_are_left_alone(self, sender, settings):
        row = _notification_row()
        row.status = EventStatus.FAILED
        row.retry_count = settings.OUTBOX_MAX_RETRIES
        row.save()

        assert dispatch_outbox() == {"published": 0, "failed": 0}
        assert sender.sent == []

    def test_unknown_event_type_fails(self, sender):
        OutboxEvent.objects.create(
            event_type="InvoiceIssued",
            aggregate_id="x",
            topic=OutboxTopic.ORDERS,
            payload={},
        )

        assert dispatch_outbox() == {"published": 0, "failed": 1}
        assert "InvoiceIssued" in OutboxEvent.objects.get().error_message

    def test_malformed_notification_fails(self, sender):
        OutboxEvent.objects.create(
            event_type="notification.system",
            aggregate_id="",
            topic=OutboxTopic.NOTIFICATIONS,
            payload={"recipients": [], "notification_type": "system", "template_key": "x"},
        )

        assert dispatch_outbox() == {"published": 0, "failed": 1}
        assert OutboxEvent.objects.get().retry_count == 1

