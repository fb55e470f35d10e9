"""Order DRF serializers for API input/output.

Business logic lives in ``OrderService``, which receives the Pydantic DTOs
built from these serializers' validated data.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.currency.constants import Currency
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderTrackingEvent

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderSerializer(serializers.Serializer):
    shipping_address_id = serializers.UUIDField()
    currency = serializers.ChoiceField(choices=Currency.choices, default=Currency.FC)


class RejectOrderSerializer(serializers.Serializer):
    reason = serializers.CharField()


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    location = serializers.CharField(required=False, allow_blank=True, default="")


class MarkPaidSerializer(serializers.Serializer):
    is_paid = serializers.BooleanField()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source="variation.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "variation_id",
            "sku",
            "product_name",
            "quantity",
            "price_paid",
            "subtotal",
        ]
        read_only_fields = fields


class TrackingEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderTrackingEvent
        fields = [
            "id",
            "status",
            "previous_status",
            "actor_id",
            "notes",
            "location",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer with nested items and tracking events."""

    items = OrderItemSerializer(many=True, read_only=True)
    tracking_events = TrackingEventSerializer(many=True, read_only=True)
    shipping_address = serializers.DictField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "status",
            "total_amount",
            "currency",
            "exchange_rate_used",
            "shipping_address",
            "payment_method",
            "is_paid",
            "admin_notes",
            "restocked_at",
            "created_at",
            "updated_at",
            "items",
            "tracking_events",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "buyer_id",
            "status",
            "total_amount",
            "currency",
            "is_paid",
            "created_at",
        ]
        read_only_fields = fields
