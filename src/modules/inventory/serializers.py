"""Inventory DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.inventory.constants import MovementKind
from modules.inventory.models import StockMovement


class RecordMovementSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=MovementKind.choices)
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=255)
    reference = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default=""
    )


class StockMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockMovement
        fields = [
            "id",
            "variation_id",
            "product_id",
            "kind",
            "quantity",
            "delta",
            "reason",
            "reference",
            "moved_by_id",
            "current_stock",
            "created_at",
        ]
        read_only_fields = fields
