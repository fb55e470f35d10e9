"""Offer DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.offers.constants import OfferStatus
from modules.offers.models import Offer, OfferMessage

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOfferSerializer(serializers.Serializer):
    variation_id = serializers.UUIDField()
    proposed_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    message = serializers.CharField(required=False, allow_blank=True, default="")


class OfferMessageInputSerializer(serializers.Serializer):
    text = serializers.CharField()
    price = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )


class AcceptOfferSerializer(serializers.Serializer):
    accepted_price = serializers.DecimalField(max_digits=12, decimal_places=2)


class RejectOfferSerializer(serializers.Serializer):
    reason = serializers.CharField()


class OfferStatusQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OfferStatus.choices, required=False)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OfferMessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = OfferMessage
        fields = ["id", "sender_id", "text", "price", "is_proposal", "created_at"]
        read_only_fields = fields


class OfferSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source="variation.sku", read_only=True)
    listed_price = serializers.DecimalField(
        source="variation.price", max_digits=12, decimal_places=2, read_only=True
    )
    messages = OfferMessageSerializer(many=True, read_only=True)

    class Meta:
        model = Offer
        fields = [
            "id",
            "buyer_id",
            "product_id",
            "variation_id",
            "sku",
            "listed_price",
            "proposed_price",
            "status",
            "accepted_price",
            "admin_notes",
            "last_activity",
            "consumed_at",
            "redeemed_cart_item_id",
            "created_at",
            "messages",
        ]
        read_only_fields = fields


class OfferListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for offer lists (no thread)."""

    class Meta:
        model = Offer
        fields = [
            "id",
            "buyer_id",
            "variation_id",
            "proposed_price",
            "status",
            "accepted_price",
            "last_activity",
            "consumed_at",
        ]
        read_only_fields = fields
