"""Cart DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.carts.models import Cart, CartItem


class AddCartItemSerializer(serializers.Serializer):
    variation_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0)


class CartItemSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(source="variation.sku", read_only=True)
    product_name = serializers.CharField(source="variation.product.name", read_only=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "variation_id",
            "sku",
            "product_name",
            "quantity",
            "price_at_add",
            "negotiated_price",
            "line_total",
            "offer_id",
        ]
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    items = CartItemSerializer(many=True, read_only=True)

    class Meta:
        model = Cart
        fields = ["id", "buyer_id", "total_price", "items", "updated_at"]
        read_only_fields = fields
