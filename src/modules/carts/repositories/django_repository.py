"""Django ORM implementation of the cart repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db.models import DecimalField, ExpressionWrapper, F, Sum, Value
from django.db.models.functions import Coalesce

from modules.carts.models import Cart, CartItem
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)

# The negotiated unit replaces one unit at price_at_add.
LINE_TOTAL = ExpressionWrapper(
    F("quantity") * F("price_at_add")
    + Coalesce(
        F("negotiated_price") - F("price_at_add"),
        Value(Decimal("0.00")),
        output_field=DecimalField(max_digits=12, decimal_places=2),
    ),
    output_field=DecimalField(max_digits=14, decimal_places=2),
)


class CartDjangoRepository(ICartRepository):
    def get_for_buyer(self, buyer_id: Any) -> Optional[Cart]:
        return (
            Cart.objects.prefetch_related("items__variation__product")
            .filter(buyer_id=buyer_id)
            .first()
        )

    def get_for_buyer_for_update(self, buyer_id: Any) -> Optional[Cart]:
        return Cart.objects.select_for_update().filter(buyer_id=buyer_id).first()

    def get_or_create_for_buyer(self, buyer_id: Any) -> Cart:
        cart, created = Cart.objects.select_for_update().get_or_create(buyer_id=buyer_id)
        if created:
            logger.info("cart.created", cart_id=str(cart.id), buyer_id=str(buyer_id))
        return cart

    def get_item(self, cart: Cart, variation_id: Any) -> Optional[CartItem]:
        try:
            return (
                CartItem.objects.select_related("variation__product")
                .filter(cart=cart, variation_id=variation_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list_items(self, cart: Cart) -> List[CartItem]:
        return list(
            CartItem.objects.select_related("variation__product")
            .filter(cart=cart)
            .order_by("variation_id")
        )

    def save_item(self, item: CartItem) -> CartItem:
        item.save()
        return item

    def delete_item(self, item: CartItem) -> None:
        item.delete()

    def refresh_total(self, cart: Cart) -> Cart:
        total = CartItem.objects.filter(cart=cart).aggregate(total=Sum(LINE_TOTAL))["total"]
        cart.total_price = (total or Decimal("0")).quantize(Decimal("0.01"))
        cart.save(update_fields=["total_price"])
        return cart

    def delete(self, cart: Cart) -> None:
        cart.delete()
