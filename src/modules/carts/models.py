"""Cart and CartItem models.

The cart is a draft: it never reserves stock and its ``total_price`` is a
projection refreshed after every mutation.  Order creation reads the lines
(``priced_units``), never the total.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

NEGOTIATED_UNITS = 1


class Cart(BaseModel):
    buyer: models.OneToOneField = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cart",
    )
    total_price: models.DecimalField = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        db_table = "carts"

    @property
    def is_empty(self) -> bool:
        return not self.items.exists()

    def __str__(self) -> str:
        return f"Cart of {self.buyer_id} ({self.total_price})"


class CartItem(BaseModel):
    cart: models.ForeignKey = models.ForeignKey(
        "carts.Cart",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="+",
    )
    variation: models.ForeignKey = models.ForeignKey(
        "catalog.ProductVariation",
        on_delete=models.PROTECT,
        related_name="cart_items",
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)]
    )
    price_at_add: models.DecimalField = models.DecimalField(max_digits=12, decimal_places=2)
    negotiated_price: models.DecimalField = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    offer: models.ForeignKey = models.ForeignKey(
        "offers.Offer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "variation"],
                name="cart_items_one_line_per_variation",
            ),
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="cart_items_quantity_positive",
            ),
        ]

    @property
    def is_negotiated(self) -> bool:
        return self.negotiated_price is not None

    def priced_units(self) -> list[tuple[int, Decimal]]:
        """``(quantity, unit_price)`` groups billed for this line.

        A redeemed offer covers exactly ``NEGOTIATED_UNITS``; any other unit
        on the line is billed at ``price_at_add``.
        """
        if not self.is_negotiated:
            return [(self.quantity, self.price_at_add)]
        groups = [(NEGOTIATED_UNITS, self.negotiated_price)]
        if self.quantity > NEGOTIATED_UNITS:
            groups.append((self.quantity - NEGOTIATED_UNITS, self.price_at_add))
        return groups

    @property
    def line_total(self) -> Decimal:
        return sum((quantity * price for quantity, price in self.priced_units()), Decimal("0"))

    def __str__(self) -> str:
        return f"{self.variation_id} x{self.quantity} @ {self.price_at_add}"
