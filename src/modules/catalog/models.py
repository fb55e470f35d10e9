"""Product and ProductVariation models.

Rules implemented:
- A variation's SKU is unique across the marketplace (normalized upper-case).
- A product cannot carry two variations with the same ordered attribute set
  (``attributes_signature`` unique per product, enforced by the database).
- Price is strictly positive; stock is never negative (check constraints).
- ``stock`` is written only by the inventory ledger.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Sequence

import structlog
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.catalog.constants import DEFAULT_LOW_STOCK_THRESHOLD, ProductStatus
from modules.core.models import BaseModel, SoftDeleteModel

logger = structlog.get_logger(__name__)


class Product(SoftDeleteModel):
    """Catalog grouping owned by a seller; sellable units are its variations."""

    seller: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="products",
    )
    name: models.CharField = models.CharField(max_length=255)
    description: models.TextField = models.TextField(blank=True, default="")
    status: models.CharField = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE and not self.is_deleted

    def is_managed_by(self, actor: Any) -> bool:
        """Admins manage every product; sellers only their own."""
        return actor.is_admin or (actor.is_seller and actor.owns(self.seller_id))

    def __str__(self) -> str:
        return self.name


def attributes_signature(attributes: Iterable[Sequence[str]]) -> str:
    """Canonical string for an ordered list of ``(key, value)`` pairs."""
    return "|".join(
        f"{str(key).strip().lower()}={str(value).strip().lower()}"
        for key, value in attributes
    )


class ProductVariation(BaseModel):
    """Sellable unit (e.g. size M / colour red) with its own price and stock."""

    product: models.ForeignKey = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="variations",
    )
    sku: models.CharField = models.CharField(max_length=64, unique=True)
    attributes: models.JSONField = models.JSONField(default=list, blank=True)
    attributes_signature: models.CharField = models.CharField(
        max_length=512, editable=False, default=""
    )
    price: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    is_available: models.BooleanField = models.BooleanField(default=True)
    low_stock_threshold: models.PositiveIntegerField = models.PositiveIntegerField(
        default=DEFAULT_LOW_STOCK_THRESHOLD
    )

    class Meta:
        db_table = "product_variations"
        ordering = ["sku"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "attributes_signature"],
                name="variations_unique_attributes_per_product",
            ),
            models.CheckConstraint(
                check=models.Q(price__gt=0),
                name="variations_price_positive",
            ),
            models.CheckConstraint(
                check=models.Q(stock__gte=0),
                name="variations_stock_non_negative",
            ),
        ]

    @property
    def attribute_pairs(self) -> List[tuple]:
        return [tuple(pair) for pair in self.attributes]

    @property
    def is_sellable(self) -> bool:
        """Available flag set and the parent product active and not deleted."""
        return bool(self.is_available) and self.product.is_active

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.sku:
            self.sku = self.sku.strip().upper()
        self.attributes = [[str(k), str(v)] for k, v in (self.attributes or [])]
        self.attributes_signature = attributes_signature(self.attributes)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "attributes" in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["attributes_signature"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} ({self.product_id})"
