"""StockMovement: the append-only inventory ledger.

Each row records one change to a variation's stock.  ``delta`` is the
signed effect (``+quantity`` for ``in``, ``-quantity`` for ``out``, either
sign for ``adjustment``) and ``current_stock`` the counter value right after
the change, so replaying the deltas of a variation from zero in creation
order always lands on ``ProductVariation.stock``.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import AppendOnlyModel
from modules.inventory.constants import MovementKind


class StockMovement(AppendOnlyModel):
    variation: models.ForeignKey = models.ForeignKey(
        "catalog.ProductVariation",
        on_delete=models.PROTECT,
        related_name="stock_movements",
    )
    product: models.ForeignKey = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="stock_movements",
    )
    kind: models.CharField = models.CharField(max_length=20, choices=MovementKind.choices)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField()
    delta: models.IntegerField = models.IntegerField()
    reason: models.CharField = models.CharField(max_length=255)
    reference: models.CharField = models.CharField(max_length=255, blank=True, default="")
    moved_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    current_stock: models.PositiveIntegerField = models.PositiveIntegerField()

    class Meta:
        db_table = "stock_movements"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["variation", "created_at"],
                name="movements_variation_idx",
            ),
            models.Index(fields=["reference"], name="movements_reference_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="movements_quantity_positive",
            ),
            models.CheckConstraint(
                check=~models.Q(delta=0),
                name="movements_delta_non_zero",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind} {self.delta:+d} -> {self.current_stock} ({self.reason})"
