"""Django ORM implementation of the inventory repositories.

Stock is never read, compared and written back from Python: both counter
mutations are a single ``UPDATE`` with an ``F()`` expression, the decrement
guarded by ``stock >= quantity`` in its ``WHERE`` clause.
"""

from __future__ import annotations

from typing import Any, Dict, List

from django.db.models import F
from django.utils import timezone

from modules.catalog.models import ProductVariation
from modules.inventory.models import StockMovement
from modules.inventory.repositories.interfaces import (
    IStockCounter,
    IStockMovementRepository,
)


class StockCounterDjangoRepository(IStockCounter):
    def decrement_if_available(self, variation_id: Any, quantity: int) -> bool:
        updated = ProductVariation.objects.filter(
            id=variation_id, stock__gte=quantity
        ).update(stock=F("stock") - quantity, updated_at=timezone.now())
        return updated == 1

    def increment(self, variation_id: Any, quantity: int) -> bool:
        updated = ProductVariation.objects.filter(id=variation_id).update(
            stock=F("stock") + quantity, updated_at=timezone.now()
        )
        return updated == 1


class StockMovementDjangoRepository(IStockMovementRepository):
    def append(self, data: Dict[str, Any]) -> StockMovement:
        movement = StockMovement(**data)
        movement.save()
        return movement

    def list_for_variation(self, variation_id: Any) -> List[StockMovement]:
        return list(
            StockMovement.objects.filter(variation_id=variation_id).order_by(
                "-created_at", "-id"
            )
        )

    def deltas_in_order(self, variation_id: Any) -> List[int]:
        return list(
            StockMovement.objects.filter(variation_id=variation_id)
            .order_by("created_at", "id")
            .values_list("delta", flat=True)
        )

    def list_for_reference(self, reference: str) -> List[StockMovement]:
        return list(StockMovement.objects.filter(reference=reference))
