"""Inventory ledger service.

The ledger is the only code path that changes ``ProductVariation.stock``.
Every public mutation is one ``transaction.atomic`` unit that changes the
counter with a single conditional UPDATE and appends exactly one
``StockMovement`` carrying the resulting stock.  When called inside an
outer unit (order creation, cancellation) it joins that transaction, so a
later failure rolls the movement back together with the caller's changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

import structlog
from django.db import transaction

from modules.catalog.exceptions import VariationNotFound
from modules.core.models import OutboxTopic
from modules.core.outbox import record_event
from modules.inventory.constants import MovementKind
from modules.inventory.events import LowStockReached, StockMovementRecorded
from modules.inventory.exceptions import StockManagementForbidden
from modules.notifications.constants import NotificationType, RelatedEntity
from shared.domain.exceptions import (
    InsufficientStock,
    ValidationFailed,
    VariationUnavailable,
)

if TYPE_CHECKING:
    from modules.catalog.models import ProductVariation
    from modules.catalog.repositories.interfaces import IVariationRepository
    from modules.inventory.dtos import RecordMovementDTO
    from modules.inventory.models import StockMovement
    from modules.inventory.repositories.interfaces import (
        IStockCounter,
        IStockMovementRepository,
    )
    from modules.notifications.services import NotificationService
    from shared.domain.actor import Actor

logger = structlog.get_logger(__name__)


class InventoryLedger:
    """Application service owning per-variation stock."""

    def __init__(
        self,
        variation_repository: IVariationRepository,
        stock_counter: IStockCounter,
        movement_repository: IStockMovementRepository,
        notification_service: NotificationService,
    ) -> None:
        self._variation_repo = variation_repository
        self._counter = stock_counter
        self._movement_repo = movement_repository
        self._notifications = notification_service

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def check_available(self, variation_id: Any, quantity: int) -> ProductVariation:
        """Read-only availability guard.

        Raises:
            VariationNotFound: the variation does not exist.
            VariationUnavailable: flagged unavailable or product inactive/deleted.
            InsufficientStock: stock below ``quantity``.
        """
        variation = self._get_variation(variation_id)
        if not variation.is_sellable:
            logger.warning("inventory.variation_unavailable", variation_id=str(variation_id))
            raise VariationUnavailable(
                f"Variation {variation.sku} is not available.",
                variation_id=variation.id,
            )
        if variation.stock < quantity:
            logger.warning(
                "inventory.insufficient_stock",
                variation_id=str(variation_id),
                requested=quantity,
                available=variation.stock,
            )
            raise InsufficientStock(
                f"Variation {variation.sku}: requested {quantity}, available {variation.stock}.",
                variation_id=variation.id,
                requested=quantity,
                available=variation.stock,
            )
        return variation

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def decrement(
        self,
        variation_id: Any,
        quantity: int,
        reason: str,
        reference: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> StockMovement:
        """Remove ``quantity`` units and append an ``out`` movement.

        Raises:
            VariationNotFound: the variation does not exist.
            InsufficientStock: stock below ``quantity`` (nothing changes).
        """
        _require_positive(quantity)
        if not self._counter.decrement_if_available(variation_id, quantity):
            self._raise_decrement_failure(variation_id, quantity)
        return self._book(variation_id, MovementKind.OUT, quantity, -quantity, reason, reference, actor)

    @transaction.atomic
    def increment(
        self,
        variation_id: Any,
        quantity: int,
        reason: str,
        reference: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> StockMovement:
        """Add ``quantity`` units and append an ``in`` movement.

        Raises:
            VariationNotFound: the variation does not exist.
        """
        _require_positive(quantity)
        if not self._counter.increment(variation_id, quantity):
            raise VariationNotFound(f"Variation {variation_id} not found.", variation_id=variation_id)
        return self._book(variation_id, MovementKind.IN, quantity, quantity, reason, reference, actor)

    @transaction.atomic
    def adjust(
        self,
        variation_id: Any,
        delta: int,
        reason: str,
        actor: Optional[Actor] = None,
        reference: Optional[str] = None,
    ) -> StockMovement:
        """Administrative correction by a signed ``delta``.

        Raises:
            ValidationFailed: ``delta`` is zero.
            VariationNotFound: the variation does not exist.
            InsufficientStock: a negative delta larger than the stock.
        """
        if delta == 0:
            raise ValidationFailed("Adjustment delta must not be zero.", field="delta")
        if delta < 0:
            if not self._counter.decrement_if_available(variation_id, -delta):
                self._raise_decrement_failure(variation_id, -delta)
        elif not self._counter.increment(variation_id, delta):
            raise VariationNotFound(f"Variation {variation_id} not found.", variation_id=variation_id)
        return self._book(variation_id, MovementKind.ADJUSTMENT, abs(delta), delta, reason, reference, actor)

    @transaction.atomic
    def record_movement(self, variation_id: Any, dto: RecordMovementDTO, actor: Actor) -> StockMovement:
        """Manual movement by the product's seller or an admin.

        ``in`` increments, ``out`` decrements and ``adjustment`` writes off
        ``quantity`` units.

        Raises:
            VariationNotFound: the variation does not exist.
            StockManagementForbidden: actor neither owns the product nor is admin.
            InsufficientStock: outgoing quantity larger than the stock.
        """
        variation = self._get_variation(variation_id)
        self._require_manager(variation, actor)

        if dto.kind == MovementKind.IN:
            return self.increment(variation.id, dto.quantity, dto.reason, dto.reference, actor)
        if dto.kind == MovementKind.OUT:
            return self.decrement(variation.id, dto.quantity, dto.reason, dto.reference, actor)
        return self.adjust(variation.id, -dto.quantity, dto.reason, actor, dto.reference)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_movements(self, variation_id: Any, actor: Actor) -> List[StockMovement]:
        """Ledger rows of a variation, newest first (seller-owner or admin).

        Raises:
            VariationNotFound: the variation does not exist.
            StockManagementForbidden: actor neither owns the product nor is admin.
        """
        variation = self._get_variation(variation_id)
        self._require_manager(variation, actor)
        return self._movement_repo.list_for_variation(variation.id)

    def reconstruct_stock(self, variation_id: Any) -> int:
        """Replay the variation's deltas from zero in creation order."""
        stock = 0
        for delta in self._movement_repo.deltas_in_order(variation_id):
            stock += delta
        return stock

    def verify(self, variation_id: Any) -> bool:
        """``True`` when the replayed ledger matches the live counter."""
        variation = self._get_variation(variation_id)
        consistent = self.reconstruct_stock(variation.id) == variation.stock
        if not consistent:
            logger.error(
                "inventory.ledger_mismatch",
                variation_id=str(variation.id),
                stock=variation.stock,
            )
        return consistent

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_variation(self, variation_id: Any) -> ProductVariation:
        variation = self._variation_repo.get_by_id(str(variation_id))
        if not variation:
            logger.warning("inventory.variation_not_found", variation_id=str(variation_id))
            raise VariationNotFound(f"Variation {variation_id} not found.", variation_id=variation_id)
        return variation

    def _require_manager(self, variation: ProductVariation, actor: Actor) -> None:
        if not variation.product.is_managed_by(actor):
            logger.warning(
                "inventory.forbidden",
                variation_id=str(variation.id),
                actor_id=str(actor.id),
            )
            raise StockManagementForbidden(
                "Only the product's seller or an admin may manage its stock.",
                variation_id=variation.id,
            )

    def _raise_decrement_failure(self, variation_id: Any, quantity: int) -> None:
        variation = self._get_variation(variation_id)
        logger.warning(
            "inventory.insufficient_stock",
            variation_id=str(variation_id),
            requested=quantity,
            available=variation.stock,
        )
        raise InsufficientStock(
            f"Variation {variation.sku}: requested {quantity}, available {variation.stock}.",
            variation_id=variation.id,
            requested=quantity,
            available=variation.stock,
        )

    def _book(
        self,
        variation_id: Any,
        kind: str,
        quantity: int,
        delta: int,
        reason: str,
        reference: Optional[str],
        actor: Optional[Actor],
    ) -> StockMovement:
        # The counter row is already locked by the UPDATE above.
        variation = self._variation_repo.get_for_update(str(variation_id))
        movement = self._movement_repo.append(
            {
                "variation_id": variation.id,
                "product_id": variation.product_id,
                "kind": kind,
                "quantity": quantity,
                "delta": delta,
                "reason": reason,
                "reference": str(reference) if reference else "",
                "moved_by_id": actor.id if actor is not None else None,
                "current_stock": variation.stock,
            }
        )
        record_event(
            StockMovementRecorded(
                aggregate_id=variation.id,
                kind=kind,
                quantity=quantity,
                delta=delta,
                reason=reason,
                reference=movement.reference or None,
                current_stock=variation.stock,
            ),
            topic=OutboxTopic.INVENTORY,
        )
        logger.info(
            "inventory.movement_recorded",
            variation_id=str(variation.id),
            kind=kind,
            delta=delta,
            reason=reason,
            reference=movement.reference,
            current_stock=variation.stock,
        )

        previous = variation.stock - delta
        if delta < 0 and previous > variation.low_stock_threshold >= variation.stock:
            self._on_low_stock(variation)
        return movement

    def _on_low_stock(self, variation: ProductVariation) -> None:
        record_event(
            LowStockReached(
                aggregate_id=variation.id,
                sku=variation.sku,
                current_stock=variation.stock,
                threshold=variation.low_stock_threshold,
            ),
            topic=OutboxTopic.INVENTORY,
        )
        self._notifications.notify(
            [variation.product.seller_id],
            NotificationType.LOW_STOCK,
            "notifications.low_stock",
            {
                "sku": variation.sku,
                "product": variation.product.name,
                "stock": variation.stock,
                "threshold": variation.low_stock_threshold,
            },
            related_entity={"id": variation.id, "type": RelatedEntity.PRODUCT_VARIATION},
        )


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise ValidationFailed("Quantity must be at least 1.", field="quantity")
