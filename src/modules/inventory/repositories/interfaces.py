"""Inventory repository interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from modules.inventory.models import StockMovement


class IStockCounter(ABC):
    """Atomic mutations of ``ProductVariation.stock``."""

    @abstractmethod
    def decrement_if_available(self, variation_id: Any, quantity: int) -> bool:
        """Subtract ``quantity`` only if stock covers it; ``True`` when a row changed."""

    @abstractmethod
    def increment(self, variation_id: Any, quantity: int) -> bool:
        """Add ``quantity``; ``True`` when a row changed."""


class IStockMovementRepository(ABC):
    """Append-only access to the ledger (no update, no delete)."""

    @abstractmethod
    def append(self, data: Dict[str, Any]) -> StockMovement:
        """Insert one ledger row."""

    @abstractmethod
    def list_for_variation(self, variation_id: Any) -> List[StockMovement]:
        """Movements of a variation, newest first."""

    @abstractmethod
    def deltas_in_order(self, variation_id: Any) -> List[int]:
        """Signed deltas of a variation in creation order."""

    @abstractmethod
    def list_for_reference(self, reference: str) -> List[StockMovement]:
        """Movements booked against ``reference`` (e.g. an order id)."""
