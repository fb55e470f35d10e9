"""Domain events for the Inventory bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class StockMovementRecorded(DomainEvent):
    """A ledger row was appended (``aggregate_id`` is the variation id)."""

    kind: str = ""
    quantity: int = 0
    delta: int = 0
    reason: str = ""
    reference: Optional[str] = None
    current_stock: int = 0


@dataclass(frozen=True)
class LowStockReached(DomainEvent):
    """Stock fell to or below the variation's low-stock threshold."""

    sku: str = ""
    current_stock: int = 0
    threshold: int = 0
