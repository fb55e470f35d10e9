"""Inventory DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.inventory.constants import MovementKind

if TYPE_CHECKING:
    from modules.inventory.models import StockMovement


class RecordMovementDTO(BaseModel):
    """Manual stock movement entered by a seller or admin.

    ``adjustment`` is a write-off: it removes ``quantity`` units.
    """

    model_config = ConfigDict(frozen=True)

    kind: MovementKind
    quantity: int
    reason: str
    reference: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @field_validator("reason")
    @classmethod
    def reason_is_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("A reason is required.")
        return v.strip()


class StockMovementOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    variation_id: UUID
    kind: str
    quantity: int
    delta: int
    reason: str
    reference: str
    moved_by_id: Optional[int]
    current_stock: int
    created_at: datetime

    @classmethod
    def from_entity(cls, movement: StockMovement) -> StockMovementOutputDTO:
        return cls(
            id=movement.id,
            variation_id=movement.variation_id,
            kind=movement.kind,
            quantity=movement.quantity,
            delta=movement.delta,
            reason=movement.reason,
            reference=movement.reference,
            moved_by_id=movement.moved_by_id,
            current_stock=movement.current_stock,
            created_at=movement.created_at,
        )
