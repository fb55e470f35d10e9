"""Catalog DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from modules.catalog.constants import DEFAULT_LOW_STOCK_THRESHOLD


class CreateProductDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be blank.")
        return v.strip()


class CreateVariationDTO(BaseModel):
    """Input for a new variation.

    ``initial_stock`` is booked through the inventory ledger (reason
    ``initial_stock``) rather than written to the counter directly.
    """

    model_config = ConfigDict(frozen=True)

    sku: str
    price: Decimal
    attributes: List[Tuple[str, str]] = []
    initial_stock: int = 0
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    is_available: bool = True

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("SKU must not be blank.")
        return v

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v.quantize(Decimal("0.01"))

    @field_validator("initial_stock", "low_stock_threshold")
    @classmethod
    def must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Must not be negative.")
        return v


class UpdateVariationDTO(BaseModel):
    """Partial update. Stock changes go through the inventory ledger."""

    model_config = ConfigDict(frozen=True)

    price: Optional[Decimal] = None
    is_available: Optional[bool] = None
    low_stock_threshold: Optional[int] = None

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v
