"""Order DTOs for the Service Layer.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 contracts
between the API layer (DRF Serializers) and ``OrderService``.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.currency.constants import Currency
from modules.orders.constants import OrderStatus

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Checkout request: the lines come from the buyer's cart."""

    model_config = ConfigDict(frozen=True)

    shipping_address_id: UUID
    currency: str = Currency.FC.value
    idempotency_key: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def currency_upper(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("idempotency_key")
    @classmethod
    def blank_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class RejectOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str

    @field_validator("reason")
    @classmethod
    def reason_is_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("A rejection reason is required.")
        return v.strip()


class UpdateOrderStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    notes: str = ""
    location: str = ""


class MarkPaidDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_paid: bool
