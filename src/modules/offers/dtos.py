"""Offer DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.offers.constants import MIN_OFFER_PRICE, REJECT_REASON_MIN_LENGTH


def _check_price(v: Decimal) -> Decimal:
    if v < MIN_OFFER_PRICE:
        raise ValueError(f"Price must be at least {MIN_OFFER_PRICE}.")
    return v.quantize(Decimal("0.01"))


class CreateOfferDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    variation_id: UUID
    proposed_price: Decimal
    message: Optional[str] = None

    @field_validator("proposed_price")
    @classmethod
    def price_minimum(cls, v: Decimal) -> Decimal:
        return _check_price(v)


class OfferMessageDTO(BaseModel):
    """A thread message; a ``price`` turns it into a new proposal."""

    model_config = ConfigDict(frozen=True)

    text: str
    price: Optional[Decimal] = None

    @field_validator("text")
    @classmethod
    def text_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message text must not be empty.")
        return v.strip()

    @field_validator("price")
    @classmethod
    def price_minimum(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return None if v is None else _check_price(v)


class AcceptOfferDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    accepted_price: Decimal

    @field_validator("accepted_price")
    @classmethod
    def price_minimum(cls, v: Decimal) -> Decimal:
        return _check_price(v)


class RejectOfferDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str

    @field_validator("reason")
    @classmethod
    def reason_long_enough(cls, v: str) -> str:
        v = v.strip()
        if len(v) < REJECT_REASON_MIN_LENGTH:
            raise ValueError(
                f"Reason must be at least {REJECT_REASON_MIN_LENGTH} characters."
            )
        return v
