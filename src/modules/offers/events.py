"""Domain events for the Offers bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OfferCreated(DomainEvent):
    """Raised when a buyer opens an offer."""

    variation_id: str = ""
    proposed_price: str = ""


@dataclass(frozen=True)
class OfferStatusChanged(DomainEvent):
    """Raised when an offer leaves ``pending``."""

    old_status: str = ""
    new_status: str = ""
    accepted_price: Optional[str] = None


@dataclass(frozen=True)
class OfferRedeemed(DomainEvent):
    """Raised when the accepted price is moved into the buyer's cart."""

    cart_item_id: str = ""
