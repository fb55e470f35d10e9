"""Offer domain exceptions."""

from __future__ import annotations

from shared.domain.exceptions import (
    DuplicateActiveOffer,
    Forbidden,
    InvalidState,
    NotFound,
    OfferExpiredOrConsumed,
    OutOfStock,
    PriceBelowFloor,
    VariationUnavailable,
)

__all__ = [
    "DuplicateActiveOffer",
    "InvalidOfferState",
    "NotOfferOwner",
    "OfferExpiredOrConsumed",
    "OfferNotFound",
    "OutOfStock",
    "PriceBelowFloor",
    "VariationUnavailable",
]


class OfferNotFound(NotFound):
    """The requested offer does not exist."""

    code = "offer_not_found"


class InvalidOfferState(InvalidState):
    """The offer is no longer pending."""

    code = "invalid_offer_state"


class NotOfferOwner(Forbidden):
    """Only the buyer who made the offer may do this."""
