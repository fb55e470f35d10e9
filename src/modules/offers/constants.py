"""Offer domain constants.

Every state reachable from ``pending`` is terminal.
"""

from decimal import Decimal

from django.db import models


class OfferStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    RETRACTED = "retracted", "Retracted"
    EXPIRED = "expired", "Expired"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OfferStatus.PENDING: {
        OfferStatus.ACCEPTED,
        OfferStatus.REJECTED,
        OfferStatus.RETRACTED,
        OfferStatus.EXPIRED,
    },
    OfferStatus.ACCEPTED: set(),
    OfferStatus.REJECTED: set(),
    OfferStatus.RETRACTED: set(),
    OfferStatus.EXPIRED: set(),
}

TERMINAL_STATES: set[str] = {
    OfferStatus.ACCEPTED,
    OfferStatus.REJECTED,
    OfferStatus.RETRACTED,
    OfferStatus.EXPIRED,
}

MIN_OFFER_PRICE = Decimal("0.01")
REJECT_REASON_MIN_LENGTH = 10
