"""Offer and OfferMessage models.

An offer is a buyer's price negotiation on one variation.  It leaves
``pending`` exactly once.  An accepted offer's price can be redeemed into
the cart a single time: ``consumed_at`` is set in the same transaction that
adds the cart line, under a row lock.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import AppendOnlyModel, BaseModel
from modules.offers.constants import (
    MIN_OFFER_PRICE,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OfferStatus,
)
from shared.domain.events import DomainEventMixin


class Offer(DomainEventMixin, BaseModel):
    buyer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="offers",
    )
    product: models.ForeignKey = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="offers",
    )
    variation: models.ForeignKey = models.ForeignKey(
        "catalog.ProductVariation",
        on_delete=models.PROTECT,
        related_name="offers",
    )
    proposed_price: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(MIN_OFFER_PRICE)],
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OfferStatus.choices,
        default=OfferStatus.PENDING,
    )
    accepted_price: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(MIN_OFFER_PRICE)],
    )
    admin_notes: models.TextField = models.TextField(blank=True, default="")
    last_activity: models.DateTimeField = models.DateTimeField(default=timezone.now)
    consumed_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    redeemed_cart_item: models.ForeignKey = models.ForeignKey(
        "carts.CartItem",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "offers"
        ordering = ["-last_activity"]
        indexes = [
            models.Index(
                fields=["buyer", "variation", "status"],
                name="offers_buyer_variation_idx",
            ),
            models.Index(fields=["status", "last_activity"], name="offers_status_activity_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=~models.Q(status=OfferStatus.ACCEPTED)
                | models.Q(accepted_price__isnull=False),
                name="offers_accepted_has_price",
            ),
            models.CheckConstraint(
                check=models.Q(consumed_at__isnull=True)
                | models.Q(status=OfferStatus.ACCEPTED),
                name="offers_only_accepted_consumed",
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_redeemable(self) -> bool:
        return self.status == OfferStatus.ACCEPTED and self.consumed_at is None

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def touch(self) -> None:
        self.last_activity = timezone.now()

    def __str__(self) -> str:
        return f"Offer {self.id} ({self.status}) {self.proposed_price}"


class OfferMessage(AppendOnlyModel):
    """One entry of the negotiation thread.

    ``is_proposal`` marks messages that put a price on the table; the
    buyer's latest proposal is the acceptance floor.
    """

    offer: models.ForeignKey = models.ForeignKey(
        "offers.Offer",
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    text: models.TextField = models.TextField()
    price: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    is_proposal: models.BooleanField = models.BooleanField(default=False)

    class Meta:
        db_table = "offer_messages"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.sender_id}: {self.text[:40]}"
