"""Order, OrderItem and OrderTrackingEvent models.

- ``order_number`` is a human-readable identifier generated on first save.
- ``idempotency_key`` is unique (NULLs allowed) so API retries collapse
  onto the first order.
- Items snapshot the charged price in the order currency (``price_paid``)
  and ``total_amount`` is computed once at creation; later catalog price
  or exchange-rate changes never touch an existing order.
- The shipping address is copied into the order.
- Tracking events are append-only: one row per status entered.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import AppendOnlyModel, BaseModel, ImmutableRecordError
from modules.currency.constants import Currency
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    The UUIDv7 ``id`` is used for all internal references and API look-ups;
    ``order_number`` (``ORD-YYYYMMDD-XXXXXX``) is for humans.  Orders are
    never deleted: a dead order ends in a terminal status.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    buyer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status: models.CharField = models.CharField(
        max_length=30,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_ADMIN_APPROVAL,
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    currency: models.CharField = models.CharField(
        max_length=3,
        choices=Currency.choices,
        default=Currency.FC,
    )
    exchange_rate_used: models.DecimalField = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("1"),
    )
    shipping_street: models.CharField = models.CharField(max_length=255)
    shipping_city: models.CharField = models.CharField(max_length=120)
    shipping_state: models.CharField = models.CharField(max_length=120)
    shipping_zip_code: models.CharField = models.CharField(max_length=20)
    shipping_country: models.CharField = models.CharField(max_length=120)
    payment_method: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PAY_ON_DELIVERY,
    )
    is_paid: models.BooleanField = models.BooleanField(default=False)
    admin_notes: models.TextField = models.TextField(blank=True, default="")
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )
    restocked_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["buyer", "-created_at"], name="orders_buyer_created_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(total_amount__gte=0),
                name="orders_total_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @property
    def shipping_address(self) -> dict[str, str]:
        return {
            "street": self.shipping_street,
            "city": self.shipping_city,
            "state": self.shipping_state,
            "zip_code": self.shipping_zip_code,
            "country": self.shipping_country,
        }

    def copy_shipping_address(self, snapshot: dict[str, str]) -> None:
        for key, value in snapshot.items():
            setattr(self, f"shipping_{key}", value)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                logger.error("order.number_generation_failed")
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        raise ImmutableRecordError(f"{self._meta.label} rows are never deleted.")

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item: ``price_paid`` is the unit price charged in the order currency.

    ``subtotal`` is ``quantity * price_paid``, set on save.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    variation: models.ForeignKey = models.ForeignKey(
        "catalog.ProductVariation",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    price_paid: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["variation_id"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * self.price_paid
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.variation_id} x{self.quantity} @ {self.price_paid}"


class OrderTrackingEvent(AppendOnlyModel):
    """Delivery-tracking entry for one status the order entered.

    ``actor`` is ``None`` when the system performed the change.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="tracking_events",
    )
    status: models.CharField = models.CharField(
        max_length=30,
        choices=OrderStatus.choices,
    )
    previous_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=30,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    actor: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes: models.TextField = models.TextField(blank=True, default="")
    location: models.CharField = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "order_tracking_events"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="ote_order_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.previous_status} -> {self.status}"
