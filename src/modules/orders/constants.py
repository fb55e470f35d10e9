"""Order domain constants.

Status choices and the transition table of the order state machine.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING_ADMIN_APPROVAL = "pending_admin_approval", "Pending admin approval"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    RETURNED = "returned", "Returned"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING_ADMIN_APPROVAL: {OrderStatus.ACCEPTED, OrderStatus.REJECTED},
    OrderStatus.ACCEPTED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.RETURNED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.REJECTED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.RETURNED: set(),
}

TERMINAL_STATES: set[str] = {
    OrderStatus.REJECTED,
    OrderStatus.CANCELLED,
    OrderStatus.RETURNED,
}

# Statuses from which the buyer may cancel their own order.
BUYER_CANCELLABLE: set[str] = {OrderStatus.PENDING_ADMIN_APPROVAL, OrderStatus.ACCEPTED}

# Entering these statuses puts the ordered units back on the shelf.
REVERSING_STATES: set[str] = {OrderStatus.REJECTED, OrderStatus.CANCELLED}


class PaymentMethod(models.TextChoices):
    PAY_ON_DELIVERY = "pay_on_delivery", "Pay on delivery"


ORDER_NUMBER_MAX_RETRIES = 5
