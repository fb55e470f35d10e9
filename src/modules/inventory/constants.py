from django.db import models


class MovementKind(models.TextChoices):
    IN = "in", "In"
    OUT = "out", "Out"
    ADJUSTMENT = "adjustment", "Adjustment"


class MovementReason:
    """Reason codes booked by the system itself.

    Manual movements carry free-text reasons supplied by the seller or admin.
    """

    INITIAL_STOCK = "initial_stock"
    ORDER_PLACED = "order_placed"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_REJECTED = "order_rejected"
    ORDER_RETURNED = "order_returned"
