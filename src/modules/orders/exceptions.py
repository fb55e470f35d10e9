"""Order domain exceptions.

Raised by the Service Layer when business rules are violated and rendered
by ``api_exception_handler``.
"""

from __future__ import annotations

from shared.domain.exceptions import (
    AlreadyPaid,
    EmptyCart,
    InsufficientStock,
    InvalidState,
    InvalidStatusTransition,
    NotFound,
    VariationUnavailable,
)

__all__ = [
    "AddressNotFound",
    "AlreadyPaid",
    "EmptyCart",
    "InsufficientStock",
    "InvalidOrderStatus",
    "InvalidState",
    "OrderNotFound",
    "VariationUnavailable",
]


class OrderNotFound(NotFound):
    """The requested order does not exist."""

    code = "order_not_found"


class AddressNotFound(NotFound):
    """The shipping address does not exist or belongs to someone else."""

    code = "address_not_found"


class InvalidOrderStatus(InvalidStatusTransition):
    """The requested order status transition is not allowed."""
