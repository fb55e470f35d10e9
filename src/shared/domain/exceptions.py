"""Domain error taxonomy shared by every bounded context.

Each module raises subclasses of these kinds (e.g. ``OrderNotFound`` is a
``NotFound``).  The API layer renders any ``DomainError`` uniformly using
``code``, ``status_code`` and ``context``; views never need to know the
concrete subclass.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for typed, non-fatal business rule violations.

    ``context`` carries the identifiers needed to render a user-facing
    message (entity id, offending field, requested vs. available, ...).
    """

    code: str = "domain_error"
    status_code: int = 400

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self.args[0]).strip()
        self.context: Dict[str, Any] = context

    def as_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "detail": self.message,
            "context": {key: _stringify(val) for key, val in self.context.items()},
        }


def _stringify(value: Any) -> Any:
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    return str(value)


class NotFound(DomainError):
    """The requested entity does not exist."""

    code = "not_found"
    status_code = 404


class Forbidden(DomainError):
    """The actor lacks the ownership or role required."""

    code = "forbidden"
    status_code = 403


class InvalidState(DomainError):
    """The entity's current state does not allow the operation."""

    code = "invalid_state"
    status_code = 409


class InvalidStatusTransition(InvalidState):
    """The requested status transition is not in the transition table."""

    code = "invalid_status_transition"


class InsufficientStock(DomainError):
    """Not enough stock to satisfy the requested quantity."""

    code = "insufficient_stock"
    status_code = 409


class OutOfStock(InsufficientStock):
    """The variation has no stock left."""

    code = "out_of_stock"


class VariationUnavailable(DomainError):
    """The product variation is not available for sale."""

    code = "variation_unavailable"
    status_code = 409


class DuplicateActiveOffer(DomainError):
    """The buyer already has an active offer on this variation."""

    code = "duplicate_active_offer"
    status_code = 409


class AlreadyPaid(DomainError):
    """The order has already been marked as paid."""

    code = "already_paid"
    status_code = 409


class OfferExpiredOrConsumed(DomainError):
    """The offer is not accepted or its price was already redeemed."""

    code = "offer_expired_or_consumed"
    status_code = 409


class PriceBelowFloor(DomainError):
    """The accepted price is below the allowed floor."""

    code = "price_below_floor"
    status_code = 422


class UnsupportedCurrency(DomainError):
    """The requested currency is not supported."""

    code = "unsupported_currency"
    status_code = 400


class ExchangeRateUnavailable(DomainError):
    """No exchange rate is configured for the conversion."""

    code = "exchange_rate_unavailable"
    status_code = 503


class ValidationFailed(DomainError):
    """The input failed validation."""

    code = "validation_failed"
    status_code = 400

    def __init__(self, message: str = "", field: Optional[str] = None, **context: Any) -> None:
        if field is not None:
            context["field"] = field
        super().__init__(message, **context)


class EmptyCart(DomainError):
    """The cart is missing or has no lines."""

    code = "empty_cart"
    status_code = 400
