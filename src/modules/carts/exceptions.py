"""Cart domain exceptions."""

from __future__ import annotations

from shared.domain.exceptions import InvalidState, NotFound


class CartNotFound(NotFound):
    """The buyer has no cart."""

    code = "cart_not_found"


class CartItemNotFound(NotFound):
    """The cart has no line for this variation."""

    code = "cart_item_not_found"


class NegotiatedUnitInCart(InvalidState):
    """The cart line already holds a redeemed offer unit."""

    code = "negotiated_unit_in_cart"
