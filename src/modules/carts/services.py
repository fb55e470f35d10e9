"""Cart staging store.

Every mutation re-reads the variation through the inventory ledger's
``check_available`` guard (so the cumulative line quantity never exceeds
live stock at the time of the change) but never reserves stock: stock
only moves when an order is placed.

Pricing rules:
- A new line freezes the variation's live price in ``price_at_add``.
- Adding more of an existing line refreshes ``price_at_add`` to the live price.
- A redeemed offer contributes one unit at ``negotiated_price``; every other
  unit on that line is billed at ``price_at_add``.
- Changing the quantity keeps the prices the line already has.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

import structlog
from django.db import transaction

from modules.carts.exceptions import CartItemNotFound, CartNotFound, NegotiatedUnitInCart
from modules.carts.models import NEGOTIATED_UNITS, CartItem

if TYPE_CHECKING:
    from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
    from modules.carts.models import Cart
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.catalog.models import ProductVariation
    from modules.inventory.services import InventoryLedger
    from modules.offers.models import Offer
    from shared.domain.actor import Actor

logger = structlog.get_logger(__name__)


class CartService:
    def __init__(self, cart_repository: ICartRepository, ledger: InventoryLedger) -> None:
        self._cart_repo = cart_repository
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, actor: Actor) -> Optional[Cart]:
        """The actor's cart, or ``None`` when nothing was ever added."""
        return self._cart_repo.get_for_buyer(actor.id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, actor: Actor, dto: AddCartItemDTO) -> Cart:
        """Add ``dto.quantity`` units, merging with an existing line.

        Raises:
            VariationNotFound: the variation does not exist.
            VariationUnavailable: the variation cannot be sold.
            InsufficientStock: cumulative quantity exceeds stock.
        """
        log = logger.bind(buyer_id=str(actor.id), variation_id=str(dto.variation_id))
        cart = self._cart_repo.get_or_create_for_buyer(actor.id)
        item = self._cart_repo.get_item(cart, dto.variation_id)

        quantity = dto.quantity + (item.quantity if item else 0)
        variation = self._ledger.check_available(dto.variation_id, quantity)

        if item is None:
            item = CartItem(
                cart=cart,
                product_id=variation.product_id,
                variation=variation,
                quantity=quantity,
                price_at_add=variation.price,
            )
        else:
            item.quantity = quantity
            item.price_at_add = variation.price
        self._cart_repo.save_item(item)

        cart = self._cart_repo.refresh_total(cart)
        log.info("cart.item_added", quantity=quantity, total=str(cart.total_price))
        return cart

    @transaction.atomic
    def update_quantity(self, actor: Actor, variation_id: Any, dto: UpdateCartItemDTO) -> Cart:
        """Set a line's quantity; 0 removes it.  The line price stays frozen.

        Raises:
            CartNotFound / CartItemNotFound: nothing to update.
            VariationUnavailable / InsufficientStock: live re-check failed.
        """
        cart, item = self._locked_line(actor, variation_id)
        log = logger.bind(buyer_id=str(actor.id), variation_id=str(variation_id))

        if dto.quantity == 0:
            self._cart_repo.delete_item(item)
            log.info("cart.item_removed")
        else:
            self._ledger.check_available(item.variation_id, dto.quantity)
            item.quantity = dto.quantity
            self._cart_repo.save_item(item)
            log.info("cart.item_updated", quantity=dto.quantity)

        return self._cart_repo.refresh_total(cart)

    @transaction.atomic
    def remove_item(self, actor: Actor, variation_id: Any) -> Cart:
        """Raises: CartNotFound / CartItemNotFound: nothing to remove."""
        cart, item = self._locked_line(actor, variation_id)
        self._cart_repo.delete_item(item)
        logger.info("cart.item_removed", buyer_id=str(actor.id), variation_id=str(variation_id))
        return self._cart_repo.refresh_total(cart)

    @transaction.atomic
    def clear(self, actor: Actor) -> None:
        """Delete the actor's cart (no-op when there is none)."""
        cart = self._cart_repo.get_for_buyer_for_update(actor.id)
        if cart is None:
            return
        self._cart_repo.delete(cart)
        logger.info("cart.cleared", buyer_id=str(actor.id))

    @transaction.atomic
    def merge_offer_line(
        self, buyer_id: Any, variation: ProductVariation, price: Decimal, offer: Offer
    ) -> CartItem:
        """Put one unit at the negotiated ``price`` into the buyer's cart.

        Joins the caller's transaction (offer redemption).  An existing line
        for the variation gains one unit, billed at the negotiated price; its
        other units keep ``price_at_add``.

        Raises:
            NegotiatedUnitInCart: the line already holds a redeemed unit.
            VariationUnavailable / InsufficientStock: live re-check failed.
        """
        cart = self._cart_repo.get_or_create_for_buyer(buyer_id)
        item = self._cart_repo.get_item(cart, variation.id)
        if item is not None and item.is_negotiated:
            logger.warning(
                "cart.negotiated_unit_exists",
                buyer_id=str(buyer_id),
                variation_id=str(variation.id),
                offer_id=str(offer.id),
            )
            raise NegotiatedUnitInCart(
                "Check out the negotiated unit already in your cart first.",
                variation_id=variation.id,
            )
        quantity = NEGOTIATED_UNITS + (item.quantity if item else 0)
        self._ledger.check_available(variation.id, quantity)

        if item is None:
            item = CartItem(
                cart=cart,
                product_id=variation.product_id,
                variation=variation,
                quantity=quantity,
                price_at_add=variation.price,
                negotiated_price=price,
                offer=offer,
            )
        else:
            item.quantity = quantity
            item.negotiated_price = price
            item.offer = offer
        self._cart_repo.save_item(item)
        self._cart_repo.refresh_total(cart)

        logger.info(
            "cart.offer_line_merged",
            buyer_id=str(buyer_id),
            variation_id=str(variation.id),
            offer_id=str(offer.id),
            price=str(price),
        )
        return item

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _locked_line(self, actor: Actor, variation_id: Any) -> tuple[Cart, CartItem]:
        cart = self._cart_repo.get_for_buyer_for_update(actor.id)
        if cart is None:
            raise CartNotFound("Cart not found.", buyer_id=actor.id)
        item = self._cart_repo.get_item(cart, variation_id)
        if item is None:
            raise CartItemNotFound(
                f"No cart line for variation {variation_id}.", variation_id=variation_id
            )
        return cart, item
