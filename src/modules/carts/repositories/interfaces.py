"""Cart repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from modules.carts.models import Cart, CartItem


class ICartRepository(ABC):
    @abstractmethod
    def get_for_buyer(self, buyer_id: Any) -> Optional[Cart]:
        """The buyer's cart with prefetched lines, if any."""

    @abstractmethod
    def get_for_buyer_for_update(self, buyer_id: Any) -> Optional[Cart]:
        """The buyer's cart locked with SELECT FOR UPDATE, if any."""

    @abstractmethod
    def get_or_create_for_buyer(self, buyer_id: Any) -> Cart:
        """The buyer's cart (locked), created empty on first use."""

    @abstractmethod
    def get_item(self, cart: Cart, variation_id: Any) -> Optional[CartItem]:
        """The cart's line for ``variation_id``, if any."""

    @abstractmethod
    def list_items(self, cart: Cart) -> List[CartItem]:
        """Cart lines ordered by variation id."""

    @abstractmethod
    def save_item(self, item: CartItem) -> CartItem:
        """Insert or update a line."""

    @abstractmethod
    def delete_item(self, item: CartItem) -> None:
        """Remove a line."""

    @abstractmethod
    def refresh_total(self, cart: Cart) -> Cart:
        """Recompute and store ``total_price`` from the lines."""

    @abstractmethod
    def delete(self, cart: Cart) -> None:
        """Remove the cart and its lines."""
