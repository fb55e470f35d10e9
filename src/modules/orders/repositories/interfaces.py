"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs: atomic
creation with items, tracking events and idempotency-key look-up.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderTrackingEvent


class IOrderRepository(IRepository["Order"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``buyer_id``, ``currency``,
        ``exchange_rate_used``, ``shipping_address`` (snapshot dict) and
        ``items`` (dicts with ``product_id``, ``variation_id``, ``quantity``,
        ``price_paid``); ``idempotency_key`` is optional.
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def add_tracking_event(
        self,
        order: Order,
        status: str,
        previous_status: Optional[str] = None,
        actor_id: Any = None,
        notes: str = "",
        location: str = "",
    ) -> OrderTrackingEvent:
        """Append a delivery-tracking entry."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
