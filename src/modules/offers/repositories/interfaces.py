"""Offer repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.offers.models import Offer, OfferMessage


class IOfferRepository(IRepository["Offer"]):
    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Offer]:
        """Retrieve an offer with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def has_active(self, buyer_id: Any, variation_id: Any) -> bool:
        """Pending offer, or accepted and not yet redeemed, for this pair."""

    @abstractmethod
    def add_message(
        self,
        offer: Offer,
        sender_id: Any,
        text: str,
        price: Optional[Decimal] = None,
        is_proposal: bool = False,
    ) -> OfferMessage:
        """Append a message to the negotiation thread."""

    @abstractmethod
    def latest_buyer_proposal(self, offer: Offer) -> Optional[Decimal]:
        """Price of the buyer's most recent proposal message."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Offer]:
        """List offers (most recent activity first)."""

    @abstractmethod
    def list_stale_for_update(self, cutoff: datetime) -> List[Offer]:
        """Pending offers idle since before ``cutoff``, locked."""
